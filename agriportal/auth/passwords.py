# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Password policy, strength scoring, generation and the change path.

The admin password is stored and compared in plaintext. This is a known
weakness of the portal's client-side gate, not a security boundary.
"""

from __future__ import annotations

import hmac
import logging
import re
import secrets
import string

from agriportal.core.config import AuthSettings
from agriportal.storage.kv import KeyValueStore

from .audit import SecurityEventLog
from .errors import PasswordChangeError
from .models import PasswordValidation

logger = logging.getLogger("agriportal.auth")

PASSWORD_KEY = "admin_password"

MIN_PASSWORD_LENGTH = 8
STRONG_PASSWORD_LENGTH = 12
MAX_STRENGTH = 5

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SPECIAL = "!@#$%^&*()_+-=[]{}|;:,.<>?"

_HAS_UPPER = re.compile(r"[A-Z]")
_HAS_LOWER = re.compile(r"[a-z]")
_HAS_DIGIT = re.compile(r"[0-9]")
_HAS_SPECIAL = re.compile(r"[^A-Za-z0-9]")

_rng = secrets.SystemRandom()


def strength_score(password: str) -> int:
    """Score 0-5: one point each for length >= 8, length >= 12, upper,
    lower, digit and special, capped at 5."""
    score = 0
    if len(password) >= MIN_PASSWORD_LENGTH:
        score += 1
    if len(password) >= STRONG_PASSWORD_LENGTH:
        score += 1
    for pattern in (_HAS_UPPER, _HAS_LOWER, _HAS_DIGIT, _HAS_SPECIAL):
        if pattern.search(password):
            score += 1
    return min(score, MAX_STRENGTH)


def validate_password(password: str) -> PasswordValidation:
    errors: list[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not _HAS_UPPER.search(password):
        errors.append("Password must contain at least one uppercase letter")
    if not _HAS_LOWER.search(password):
        errors.append("Password must contain at least one lowercase letter")
    if not _HAS_DIGIT.search(password):
        errors.append("Password must contain at least one number")
    if not _HAS_SPECIAL.search(password):
        errors.append("Password must contain at least one special character")

    return PasswordValidation(
        valid=not errors,
        errors=errors,
        strength=strength_score(password),
    )


def generate_strong_password(length: int = STRONG_PASSWORD_LENGTH) -> str:
    """Random password with at least one character from every class."""
    classes = (UPPERCASE, LOWERCASE, DIGITS, SPECIAL)
    if length < len(classes):
        raise ValueError(f"Password length must be at least {len(classes)}")

    chars = [secrets.choice(cls) for cls in classes]
    pool = "".join(classes)
    chars.extend(secrets.choice(pool) for _ in range(length - len(chars)))
    _rng.shuffle(chars)
    return "".join(chars)


class PasswordManager:
    """Reads and changes the admin password."""

    def __init__(
        self,
        store: KeyValueStore,
        events: SecurityEventLog,
        settings: AuthSettings | None = None,
    ) -> None:
        self._store = store
        self._events = events
        self._settings = settings or AuthSettings()

    def stored_password(self) -> str:
        """The overriding password if one was set, else the configured default."""
        return self._store.get_item(PASSWORD_KEY) or self._settings.default_password

    def matches(self, candidate: str) -> bool:
        return hmac.compare_digest(candidate.encode("utf-8"), self.stored_password().encode("utf-8"))

    def change_password(self, current_password: str, new_password: str) -> bool:
        """Replace the admin password.

        Raises:
            PasswordChangeError: current password wrong or new one fails policy.
        """
        if not self.matches(current_password):
            logger.warning("Password change refused: current password incorrect")
            raise PasswordChangeError(["Current password is incorrect"])

        validation = validate_password(new_password)
        if not validation.valid:
            logger.warning("Password change refused: %d policy violation(s)", len(validation.errors))
            raise PasswordChangeError(validation.errors)

        self._store.set_item(PASSWORD_KEY, new_password)
        self._events.log_event("PASSWORD_CHANGE", "Admin password changed")
        return True
