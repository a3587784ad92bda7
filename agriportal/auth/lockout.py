# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Failed-login counter and temporary account block."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from agriportal.core.config import AuthSettings
from agriportal.storage.kv import KeyValueStore

from .audit import SecurityEventLog

logger = logging.getLogger("agriportal.auth")

ATTEMPTS_KEY = "login_attempts"
BLOCKED_KEY = "account_blocked"


def _read_int(store: KeyValueStore, key: str) -> int | None:
    raw = store.get_item(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value for %s: %r", key, raw)
        return None


class LockoutGuard:
    """Counts consecutive failures and blocks after ``max_attempts``.

    Block expiry is evaluated lazily: an expired block is only cleared
    (together with the counter) when ``is_blocked()`` observes it.
    Callers must check ``is_blocked()`` before verifying credentials so
    that no attempt is recorded while a block is active.
    """

    def __init__(
        self,
        store: KeyValueStore,
        events: SecurityEventLog,
        settings: AuthSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._events = events
        self._settings = settings or AuthSettings()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def attempts(self) -> int:
        return _read_int(self._store, ATTEMPTS_KEY) or 0

    def blocked_until(self) -> int | None:
        """Stored block expiry in epoch ms, without lazy cleanup."""
        return _read_int(self._store, BLOCKED_KEY)

    def record_failed_attempt(self) -> int:
        """Count one failure. Returns the new count."""
        attempts = self.attempts() + 1
        self._store.set_item(ATTEMPTS_KEY, str(attempts))

        if attempts >= self._settings.max_attempts:
            self._block()
        else:
            logger.info(
                "Failed login attempt %d/%d", attempts, self._settings.max_attempts,
            )
        return attempts

    def _block(self) -> None:
        blocked_until = self._now_ms() + self._settings.block_ms
        self._store.set_item(BLOCKED_KEY, str(blocked_until))
        until = datetime.fromtimestamp(blocked_until / 1000, tz=timezone.utc)
        logger.warning(
            "Admin account locked for %d min after %d failed attempts",
            self._settings.block_minutes,
            self.attempts(),
        )
        self._events.log_event(
            "ACCOUNT_BLOCKED",
            f"Account blocked until {until.strftime('%Y-%m-%d %H:%M:%S %Z')}",
        )

    def is_blocked(self) -> bool:
        blocked_until = self.blocked_until()
        if blocked_until is None:
            if self._store.get_item(BLOCKED_KEY) is not None:
                # unreadable expiry: drop it rather than lock forever
                self._store.remove_item(BLOCKED_KEY)
            return False

        if blocked_until <= self._now_ms():
            self._store.remove_item(BLOCKED_KEY)
            self._store.remove_item(ATTEMPTS_KEY)
            logger.info("Account block expired, attempt counter reset")
            return False

        return True

    def remaining_ms(self) -> int:
        """Milliseconds until an active block lifts, 0 when not blocked.

        Goes through ``is_blocked()`` so an expired block is cleared here too.
        """
        if not self.is_blocked():
            return 0
        return max(0, self.blocked_until() - self._now_ms())

    def reset(self) -> None:
        self._store.remove_item(ATTEMPTS_KEY)
        self._store.remove_item(BLOCKED_KEY)
