# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Single-slot admin session with sliding-window renewal."""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from collections.abc import Callable

from pydantic import ValidationError

from agriportal.core.config import AuthSettings
from agriportal.storage.cookies import CookieJar
from agriportal.storage.kv import KeyValueStore

from .audit import SecurityEventLog, format_timestamp
from .models import SessionRecord

logger = logging.getLogger("agriportal.auth")

SESSION_KEY = "admin_session"
LAST_LOGIN_KEY = "last_login"
SESSION_COOKIE = "admin_session"

_BASE36 = string.digits + string.ascii_lowercase


def generate_session_id(now_ms: int) -> str:
    """``session_<ms>_<9 base36 chars>``. Unique per creation, not a secret."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"session_{now_ms}_{suffix}"


class SessionManager:
    """Issues, checks, renews and destroys the admin session.

    At most one session exists; ``create_session`` overwrites it.
    Expiry is evaluated lazily by ``check_session``. A still-valid
    session inside the renewal window is pushed to a full lifetime from
    now; an expired one is destroyed, never revived.

    With ``remember=True`` a durable cookie carrying the session id is
    written to ``cookies``. It is never read back to restore a session.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cookies: CookieJar,
        events: SecurityEventLog,
        settings: AuthSettings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._cookies = cookies
        self._events = events
        self._settings = settings or AuthSettings()
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _save(self, session: SessionRecord) -> None:
        self._store.set_item(SESSION_KEY, session.to_json())

    def get_session(self) -> SessionRecord | None:
        """Stored session record, or None if absent or unreadable."""
        raw = self._store.get_item(SESSION_KEY)
        if not raw:
            return None
        try:
            return SessionRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Error reading session data: %s", e)
            return None

    def create_session(self, remember: bool = False) -> SessionRecord:
        now = self._now_ms()
        session = SessionRecord(
            email=self._settings.admin_email,
            issued_at=now,
            expires_at=now + self._settings.session_ms,
            remember=remember,
            session_id=generate_session_id(now),
        )
        self._save(session)

        if remember:
            self._cookies.set_cookie(
                SESSION_COOKIE,
                session.session_id,
                self._settings.remember_days,
                secure=True,
                samesite="Strict",
            )

        self._store.set_item(LAST_LOGIN_KEY, format_timestamp(now / 1000))
        logger.info("Admin session created (remember=%s)", remember)
        return session

    def check_session(self) -> bool:
        """True while a session is valid; renews it near expiry."""
        session = self.get_session()
        if session is None:
            return False

        now = self._now_ms()
        if session.expires_at <= now:
            logger.info("Admin session expired")
            self.destroy_session()
            return False

        if session.expires_at - now < self._settings.renew_window_ms:
            self.refresh_session()

        return True

    def refresh_session(self) -> SessionRecord | None:
        """Push expiry to a full lifetime from now. No-op without a session."""
        session = self.get_session()
        if session is None:
            return None
        session.expires_at = self._now_ms() + self._settings.session_ms
        self._save(session)
        logger.debug("Admin session renewed until %d", session.expires_at)
        return session

    def destroy_session(self) -> None:
        self._store.remove_item(SESSION_KEY)
        self._cookies.clear_cookie(SESSION_COOKIE)
        self._events.log_event("LOGOUT", "Admin session ended")

    def remaining_ms(self) -> int:
        """Milliseconds until the stored session expires (0 if none)."""
        session = self.get_session()
        if session is None:
            return 0
        return max(0, session.expires_at - self._now_ms())

    def last_login(self) -> str | None:
        return self._store.get_item(LAST_LOGIN_KEY)
