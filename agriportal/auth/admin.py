# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Admin login flow tying the guard, session, log and passwords together."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from agriportal.core.config import AuthSettings, PortalConfig
from agriportal.core.logger import PortalLogger
from agriportal.storage.cookies import CookieJar
from agriportal.storage.kv import JsonFileStore, KeyValueStore, MemoryStore

from .audit import SecurityEventLog, default_client_descriptor, simulated_origin
from .lockout import LockoutGuard
from .models import LoginResult, LoginStats
from .passwords import PasswordManager
from .session import SessionManager

logger = logging.getLogger("agriportal.auth")

BLOCKED_MESSAGE = "Account is temporarily blocked. Please try again later."
INVALID_EMAIL_MESSAGE = "Invalid email address"
INVALID_PASSWORD_MESSAGE = "Incorrect password"

STORE_FILE = "storage.json"
COOKIE_FILE = "cookies.json"


class AdminAuth:
    """Client-side admin gate for the portal.

    Not a security boundary: anyone with access to the store can read
    the password or clear the lockout.
    """

    def __init__(
        self,
        store: KeyValueStore,
        cookie_store: KeyValueStore | None = None,
        settings: AuthSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
        origin: Callable[[], str] = simulated_origin,
        client: Callable[[], str] = default_client_descriptor,
        portal_logger: PortalLogger | None = None,
    ) -> None:
        self.settings = settings or AuthSettings()
        self.store = store
        self.cookies = CookieJar(cookie_store if cookie_store is not None else MemoryStore(), clock)
        self.events = SecurityEventLog(
            store,
            self.settings,
            clock=clock,
            origin=origin,
            client=client,
            portal_logger=portal_logger,
        )
        self.guard = LockoutGuard(store, self.events, self.settings, clock)
        self.sessions = SessionManager(store, self.cookies, self.events, self.settings, clock)
        self.passwords = PasswordManager(store, self.events, self.settings)

    @classmethod
    def from_config(cls, config: PortalConfig) -> AdminAuth:
        """Build a file-backed instance under ``config.data_dir``."""
        data_dir = config.data_dir
        return cls(
            JsonFileStore(data_dir / STORE_FILE),
            JsonFileStore(data_dir / COOKIE_FILE),
            AuthSettings.from_config(config),
            portal_logger=PortalLogger(name="security", level=config.log_level, log_dir=data_dir / "logs"),
        )

    def login(self, email: str, password: str, remember: bool = False) -> LoginResult:
        # Lockout is consulted before either credential.
        if self.guard.is_blocked():
            logger.warning("Login refused: account blocked")
            return LoginResult(success=False, reason="blocked", message=BLOCKED_MESSAGE)

        if email.strip() != self.settings.admin_email:
            self.guard.record_failed_attempt()
            return LoginResult(success=False, reason="invalid_email", message=INVALID_EMAIL_MESSAGE)

        if not self.passwords.matches(password):
            self.guard.record_failed_attempt()
            return LoginResult(
                success=False, reason="invalid_password", message=INVALID_PASSWORD_MESSAGE,
            )

        self.guard.reset()
        session = self.sessions.create_session(remember)
        event = self.events.log_event("LOGIN_SUCCESS", "Admin login")
        logger.info("Admin login from %s", event.ip)
        return LoginResult(
            success=True,
            redirect=self.settings.panel_view,
            session_id=session.session_id,
        )

    def logout(self) -> None:
        self.sessions.destroy_session()

    def is_authenticated(self) -> bool:
        return self.sessions.check_session()

    def guard_view(self, view: str) -> str | None:
        """Login view to redirect to, or None if ``view`` may be shown."""
        if not self._is_privileged(view):
            return None
        if self.sessions.check_session():
            return None
        return self.settings.login_view

    def _is_privileged(self, view: str) -> bool:
        panel = self.settings.panel_view.rsplit(".", 1)[0]
        return panel in view

    def login_stats(self) -> LoginStats:
        # clears an expired block and its counter before reading them
        remaining_ms = self.guard.remaining_ms()
        attempts = self.guard.attempts()
        return LoginStats(
            attempts=attempts,
            attempts_left=max(0, self.settings.max_attempts - attempts),
            blocked=remaining_ms > 0,
            blocked_minutes_left=math.ceil(remaining_ms / 60000),
        )
