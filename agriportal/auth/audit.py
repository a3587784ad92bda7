# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Security event log: newest-first, capped audit trail in the store."""

from __future__ import annotations

import json
import logging
import platform
import random
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError

from agriportal.core.config import AuthSettings
from agriportal.core.logger import PortalLogger
from agriportal.storage.kv import KeyValueStore

from .models import SecurityEvent

logger = logging.getLogger("agriportal.auth")

LOGS_KEY = "security_logs"

_EVENT_SEVERITY = {
    "ACCOUNT_BLOCKED": "high",
    "PASSWORD_CHANGE": "medium",
}


def simulated_origin() -> str:
    """Best-effort origin address.

    There is no server to report the real client address, so this is a
    predictable placeholder from the private 192.168.1.0/24 range.
    """
    return f"192.168.1.{random.randint(0, 254)}"


def default_client_descriptor() -> str:
    return (
        f"agriportal-auth ({platform.system() or 'unknown'}; "
        f"{platform.python_implementation()} {platform.python_version()})"
    )


def format_timestamp(epoch_seconds: float) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SecurityEventLog:
    """Append-only audit trail of auth events.

    Entries are prepended and the stored array is truncated to
    ``settings.max_log_entries``. Each event is mirrored to the
    structured logger as a security event.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: AuthSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
        origin: Callable[[], str] = simulated_origin,
        client: Callable[[], str] = default_client_descriptor,
        portal_logger: PortalLogger | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or AuthSettings()
        self._clock = clock
        self._origin = origin
        self._client = client
        self._portal_logger = portal_logger or PortalLogger(name="security")

    def _load(self) -> list[SecurityEvent]:
        raw = self._store.get_item(LOGS_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Security log unreadable, treating as empty: %s", e)
            return []
        if not isinstance(entries, list):
            logger.warning("Security log is not a list, treating as empty")
            return []

        events: list[SecurityEvent] = []
        for entry in entries:
            try:
                events.append(SecurityEvent.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping malformed security log entry: %r", entry)
        return events

    def _save(self, events: list[SecurityEvent]) -> None:
        payload = [e.model_dump(by_alias=True) for e in events]
        self._store.set_item(LOGS_KEY, json.dumps(payload, ensure_ascii=False))

    def log_event(self, action: str, details: str = "") -> SecurityEvent:
        """Record an event and return it."""
        event = SecurityEvent(
            timestamp=format_timestamp(self._clock()),
            action=action,
            details=details,
            ip=self._origin(),
            user_agent=self._client(),
        )
        events = self._load()
        events.insert(0, event)
        del events[self._settings.max_log_entries:]
        self._save(events)

        self._portal_logger.security_event(
            event_type=action,
            severity=_EVENT_SEVERITY.get(action, "low"),
            details={"timestamp": event.timestamp, "details": details, "ip": event.ip},
        )
        return event

    def get_events(self, limit: Optional[int] = None) -> list[SecurityEvent]:
        """Return the most recent events, newest first."""
        if limit is None:
            limit = self._settings.default_log_limit
        return self._load()[:max(limit, 0)]

    def prune_older_than(self, days: Optional[int] = None) -> int:
        """Drop events older than ``days``. Returns the remaining count."""
        if days is None:
            days = self._settings.log_retention_days
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        cutoff = now - timedelta(days=days)

        kept: list[SecurityEvent] = []
        for event in self._load():
            try:
                if parse_timestamp(event.timestamp) > cutoff:
                    kept.append(event)
            except ValueError:
                logger.warning("Dropping event with bad timestamp: %r", event.timestamp)
        self._save(kept)
        logger.info("Pruned security log to %d entries (cutoff %s)", len(kept), cutoff.isoformat())
        return len(kept)
