# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Durable cookie jar kept apart from the primary store."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

from .kv import KeyValueStore

logger = logging.getLogger("agriportal.storage")

DAY_MS = 24 * 60 * 60 * 1000


class CookieJar:
    """Cookie-equivalent records with their own expiry.

    Each cookie is one JSON record in the backing store:
    ``{"value", "expires", "path", "secure", "samesite"}`` where
    ``expires`` is epoch milliseconds.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def set_cookie(
        self,
        name: str,
        value: str,
        days: int,
        *,
        path: str = "/",
        secure: bool = True,
        samesite: str = "Strict",
    ) -> dict:
        expires = self._now_ms() + days * DAY_MS
        record = {
            "value": value,
            "expires": expires,
            "expires_utc": datetime.fromtimestamp(expires / 1000, tz=timezone.utc).isoformat(),
            "path": path,
            "secure": secure,
            "samesite": samesite,
        }
        self._store.set_item(name, json.dumps(record))
        return record

    def get_record(self, name: str) -> dict | None:
        """Return the full cookie record if present and unexpired."""
        raw = self._store.get_item(name)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
            expires = int(record["expires"])
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Discarding malformed cookie %s: %s", name, e)
            self._store.remove_item(name)
            return None
        if expires <= self._now_ms():
            self._store.remove_item(name)
            return None
        return record

    def get_cookie(self, name: str) -> str | None:
        record = self.get_record(name)
        return None if record is None else record.get("value")

    def clear_cookie(self, name: str) -> None:
        self._store.remove_item(name)
