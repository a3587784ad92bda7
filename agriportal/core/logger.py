# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Agriportal structured logging.

Wraps stdlib logging for the admin-auth components: console output,
optional rotating files, and one JSON line per security event with
credentials and session identifiers redacted.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# Values that look like session ids or bearer material
_SENSITIVE_PATTERNS = re.compile(
    r"(?:session_\d{10,}_[a-z0-9]{4,})"      # admin session ids
    r"|(?:eyJ[A-Za-z0-9_\-]{50,})"           # JWTs
)

_SENSITIVE_KEYS = frozenset({
    "password", "current_password", "new_password", "passwd", "pwd",
    "secret", "token", "session_id", "sessionid", "cookie",
    "authorization", "credential",
})

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _redact_value(key: str, value: Any) -> Any:
    """Redact sensitive values in log context."""
    if isinstance(value, str):
        if key.lower() in _SENSITIVE_KEYS:
            return "[REDACTED]"
        if _SENSITIVE_PATTERNS.search(value):
            return _SENSITIVE_PATTERNS.sub("[REDACTED]", value)
    return value


class PortalLogger:
    """Structured logger for admin authentication events."""

    def __init__(
        self,
        name: str = "auth",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        max_bytes: int = 5 * 1024 * 1024,  # 5 MB
        backup_count: int = 3,
    ) -> None:
        """Initialize the logger.

        Args:
            name: Component identifier, appended to the ``agriportal.`` prefix.
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            log_dir: Directory for log files. If None, only logs to stderr.
            max_bytes: Max size per log file before rotation.
            backup_count: Number of rotated log files to keep.
        """
        self._name = name
        self._logger = logging.getLogger(f"agriportal.{name}")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._security_file_handler: Optional[logging.Handler] = None

        fmt = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Only add handlers if logger has none (prevent duplicates)
        if not self._logger.handlers:
            console = logging.StreamHandler()
            console.setFormatter(fmt)
            self._logger.addHandler(console)

            if log_dir:
                log_dir = Path(log_dir)
                log_dir.mkdir(parents=True, exist_ok=True)

                file_handler = RotatingFileHandler(
                    log_dir / f"agriportal-{name}.log",
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding="utf-8",
                )
                file_handler.setFormatter(fmt)
                self._logger.addHandler(file_handler)

                self._security_file_handler = RotatingFileHandler(
                    log_dir / "security_events.jsonl",
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding="utf-8",
                )
                self._security_file_handler.setFormatter(logging.Formatter("%(message)s"))

    def security_event(self, event_type: str, severity: str, details: dict[str, Any]) -> None:
        """Log a structured security event.

        Args:
            event_type: Action tag (e.g. 'LOGIN_SUCCESS', 'ACCOUNT_BLOCKED').
            severity: Severity level (low, medium, high, critical).
            details: Event-specific detail fields.
        """
        safe_details = {k: _redact_value(k, v) for k, v in details.items()}

        event = {
            "event_id": str(uuid.uuid4()),
            "logged_at": datetime.now(timezone.utc).isoformat(),
            "component": self._name,
            "event_type": event_type,
            "severity": severity.upper(),
            **safe_details,
        }
        level = _SEVERITY_LEVELS.get(severity.lower(), logging.WARNING)

        json_line = json.dumps(event, ensure_ascii=False, default=str)
        self._logger.log(level, "[SECURITY] %s", json_line)

        if self._security_file_handler:
            record = logging.LogRecord(
                name="security", level=level, pathname="", lineno=0,
                msg=json_line, args=(), exc_info=None,
            )
            self._security_file_handler.emit(record)
