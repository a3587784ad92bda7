# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Agriportal configuration loader.

Loads the YAML configuration, applies environment overrides
(optionally from a ``.env`` file) and builds the typed
:class:`AuthSettings` injected into the auth components.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("agriportal.config")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "default.yaml"

# env var -> dotted config key
_ENV_OVERRIDES = {
    "AGRIPORTAL_ADMIN_EMAIL": "admin.email",
    "AGRIPORTAL_ADMIN_PASSWORD": "admin.default_password",
    "AGRIPORTAL_DATA_DIR": "portal.data_dir",
    "AGRIPORTAL_LOG_LEVEL": "portal.log_level",
}


class PortalConfig:
    """Central configuration manager.

    Reads a YAML file, overlays environment variables, and provides
    dotted-key access to the merged values.
    """

    _REQUIRED_KEYS = {"portal", "admin", "lockout", "session", "security_log"}

    def __init__(
        self,
        config_path: str | Path = DEFAULT_CONFIG_PATH,
        env_file: str | Path | None = None,
    ) -> None:
        """Load configuration from the given YAML file.

        Args:
            config_path: Path to the main configuration YAML.
            env_file: Optional ``.env`` file whose variables are loaded
                before overrides are applied. Existing env vars win.
        """
        self._config_path = Path(config_path)
        self._env_file = Path(env_file) if env_file else None
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if self._env_file is not None:
            load_dotenv(self._env_file)
        if not self._config_path.exists():
            logger.warning("Config file not found: %s", self._config_path)
            self._data = {}
        else:
            raw = self._config_path.read_text(encoding="utf-8")
            self._data = yaml.safe_load(raw) or {}
        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        for env_name, dotted in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                self.set(dotted, value)

    def get(self, key: str, default: Any = None) -> Any:
        """Retrieve a configuration value by dotted key path.

        Args:
            key: Dotted key path (e.g. 'session.lifetime_minutes').
            default: Fallback value if key is not found.
        """
        current: Any = self._data
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def set(self, key: str, value: Any) -> None:
        """Set a value by dotted key path, creating sections as needed."""
        parts = key.split(".")
        current = self._data
        for part in parts[:-1]:
            nxt = current.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                current[part] = nxt
            current = nxt
        current[parts[-1]] = value

    def reload(self) -> None:
        """Hot-reload configuration from disk.

        On validation failure the previous config is kept and an error
        is logged.
        """
        old_data = copy.deepcopy(self._data)
        self._load()
        try:
            self.validate()
            logger.info("Configuration reloaded from %s", self._config_path)
        except ValueError as e:
            logger.error("Config reload failed validation: %s, keeping previous config", e)
            self._data = old_data

    def validate(self) -> bool:
        """Validate the current configuration.

        Raises:
            ValueError: If configuration is empty, incomplete or inconsistent.
        """
        if not self._data:
            raise ValueError("Configuration is empty or not loaded")

        missing = self._REQUIRED_KEYS - set(self._data.keys())
        if missing:
            raise ValueError(f"Missing required config sections: {', '.join(sorted(missing))}")

        log_level = str(self.get("portal.log_level", "")).upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {log_level!r}")

        if not self.get("admin.email"):
            raise ValueError("admin.email must be set")

        for key in ("lockout.max_attempts", "lockout.block_minutes", "session.lifetime_minutes"):
            value = self.get(key)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{key} must be a positive integer, got {value!r}")

        return True

    @property
    def data_dir(self) -> Path:
        return Path(os.path.expanduser(str(self.get("portal.data_dir", "~/.agriportal"))))

    @property
    def log_level(self) -> str:
        return str(self.get("portal.log_level", "INFO")).upper()


@dataclass(frozen=True)
class AuthSettings:
    """Policy values shared by the lockout guard, sessions, log and passwords."""

    admin_email: str = "admin@agriportal.local"
    default_password: str = "1234"
    max_attempts: int = 3
    block_minutes: int = 15
    session_minutes: int = 15
    renew_window_minutes: int = 5
    remember_days: int = 7
    max_log_entries: int = 100
    default_log_limit: int = 20
    log_retention_days: int = 30
    login_view: str = "admin-login.html"
    panel_view: str = "admin-panel.html"

    @property
    def block_ms(self) -> int:
        return self.block_minutes * 60 * 1000

    @property
    def session_ms(self) -> int:
        return self.session_minutes * 60 * 1000

    @property
    def renew_window_ms(self) -> int:
        return self.renew_window_minutes * 60 * 1000

    @classmethod
    def from_config(cls, config: PortalConfig) -> AuthSettings:
        """Build settings from a loaded config, keeping defaults for gaps."""
        defaults = cls()
        return cls(
            admin_email=str(config.get("admin.email", defaults.admin_email)),
            default_password=str(config.get("admin.default_password", defaults.default_password)),
            max_attempts=int(config.get("lockout.max_attempts", defaults.max_attempts)),
            block_minutes=int(config.get("lockout.block_minutes", defaults.block_minutes)),
            session_minutes=int(config.get("session.lifetime_minutes", defaults.session_minutes)),
            renew_window_minutes=int(
                config.get("session.renew_window_minutes", defaults.renew_window_minutes)
            ),
            remember_days=int(config.get("session.remember_days", defaults.remember_days)),
            max_log_entries=int(config.get("security_log.max_entries", defaults.max_log_entries)),
            default_log_limit=int(config.get("security_log.default_limit", defaults.default_log_limit)),
            log_retention_days=int(
                config.get("security_log.retention_days", defaults.log_retention_days)
            ),
            login_view=str(config.get("portal.login_view", defaults.login_view)),
            panel_view=str(config.get("portal.panel_view", defaults.panel_view)),
        )
