"""Tests for core modules: PortalLogger, PortalConfig and AuthSettings."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import pytest

from agriportal.core.config import DEFAULT_CONFIG_PATH, AuthSettings, PortalConfig
from agriportal.core.logger import PortalLogger, _redact_value


# -------------------------------------------------------------------------
# PortalLogger Tests
# -------------------------------------------------------------------------

class TestPortalLogger:
    """Tests for the structured PortalLogger."""

    def test_creates_logger_with_name(self) -> None:
        log = PortalLogger(name="test")
        assert log._logger.name == "agriportal.test"

    def test_custom_level(self) -> None:
        log = PortalLogger(name="test_level", level="DEBUG")
        assert log._logger.level == logging.DEBUG

    def test_security_event_json(self, caplog) -> None:
        log = PortalLogger(name="test_sec")
        with caplog.at_level(logging.INFO, logger="agriportal.test_sec"):
            log.security_event("ACCOUNT_BLOCKED", "high", {"details": "blocked"})
        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        payload = json.loads(record.getMessage().removeprefix("[SECURITY] "))
        assert payload["event_type"] == "ACCOUNT_BLOCKED"
        assert payload["severity"] == "HIGH"
        assert payload["component"] == "test_sec"

    def test_unknown_severity_is_warning(self, caplog) -> None:
        log = PortalLogger(name="test_unknown")
        with caplog.at_level(logging.DEBUG, logger="agriportal.test_unknown"):
            log.security_event("X", "weird", {})
        assert caplog.records[-1].levelno == logging.WARNING

    def test_no_duplicate_handlers(self) -> None:
        log1 = PortalLogger(name="dedup_test")
        count = len(log1._logger.handlers)
        log2 = PortalLogger(name="dedup_test")
        assert len(log2._logger.handlers) == count

    def test_redacts_sensitive_keys(self) -> None:
        assert _redact_value("password", "1234") == "[REDACTED]"
        assert _redact_value("new_password", "Abcdef1!") == "[REDACTED]"
        assert _redact_value("session_id", "anything") == "[REDACTED]"

    def test_redacts_session_ids_in_text(self) -> None:
        value = _redact_value("details", "cookie for session_1772366400000_k3j9x0a1b")
        assert "session_1772366400000" not in value
        assert "[REDACTED]" in value

    def test_safe_values_untouched(self) -> None:
        assert _redact_value("ip", "192.168.1.1") == "192.168.1.1"
        assert _redact_value("count", 3) == 3

    def test_redaction_in_security_event(self, caplog) -> None:
        log = PortalLogger(name="test_sec_redact")
        with caplog.at_level(logging.INFO, logger="agriportal.test_sec_redact"):
            log.security_event("PASSWORD_CHANGE", "medium", {"password": "Hunter2!x"})
        assert "Hunter2!x" not in caplog.text

    def test_file_output(self, tmp_path: Path) -> None:
        log = PortalLogger(name="file_test", log_dir=tmp_path)
        log.security_event("LOGOUT", "low", {"details": "Admin session ended"})

        assert "[SECURITY]" in (tmp_path / "agriportal-file_test.log").read_text(encoding="utf-8")
        sec_lines = (tmp_path / "security_events.jsonl").read_text(encoding="utf-8").splitlines()
        assert json.loads(sec_lines[-1])["event_type"] == "LOGOUT"


# -------------------------------------------------------------------------
# PortalConfig Tests
# -------------------------------------------------------------------------

VALID_YAML = (
    "portal:\n  log_level: INFO\n  data_dir: /tmp/agriportal-test\n"
    "admin:\n  email: admin@example.org\n  default_password: '1234'\n"
    "lockout:\n  max_attempts: 3\n  block_minutes: 15\n"
    "session:\n  lifetime_minutes: 15\n  renew_window_minutes: 5\n  remember_days: 7\n"
    "security_log:\n  max_entries: 100\n  default_limit: 20\n  retention_days: 30\n"
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for var in (
        "AGRIPORTAL_ADMIN_EMAIL",
        "AGRIPORTAL_ADMIN_PASSWORD",
        "AGRIPORTAL_DATA_DIR",
        "AGRIPORTAL_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


class TestPortalConfig:
    def test_loads_shipped_default(self) -> None:
        cfg = PortalConfig(config_path=DEFAULT_CONFIG_PATH)
        assert cfg.validate() is True
        assert cfg.get("lockout.max_attempts") == 3
        assert cfg.get("session.lifetime_minutes") == 15

    def test_default_config_ships_inside_package(self) -> None:
        import agriportal.core.config as config_module

        assert DEFAULT_CONFIG_PATH.is_file()
        assert DEFAULT_CONFIG_PATH.parent == Path(config_module.__file__).resolve().parent

    def test_get_missing_key_returns_default(self) -> None:
        cfg = PortalConfig(config_path=DEFAULT_CONFIG_PATH)
        assert cfg.get("nonexistent.key") is None
        assert cfg.get("nonexistent.key", "fallback") == "fallback"

    def test_nonexistent_file_is_empty(self) -> None:
        cfg = PortalConfig(config_path="/nonexistent/config.yaml")
        with pytest.raises(ValueError, match="empty"):
            cfg.validate()

    def test_missing_sections(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("portal:\n  log_level: INFO\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Missing required"):
            PortalConfig(config_path=bad).validate()

    def test_invalid_log_level(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML.replace("log_level: INFO", "log_level: LOUD"), encoding="utf-8")
        with pytest.raises(ValueError, match="log_level"):
            PortalConfig(config_path=path).validate()

    def test_non_positive_lockout(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML.replace("max_attempts: 3", "max_attempts: 0"), encoding="utf-8")
        with pytest.raises(ValueError, match="max_attempts"):
            PortalConfig(config_path=path).validate()

    def test_env_overrides(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML, encoding="utf-8")
        monkeypatch.setenv("AGRIPORTAL_ADMIN_EMAIL", "ops@example.org")
        monkeypatch.setenv("AGRIPORTAL_DATA_DIR", str(tmp_path / "state"))
        cfg = PortalConfig(config_path=path)
        assert cfg.get("admin.email") == "ops@example.org"
        assert cfg.data_dir == tmp_path / "state"

    def test_env_file(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML, encoding="utf-8")
        env = tmp_path / ".env"
        env.write_text("AGRIPORTAL_ADMIN_PASSWORD=FromDotenv1!\n", encoding="utf-8")
        # register the var with monkeypatch so the dotenv value is undone afterwards
        monkeypatch.setenv("AGRIPORTAL_ADMIN_PASSWORD", "placeholder")
        monkeypatch.delenv("AGRIPORTAL_ADMIN_PASSWORD")
        cfg = PortalConfig(config_path=path, env_file=env)
        assert cfg.get("admin.default_password") == "FromDotenv1!"

    def test_reload_keeps_old_config_on_invalid(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML, encoding="utf-8")
        cfg = PortalConfig(config_path=path)
        path.write_text("portal:\n  log_level: INFO\n", encoding="utf-8")
        cfg.reload()
        assert cfg.get("admin.email") == "admin@example.org"

    def test_reload_applies_valid_changes(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(VALID_YAML, encoding="utf-8")
        cfg = PortalConfig(config_path=path)
        path.write_text(VALID_YAML.replace("block_minutes: 15", "block_minutes: 30"), encoding="utf-8")
        cfg.reload()
        assert cfg.get("lockout.block_minutes") == 30


class TestAuthSettings:
    def test_defaults(self) -> None:
        s = AuthSettings()
        assert s.max_attempts == 3
        assert s.block_ms == 15 * 60 * 1000
        assert s.session_ms == 15 * 60 * 1000
        assert s.renew_window_ms == 5 * 60 * 1000
        assert s.remember_days == 7
        assert s.max_log_entries == 100
        assert s.default_log_limit == 20

    def test_from_config(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text(
            VALID_YAML.replace("lifetime_minutes: 15", "lifetime_minutes: 45"), encoding="utf-8",
        )
        s = AuthSettings.from_config(PortalConfig(config_path=path))
        assert s.admin_email == "admin@example.org"
        assert s.default_password == "1234"
        assert s.session_minutes == 45

    def test_from_empty_config_uses_defaults(self) -> None:
        s = AuthSettings.from_config(PortalConfig(config_path="/nonexistent.yaml"))
        assert s == AuthSettings()


# -------------------------------------------------------------------------
# Packaging Tests
# -------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class TestPackaging:
    def test_metadata_names_no_readme(self) -> None:
        """No README ships with the project, so the metadata names none."""
        text = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
        assert re.search(r"^readme\s*=", text, re.MULTILINE) is None

    def test_default_yaml_declared_as_package_data(self) -> None:
        text = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
        assert '"agriportal.core" = ["*.yaml"]' in text
