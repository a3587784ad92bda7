"""Shared fixtures: a controllable clock and in-memory stores."""

from __future__ import annotations

import pytest

from agriportal.auth.admin import AdminAuth
from agriportal.auth.audit import SecurityEventLog
from agriportal.core.config import AuthSettings
from agriportal.storage.kv import MemoryStore

# 2026-03-01T12:00:00Z
START = 1772366400.0


class FakeClock:
    """Callable clock returning epoch seconds; advanced by hand."""

    def __init__(self, start: float = START) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0, days: float = 0) -> None:
        self.now += seconds + minutes * 60 + days * 86400


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(admin_email="admin@example.org", default_password="1234")


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def cookie_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def events(store, settings, clock) -> SecurityEventLog:
    return SecurityEventLog(
        store, settings, clock=clock, origin=lambda: "192.168.1.7", client=lambda: "pytest",
    )


@pytest.fixture
def auth(store, cookie_store, settings, clock) -> AdminAuth:
    return AdminAuth(
        store, cookie_store, settings,
        clock=clock, origin=lambda: "192.168.1.7", client=lambda: "pytest",
    )
