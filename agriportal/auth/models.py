# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Pydantic models for admin authentication state and results."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionRecord(BaseModel):
    """The single admin session, stored JSON-encoded under ``admin_session``."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    issued_at: int = Field(..., alias="timestamp")  # epoch ms
    expires_at: int = Field(..., alias="expiry")  # epoch ms
    remember: bool = False
    session_id: str = Field(..., alias="sessionId", min_length=1)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class SecurityEvent(BaseModel):
    """One audit-trail entry. Immutable once written."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: str  # ISO-8601, UTC
    action: str
    details: str = ""
    ip: str = ""
    user_agent: str = Field("", alias="userAgent")


class PasswordValidation(BaseModel):
    """Outcome of a password policy check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    strength: int = Field(0, ge=0, le=5)


LoginFailure = Literal["blocked", "invalid_email", "invalid_password"]


class LoginResult(BaseModel):
    """Result of one login submission."""

    success: bool
    reason: Optional[LoginFailure] = None
    message: str = ""
    redirect: Optional[str] = None
    session_id: Optional[str] = None


class LoginStats(BaseModel):
    """Attempt/lockout counters for the login view."""

    attempts: int = 0
    attempts_left: int
    blocked: bool = False
    blocked_minutes_left: int = 0
