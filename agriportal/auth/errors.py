# SPDX-License-Identifier: AGPL-3.0-only OR LicenseRef-Moltr-Commercial
# Copyright (C) 2026 Walter Troska / moltrHQ <hello@moltr.tech>
# See LICENSE (AGPL-3.0) or LICENSE-COMMERCIAL for licensing terms.

"""Exceptions raised by the admin-auth components."""

from __future__ import annotations


class AgriportalAuthError(Exception):
    """Base class for admin-auth errors."""


class PasswordChangeError(AgriportalAuthError):
    """A password change was refused.

    ``errors`` lists each unmet rule (or the single current-password
    mismatch message).
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))
