# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""redirectguard exception hierarchy.

All redirectguard errors inherit from RedirectGuardError, allowing callers
to catch the base class for any guard failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class RedirectGuardError(Exception):
    """Base exception for all redirectguard errors."""


class InvalidRedirectStatusError(RedirectGuardError, ValueError):
    """Redirect requested with a status code outside the 3xx range."""

    def __init__(self, status: int) -> None:
        super().__init__(f"Redirect status must be 3xx, got {status}")
        self.status = status


class RedirectLoopAborted(RedirectGuardError):
    """Request terminated because a redirect loop was detected in debug mode.

    Carries the rendered diagnostic document. RedirectGuardMiddleware turns
    it into the terminal response of the request.
    """

    def __init__(
        self,
        location: str,
        document: str,
        *,
        title: str = "Redirect loop aborted",
        status: int = 500,
    ) -> None:
        super().__init__(f"{title}: {location}")
        self.location = location
        self.document = document
        self.title = title
        self.status = status
