# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Redirect emission through the filter pipeline.

``Redirector.redirect`` runs the target through the ``redirect`` and
``redirect_status`` filters before building the Starlette response, so
observers such as the loop detector see the final value.
``safe_redirect`` restricts absolute targets to known hosts and then
delegates to ``redirect``.

The loop detector's stack analysis recognizes this module's
``apply_filters`` call and ``redirect`` entry point (see
``stack.RedirectsModuleProbe``). Keep both calls direct.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from starlette.responses import RedirectResponse

from .context import current_request_context
from .errors import InvalidRedirectStatusError
from .filters import FilterRegistry

logger = logging.getLogger(__name__)

REDIRECT_HOOK = "redirect"
REDIRECT_STATUS_HOOK = "redirect_status"
ALLOWED_HOSTS_HOOK = "allowed_redirect_hosts"

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_redirect(location: str) -> str:
    """Encode spaces and drop control characters (header injection guard)."""
    return _CONTROL_CHARS_RE.sub("", location.strip().replace(" ", "%20"))


class Redirector:
    """Issues redirects for an application that owns a FilterRegistry."""

    def __init__(
        self,
        filters: FilterRegistry,
        *,
        allowed_hosts: Iterable[str] = (),
        fallback_url: str = "/",
    ) -> None:
        self.filters = filters
        self.allowed_hosts = frozenset(h.lower() for h in allowed_hosts)
        self.fallback_url = fallback_url

    def redirect(self, location: str, status: int = 302) -> RedirectResponse | None:
        """Build a redirect response, or ``None`` when a filter cleared the target.

        Raises:
            InvalidRedirectStatusError: If the filtered status is not 3xx.
        """
        location = self.filters.apply_filters(REDIRECT_HOOK, location, status)
        status = self.filters.apply_filters(REDIRECT_STATUS_HOOK, status, location)

        if not location:
            logger.debug("Redirect suppressed by filter")
            return None
        if status < 300 or status > 399:
            raise InvalidRedirectStatusError(status)

        return RedirectResponse(sanitize_redirect(location), status_code=status)

    def safe_redirect(self, location: str, status: int = 302) -> RedirectResponse | None:
        """Redirect only to relative URLs or allowed hosts; otherwise to the fallback."""
        location = self.validate_redirect(sanitize_redirect(location), self.fallback_url)
        return self.redirect(location, status)

    def _request_host(self) -> str | None:
        ctx = current_request_context()
        if ctx is None:
            return None
        host = ctx.http_host or ctx.server_name
        if not host:
            return None
        return urlsplit(f"//{host}").hostname

    def validate_redirect(self, location: str, fallback: str = "") -> str:
        """Return *location* if it is safe to redirect to, else *fallback*."""
        location = location.strip()
        # Protocol-relative targets are checked as http
        test = f"http:{location}" if location.startswith("//") else location

        try:
            parts = urlsplit(test)
            host = parts.hostname
        except ValueError:
            return fallback

        if parts.scheme and parts.scheme not in ("http", "https"):
            return fallback
        if not parts.netloc:
            if parts.scheme:
                return fallback
            return location
        if not host:
            return fallback

        hosts = set(self.allowed_hosts)
        request_host = self._request_host()
        if request_host:
            hosts.add(request_host.lower())
        allowed = self.filters.apply_filters(ALLOWED_HOSTS_HOOK, sorted(hosts), host)

        if host.lower() not in {h.lower() for h in allowed}:
            logger.info("Unsafe redirect to %s replaced with fallback", host)
            return fallback
        return location
