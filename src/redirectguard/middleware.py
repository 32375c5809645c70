# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Redirect guard middleware — request-context binding + debug abort page.

Standalone leaf module with zero dependency on the detector.

Design choices:

- **Pure ASGI** — no BaseHTTPMiddleware (avoids body buffering, SSE issues).
- **ContextVar binding** — the RequestContext snapshot is taken once from
  the scope and published for the duration of the request only.
- **Abort page** — RedirectLoopAborted raised before the response started
  becomes a ``text/html`` response carrying the diagnostic document.
  After the response started, the exception propagates unchanged.
"""

from __future__ import annotations

import logging

from .context import RequestContext, bind_request_context, reset_request_context
from .errors import RedirectLoopAborted

logger = logging.getLogger(__name__)


class RedirectGuardMiddleware:
    """Pure ASGI middleware that makes the current request visible to the guard."""

    def __init__(self, app) -> None:
        self.app = app

    async def __call__(self, scope, receive, send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = bind_request_context(RequestContext.from_scope(scope))
        _started = False

        async def _send_tracking_start(message) -> None:
            nonlocal _started
            if message["type"] == "http.response.start":
                _started = True
            await send(message)

        try:
            await self.app(scope, receive, _send_tracking_start)
        except RedirectLoopAborted as exc:
            if _started:
                raise
            logger.info("Request aborted: %s", exc.title)
            await _send_abort_page(send, exc)
        finally:
            reset_request_context(token)


async def _send_abort_page(send, exc: RedirectLoopAborted) -> None:
    """Send the debug diagnostic document as the terminal response."""
    body = (
        "<!DOCTYPE html>\n<html><head>"
        '<meta charset="utf-8">'
        f"<title>{exc.title}</title>"
        f"</head><body>\n{exc.document}</body></html>\n"
    ).encode("utf-8")

    await send(
        {
            "type": "http.response.start",
            "status": exc.status,
            "headers": [
                (b"content-type", b"text/html; charset=utf-8"),
                (b"content-length", str(len(body)).encode("latin-1")),
                (b"cache-control", b"no-store, max-age=0"),
            ],
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
