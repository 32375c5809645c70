# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Current-URL resolver — rebuilds the absolute URL of the in-flight request.

Pure functions over a RequestContext. No I/O, never raises for a context
carrying the mandatory fields.

Host precedence: forwarded host (opt-in) > Host header > server name.
Only the server-name fallback carries the port suffix; a Host or forwarded
host header is used verbatim.
"""

from __future__ import annotations

from .context import RequestContext


def is_tls(ctx: RequestContext) -> bool:
    """True only for the exact indicator ``on``; ``ON``, ``off`` and empty mean plain HTTP."""
    return ctx.https == "on"


def port_suffix(ctx: RequestContext) -> str:
    """``:<port>`` unless the port is the scheme default (compared as strings)."""
    tls = is_tls(ctx)
    port = ctx.server_port
    if (not tls and port == "80") or (tls and port == "443"):
        return ""
    return f":{port}"


def url_origin(ctx: RequestContext, use_forwarded_host: bool = False) -> str:
    """Return ``<scheme>://<host>`` for the request."""
    tls = is_tls(ctx)
    sp = ctx.server_protocol.lower()
    # "HTTP/1.1" -> "http"; a protocol without a version separator yields ""
    token = sp[: sp.index("/")] if "/" in sp else ""
    scheme = token + ("s" if tls else "")

    if use_forwarded_host and ctx.http_x_forwarded_host is not None:
        host = ctx.http_x_forwarded_host
    elif ctx.http_host is not None:
        host = ctx.http_host
    else:
        host = (ctx.server_name or "") + port_suffix(ctx)

    return f"{scheme}://{host}"


def resolve(ctx: RequestContext, use_forwarded_host: bool = False) -> str:
    """Return the full current URL: origin + raw path and query, not re-encoded."""
    return url_origin(ctx, use_forwarded_host) + ctx.request_uri
