# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""RequestContext — immutable snapshot of the in-flight request.

Leaf module with zero redirectguard imports. The field names follow the
CGI/WSGI server variables the current-URL resolver reads, so a WSGI
environ maps onto it directly; ASGI scopes are translated by
``RequestContext.from_scope``.

The snapshot for the running request is published through a ContextVar
(set by RedirectGuardMiddleware), so concurrent requests never share it.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from contextvars import ContextVar, Token
from typing import Any

_current_context: ContextVar[RequestContext | None] = ContextVar("redirectguard_request_context", default=None)


def _get_header(raw_headers, name: bytes) -> str | None:
    """Get the first header value by lowercase name."""
    for hdr_name, hdr_value in raw_headers:
        if hdr_name.lower() == name:
            return hdr_value.decode("latin-1").strip()
    return None


def _environ_request_uri(environ: Mapping[str, Any]) -> str:
    """Rebuild the raw path+query when the server does not expose REQUEST_URI."""
    raw_uri = environ.get("RAW_URI")
    if raw_uri:
        return raw_uri
    uri = f"{environ.get('SCRIPT_NAME', '')}{environ.get('PATH_INFO', '')}" or "/"
    query = environ.get("QUERY_STRING", "")
    if query:
        uri = f"{uri}?{query}"
    return uri


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class RequestContext:
    """Per-request server variables used to rebuild the current URL.

    ``server_protocol``, ``server_port`` and ``request_uri`` are mandatory;
    everything else degrades through the resolver's fallback rules.
    """

    server_protocol: str
    server_port: str
    request_uri: str
    https: str | None = None
    server_name: str | None = None
    http_host: str | None = None
    http_x_forwarded_host: str | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> RequestContext:
        """Build from a WSGI/CGI environ (``$_SERVER``-style mapping)."""
        request_uri = environ.get("REQUEST_URI")
        if request_uri is None:
            request_uri = _environ_request_uri(environ)
        return cls(
            server_protocol=str(environ["SERVER_PROTOCOL"]),
            server_port=str(environ["SERVER_PORT"]),
            request_uri=request_uri,
            https=environ.get("HTTPS"),
            server_name=environ.get("SERVER_NAME"),
            http_host=environ.get("HTTP_HOST"),
            http_x_forwarded_host=environ.get("HTTP_X_FORWARDED_HOST"),
        )

    @classmethod
    def from_scope(cls, scope: Mapping[str, Any]) -> RequestContext:
        """Build from an ASGI ``http`` scope.

        ``raw_path`` is preferred over ``path`` so the request URI keeps its
        original percent-encoding. Any query string some transports leave on
        ``raw_path`` is dropped in favour of ``query_string``. Without
        ``raw_path``, the mount prefix in ``root_path`` is prepended to
        ``path`` unless ``path`` already carries it.
        """
        tls = scope.get("scheme") in ("https", "wss")
        server = scope.get("server")
        if server and server[1] is not None:
            server_name, port = server[0], str(server[1])
        else:
            server_name, port = (server[0] if server else None), ("443" if tls else "80")

        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.split(b"?", 1)[0].decode("latin-1")
        else:
            root_path = (scope.get("root_path") or "").rstrip("/")
            path = scope.get("path") or "/"
            if root_path and path != root_path and not path.startswith(root_path + "/"):
                path = root_path + path
        query = scope.get("query_string", b"")
        request_uri = f"{path}?{query.decode('latin-1')}" if query else path

        raw_headers = scope.get("headers", [])
        return cls(
            server_protocol=f"HTTP/{scope.get('http_version', '1.1')}",
            server_port=port,
            request_uri=request_uri,
            https="on" if tls else None,
            server_name=server_name,
            http_host=_get_header(raw_headers, b"host"),
            http_x_forwarded_host=_get_header(raw_headers, b"x-forwarded-host"),
        )


def bind_request_context(ctx: RequestContext) -> Token:
    """Publish *ctx* as the current request's context. Returns a reset token."""
    return _current_context.set(ctx)


def reset_request_context(token: Token) -> None:
    _current_context.reset(token)


def current_request_context() -> RequestContext | None:
    """Return the context bound for the running request, if any."""
    return _current_context.get()
