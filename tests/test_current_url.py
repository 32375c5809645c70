# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the current-URL resolver — scheme, port omission, host precedence."""

from __future__ import annotations

import pytest

from redirectguard.context import RequestContext
from redirectguard.current_url import is_tls, port_suffix, resolve, url_origin


def _ctx(**overrides) -> RequestContext:
    fields = {
        "server_protocol": "HTTP/1.1",
        "server_port": "80",
        "request_uri": "/",
        "server_name": "origin.local",
    }
    fields.update(overrides)
    return RequestContext(**fields)


# ── TestScheme ────────────────────────────────────────────────────────


class TestScheme:
    def test_plain_http(self):
        assert url_origin(_ctx(http_host="example.com")) == "http://example.com"

    def test_https_on(self):
        assert url_origin(_ctx(https="on", server_port="443", http_host="example.com")) == "https://example.com"

    def test_https_indicator_is_case_sensitive(self):
        assert is_tls(_ctx(https="ON")) is False
        assert is_tls(_ctx(https="On")) is False

    def test_upper_case_indicator_resolves_to_http(self):
        ctx = _ctx(https="ON", server_port="443", request_uri="/a", http_host="h")
        assert resolve(ctx) == "http://h/a"

    def test_https_off_is_not_tls(self):
        """IIS sets HTTPS=off on plain connections."""
        assert is_tls(_ctx(https="off")) is False
        assert url_origin(_ctx(https="off", http_host="example.com")).startswith("http://")

    def test_https_empty_is_not_tls(self):
        assert is_tls(_ctx(https="")) is False

    def test_protocol_lowercased(self):
        assert url_origin(_ctx(server_protocol="HTTP/2.0", http_host="h")) == "http://h"

    def test_protocol_without_separator_yields_empty_token(self):
        assert url_origin(_ctx(server_protocol="HTTP", http_host="h")) == "://h"


# ── TestPort ──────────────────────────────────────────────────────────


class TestPort:
    @pytest.mark.parametrize(
        ("https", "port", "expected"),
        [
            (None, "80", ""),
            (None, "443", ":443"),
            (None, "8080", ":8080"),
            ("on", "443", ""),
            ("on", "80", ":80"),
            ("on", "8443", ":8443"),
        ],
    )
    def test_port_suffix(self, https, port, expected):
        assert port_suffix(_ctx(https=https, server_port=port)) == expected

    def test_fallback_appends_port(self):
        assert url_origin(_ctx(server_port="8080")) == "http://origin.local:8080"

    def test_fallback_omits_default_port(self):
        assert url_origin(_ctx(server_port="80")) == "http://origin.local"

    def test_host_header_never_gets_port(self):
        """Only the server-name fallback carries the port suffix."""
        assert url_origin(_ctx(server_port="8080", http_host="example.com")) == "http://example.com"

    def test_forwarded_host_never_gets_port(self):
        ctx = _ctx(server_port="8080", http_x_forwarded_host="public.example")
        assert url_origin(ctx, use_forwarded_host=True) == "http://public.example"


# ── TestHostPrecedence ────────────────────────────────────────────────


class TestHostPrecedence:
    def test_forwarded_overrides_host(self):
        ctx = _ctx(http_host="internal:8000", http_x_forwarded_host="public.example")
        assert url_origin(ctx, use_forwarded_host=True) == "http://public.example"

    def test_forwarded_ignored_when_not_requested(self):
        ctx = _ctx(http_host="internal:8000", http_x_forwarded_host="public.example")
        assert url_origin(ctx) == "http://internal:8000"

    def test_forwarded_without_host_header(self):
        ctx = _ctx(http_x_forwarded_host="public.example")
        assert url_origin(ctx, use_forwarded_host=True) == "http://public.example"

    def test_host_overrides_server_name(self):
        assert url_origin(_ctx(http_host="example.com")) == "http://example.com"

    def test_server_name_fallback(self):
        assert url_origin(_ctx()) == "http://origin.local"

    def test_missing_server_name_does_not_raise(self):
        assert url_origin(_ctx(server_name=None, server_port="81")) == "http://:81"


# ── TestResolve ───────────────────────────────────────────────────────


class TestResolve:
    def test_full_url(self, https_context):
        assert resolve(https_context, use_forwarded_host=True) == "https://example.com/a?x=1"

    def test_request_uri_not_reencoded(self):
        ctx = _ctx(http_host="example.com", request_uri="/caf%C3%A9?q=a b&x=%2F")
        assert resolve(ctx) == "http://example.com/caf%C3%A9?q=a b&x=%2F"

    def test_from_environ_minimal(self):
        ctx = RequestContext.from_environ({"SERVER_PROTOCOL": "HTTP/1.0", "SERVER_PORT": "80", "REQUEST_URI": "/x"})
        assert resolve(ctx, use_forwarded_host=True) == "http:///x"


