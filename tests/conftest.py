# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import redirectguard  # noqa: F401
except ImportError:
    raise ImportError("redirectguard is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from redirectguard.context import RequestContext


@pytest.fixture
def https_environ() -> dict[str, str]:
    """Server variables for ``https://example.com/a?x=1``."""
    return {
        "HTTPS": "on",
        "SERVER_PROTOCOL": "HTTP/1.1",
        "SERVER_PORT": "443",
        "SERVER_NAME": "example.com",
        "HTTP_HOST": "example.com",
        "REQUEST_URI": "/a?x=1",
    }


@pytest.fixture
def https_context(https_environ) -> RequestContext:
    return RequestContext.from_environ(https_environ)
