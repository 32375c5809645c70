# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""redirectguard: redirect loop detection for Starlette/ASGI applications.

Flags redirects whose target is the URL currently being served and points
at the code that issued them:

- debug mode: the request is aborted with a diagnostic page
- otherwise: one log record naming ``<file>:<line>`` of the initiator
"""

from __future__ import annotations

from .config import GuardConfig, load_config
from .context import RequestContext, current_request_context
from .current_url import resolve, url_origin
from .errors import InvalidRedirectStatusError, RedirectGuardError, RedirectLoopAborted
from .filters import FilterRegistry
from .guard import RedirectLoopDetector, install, untrailingslashit
from .middleware import RedirectGuardMiddleware
from .redirects import Redirector
from .reporter import DebugReporter, LogReporter
from .stack import CallFrame, PathNormalizer, RedirectsModuleProbe, capture_stack, find_initiator

__version__ = "1.0.1"

__all__ = [
    "CallFrame",
    "DebugReporter",
    "FilterRegistry",
    "GuardConfig",
    "InvalidRedirectStatusError",
    "LogReporter",
    "PathNormalizer",
    "RedirectGuardError",
    "RedirectGuardMiddleware",
    "RedirectLoopAborted",
    "RedirectLoopDetector",
    "Redirector",
    "RedirectsModuleProbe",
    "RequestContext",
    "capture_stack",
    "current_request_context",
    "find_initiator",
    "install",
    "load_config",
    "resolve",
    "untrailingslashit",
    "url_origin",
]
