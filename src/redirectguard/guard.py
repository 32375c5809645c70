# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Redirect loop detector — observes the ``redirect`` filter.

Every outgoing redirect target is compared with the current request URL
(forwarded host honoured), both with trailing slashes stripped. On a match
the call stack is analyzed for the initiator and a reporter is invoked.
The target itself is always returned unchanged.

Collaborators are injected, so tests can supply a fixed request context,
a synthetic stack or a fake probe. ``install`` wires the production set up
and registers the filter; it is meant to run once, in application setup.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from .config import GuardConfig, load_config
from .context import RequestContext, current_request_context
from .current_url import resolve
from .errors import RedirectLoopAborted
from .filters import FilterRegistry
from .redirects import REDIRECT_HOOK
from .reporter import DebugReporter, LogReporter, Reporter
from .stack import (
    CallFrame,
    HostFrameworkProbe,
    PathNormalizer,
    RedirectsModuleProbe,
    capture_stack,
    find_initiator,
)

logger = logging.getLogger(__name__)


def untrailingslashit(value: str) -> str:
    """Strip every trailing forward slash and backslash."""
    return value.rstrip("/\\")


class RedirectLoopDetector:
    """Flags redirects whose target is the URL being served."""

    def __init__(
        self,
        *,
        context_provider: Callable[[], RequestContext | None] = current_request_context,
        capture: Callable[[], Sequence[CallFrame]] = capture_stack,
        probe: HostFrameworkProbe | None = None,
        path_normalizer: PathNormalizer | None = None,
        is_debug: Callable[[], bool] = lambda: False,
        debug_reporter: Reporter | None = None,
        log_reporter: Reporter | None = None,
    ) -> None:
        self._context_provider = context_provider
        self._capture = capture
        self.probe = probe if probe is not None else RedirectsModuleProbe()
        self.path_normalizer = path_normalizer
        self._is_debug = is_debug
        self.debug_reporter = debug_reporter if debug_reporter is not None else DebugReporter()
        self.log_reporter = log_reporter if log_reporter is not None else LogReporter()

    def on_redirect(self, location: Any, *args: Any) -> Any:
        """Filter callback. Returns *location* untouched, loop or not."""
        try:
            looping = self.is_loop(location)
        except Exception:
            logger.debug("Redirect loop check failed for %r", location, exc_info=True)
            looping = False

        if looping:
            self._handle_loop(location)
        return location

    def is_loop(self, location: str) -> bool:
        ctx = self._context_provider()
        if ctx is None:
            return False
        current = resolve(ctx, use_forwarded_host=True)
        return untrailingslashit(location) == untrailingslashit(current)

    def find_loop_initiator(self) -> CallFrame | None:
        """Best-effort location of the code that issued the redirect."""
        try:
            initiator = find_initiator(self._capture(), self.probe)
        except Exception:
            logger.debug("Stack analysis failed", exc_info=True)
            return None

        if initiator is not None and self.path_normalizer is not None:
            initiator = self.path_normalizer.normalize_frame(initiator)
        return initiator

    def _handle_loop(self, location: str) -> None:
        initiator = self.find_loop_initiator()
        try:
            debug = self._is_debug()
        except Exception:
            logger.debug("Debug flag lookup failed, reporting to the log", exc_info=True)
            debug = False
        reporter = self.debug_reporter if debug else self.log_reporter
        try:
            reporter.report(location, initiator)
        except RedirectLoopAborted:
            raise
        except Exception:
            logger.exception("Redirect loop reporter failed")


def install(
    filters: FilterRegistry,
    config: GuardConfig | None = None,
    **overrides: Any,
) -> RedirectLoopDetector:
    """Create a detector from *config* and register it on the redirect hook.

    Keyword *overrides* are passed to RedirectLoopDetector and take
    precedence over the config-derived collaborators.
    """
    if config is None:
        config = load_config()

    if config.normalize_paths:
        overrides.setdefault("path_normalizer", PathNormalizer(lambda: config.roots))
    overrides.setdefault("is_debug", lambda: config.debug)

    detector = RedirectLoopDetector(**overrides)
    filters.add_filter(REDIRECT_HOOK, detector.on_redirect, config.filter_priority)
    logger.info(
        "Redirect loop guard installed (priority=%d, debug=%s)",
        config.filter_priority,
        config.debug,
    )
    return detector
