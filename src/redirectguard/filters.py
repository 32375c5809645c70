# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Filter hook registry — the host application's pluggable value pipeline.

A hook is a named chain of callbacks. ``apply_filters`` threads a value
through every callback registered on the hook: ascending priority, then
registration order. Each callback gets the current value plus the extra
arguments and returns the (possibly modified) value.

The registry is owned by the application and passed to its collaborators
explicitly; there is no module-level instance.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 10


@dataclass(order=True, frozen=True, slots=True)
class _Registration:
    priority: int
    seq: int
    callback: Callable[..., Any] = field(compare=False)


class FilterRegistry:
    """Named filter chains with priority ordering."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[_Registration]] = {}
        self._seq = itertools.count()
        self._lock = threading.Lock()

    def add_filter(self, hook: str, callback: Callable[..., Any], priority: int = DEFAULT_PRIORITY) -> None:
        with self._lock:
            chain = self._hooks.setdefault(hook, [])
            chain.append(_Registration(priority, next(self._seq), callback))
            chain.sort()
        logger.debug("Filter registered on %r (priority=%d): %r", hook, priority, callback)

    def remove_filter(self, hook: str, callback: Callable[..., Any], priority: int | None = None) -> bool:
        """Remove *callback* from *hook*. Returns True if anything was removed."""
        with self._lock:
            chain = self._hooks.get(hook, [])
            kept = [r for r in chain if not (r.callback == callback and (priority is None or r.priority == priority))]
            removed = len(kept) != len(chain)
            if kept:
                self._hooks[hook] = kept
            else:
                self._hooks.pop(hook, None)
        return removed

    def has_filter(self, hook: str, callback: Callable[..., Any] | None = None) -> bool:
        chain = self._hooks.get(hook, [])
        if callback is None:
            return bool(chain)
        return any(r.callback == callback for r in chain)

    def apply_filters(self, hook: str, value: Any, *args: Any) -> Any:
        """Run *value* through every callback on *hook* and return the result."""
        for registration in tuple(self._hooks.get(hook, ())):
            value = registration.callback(value, *args)
        return value
