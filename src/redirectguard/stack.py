# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Stack-trace analyzer — locates the call site that issued a looping redirect.

Frames are call-site records, most recent call first: ``frames[i]`` names
the function that was running at depth *i* and the file/line from which it
was called. With that convention the redirect filter chain looks like::

    [0] on_redirect      called from filters.py      (the detector)
    [1] apply_filters    called from redirects.py    <- dispatch boundary
    [2] redirect         called from app code        -> initiator
                         or from redirects.py        -> safe_redirect wrapper,
    [3] safe_redirect    called from app code        -> initiator

Matching the host framework's internals is delegated to a
HostFrameworkProbe so the rule can be swapped or faked in tests.

Path normalization strips the content and install roots from reported
file paths. The root table is computed once per process behind a lock.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import re
import threading
import traceback
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# ── CallFrame ─────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, slots=True)
class CallFrame:
    """One call-site record: *function* was called at *file*:*line*."""

    file: str | None
    line: int | None
    function: str
    index: int = 0


def capture_stack(skip: int = 0, limit: int | None = None) -> list[CallFrame]:
    """Capture the live call stack as call-site records, most recent first.

    Source lines and locals are not looked up. The first record describes
    the caller of ``capture_stack``; *skip* drops that many further records
    and *limit* caps the number of records returned.
    """
    frame = inspect.currentframe()
    start = frame.f_back if frame is not None else None
    del frame
    # one extra Python frame supplies the call site of the last record
    summary = traceback.StackSummary.extract(
        traceback.walk_stack(start),
        limit=None if limit is None else limit + skip + 1,
        lookup_lines=False,
    )

    frames: list[CallFrame] = []
    for depth in range(len(summary) - 1):
        caller = summary[depth + 1]
        frames.append(
            CallFrame(
                file=caller.filename,
                line=caller.lineno,
                function=summary[depth].name,
                index=len(frames),
            )
        )
    if skip:
        frames = [dataclasses.replace(f, index=i) for i, f in enumerate(frames[skip:])]
    return frames


# ── Host-framework probe ──────────────────────────────────────────────


class HostFrameworkProbe(Protocol):
    """Recognizes the host framework's redirect-dispatch frames."""

    def is_dispatch_boundary(self, frame: CallFrame) -> bool: ...

    def is_plain_redirect(self, frame: CallFrame) -> bool: ...


class RedirectsModuleProbe:
    """Probe for ``redirectguard.redirects``.

    A frame is inside the dispatch internals when its normalized file path
    contains *dispatch_file* (case-insensitive). Function names compare
    exactly.
    """

    def __init__(
        self,
        dispatch_file: str | None = None,
        *,
        filter_function: str = "apply_filters",
        plain_redirect_function: str = "redirect",
    ) -> None:
        if dispatch_file is None:
            from . import redirects

            dispatch_file = redirects.__file__
        self.dispatch_file = normalize_path(dispatch_file).lower()
        self.filter_function = filter_function
        self.plain_redirect_function = plain_redirect_function

    def _in_dispatch_file(self, frame: CallFrame) -> bool:
        if not frame.file:
            return False
        return self.dispatch_file in normalize_path(frame.file).lower()

    def is_dispatch_boundary(self, frame: CallFrame) -> bool:
        return frame.function == self.filter_function and self._in_dispatch_file(frame)

    def is_plain_redirect(self, frame: CallFrame) -> bool:
        return frame.function == self.plain_redirect_function and self._in_dispatch_file(frame)


def find_initiator(stack: Sequence[CallFrame], probe: HostFrameworkProbe) -> CallFrame | None:
    """Return the frame that most likely issued the redirect, or ``None``.

    Only the first dispatch boundary is considered. When the frame after it
    is the plain-redirect entry point called from inside the dispatch
    module, the redirect went through the safe wrapper and the initiator is
    one frame further out.
    """
    for k, frame in enumerate(stack):
        if not probe.is_dispatch_boundary(frame):
            continue

        target = k + 1
        if target < len(stack) and probe.is_plain_redirect(stack[target]):
            target += 1
        return stack[target] if target < len(stack) else None
    return None


# ── Path normalization ────────────────────────────────────────────────

_MULTI_SLASH_RE = re.compile(r"(?<!^)/+")
_DRIVE_RE = re.compile(r"^([a-z]):")


def normalize_path(path: str) -> str:
    """Forward slashes, no duplicate separators, upper-case drive letter."""
    path = path.replace("\\", "/")
    if path.startswith("//"):
        # UNC / network share prefix survives collapsing
        path = "//" + _MULTI_SLASH_RE.sub("/", path[2:])
    else:
        path = _MULTI_SLASH_RE.sub("/", path)
    return _DRIVE_RE.sub(lambda m: m.group(1).upper() + ":", path)


class PathNormalizer:
    """Turns absolute paths into root-relative ones.

    *roots* is a factory for the root directories (content root first,
    install root second). It is called at most once; the normalized prefix
    table is then reused for the process lifetime.
    """

    def __init__(self, roots: Callable[[], Iterable[str]]) -> None:
        self._roots = roots
        self._prefixes: tuple[str, ...] | None = None
        self._lock = threading.Lock()

    @property
    def prefixes(self) -> tuple[str, ...]:
        prefixes = self._prefixes
        if prefixes is None:
            with self._lock:
                if self._prefixes is None:
                    self._prefixes = tuple(
                        normalize_path(root).rstrip("/") for root in self._roots() if root and root.strip("/\\")
                    )
                    logger.debug("Path normalization roots: %s", self._prefixes)
                prefixes = self._prefixes
        return prefixes

    def __call__(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        for prefix in self.prefixes:
            value = value.replace(prefix, "")
        return value

    def normalize_frame(self, frame: CallFrame) -> CallFrame:
        """Apply normalization to every string field of *frame*."""
        return dataclasses.replace(
            frame,
            **{f.name: self(getattr(frame, f.name)) for f in dataclasses.fields(frame)},
        )
