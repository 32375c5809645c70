# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Redirect loop reporters.

- ``DebugReporter`` renders an HTML diagnostic page and aborts the request
  by raising RedirectLoopAborted.
- ``LogReporter`` writes one ERROR record and lets the redirect proceed.

The detector picks one per detection event from the debug flag.
"""

from __future__ import annotations

import html
import logging
from typing import Protocol

import structlog

from .errors import RedirectLoopAborted
from .stack import CallFrame, normalize_path

logger = logging.getLogger(__name__)

UNKNOWN_CAUSE_NOTICE = "We could not detect which part of the code is causing a redirect."


class Reporter(Protocol):
    def report(self, location: str, initiator: CallFrame | None) -> None: ...


def render_document(location: str, initiator: CallFrame | None) -> str:
    """Build the HTML body of the debug-mode abort page."""
    parts = [
        "<h2>Redirect loop detected</h2>",
        f"<p>The loop happened on the url : {html.escape(location)}</p>",
        "<p>Here the details on what might be causing a infinite redirect :</p>",
    ]
    if initiator is not None:
        details = "\n".join(
            [
                f"file: {initiator.file}",
                f"line: {initiator.line}",
                f"function: {initiator.function}",
                f"location: {initiator.file}:{initiator.line}",
            ]
        )
        parts.append(f"<pre>{html.escape(details)}</pre>")
    else:
        parts.append(f"<p><em>{UNKNOWN_CAUSE_NOTICE}</em></p>")
    return "\n".join(parts) + "\n"


class DebugReporter:
    """Render the diagnostic page and terminate the request."""

    def __init__(self, *, title: str = "Redirect loop aborted", status: int = 500) -> None:
        self.title = title
        self.status = status

    def report(self, location: str, initiator: CallFrame | None) -> None:
        document = render_document(location, initiator)
        logger.warning("Redirect loop detected on the URL %s, aborting request", location)
        raise RedirectLoopAborted(location, document, title=self.title, status=self.status)


def format_initiator(initiator: CallFrame) -> str:
    """``<file>:<line>`` with the file in forward-slash form."""
    file = normalize_path(initiator.file) if initiator.file else "unknown"
    return f"{file}:{int(initiator.line or 0)}"


class LogReporter:
    """Emit one diagnostic log record; never interrupts the request."""

    def report(self, location: str, initiator: CallFrame | None) -> None:
        where = format_initiator(initiator) if initiator is not None else None
        msg = f"Redirect loop detected on the URL {location}."
        if where:
            msg += f" The loop might be caused by {where}."
        with structlog.contextvars.bound_contextvars(redirect_url=location, loop_initiator=where):
            logger.error(msg)
