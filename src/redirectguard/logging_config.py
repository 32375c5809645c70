# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Log output for applications embedding the redirect loop guard.

The guard itself only calls stdlib ``logging``. A loop report is a single
ERROR record on ``redirectguard.reporter`` whose ``redirect_url`` and
``loop_initiator`` fields are bound as structlog contextvars while the
record is emitted. ``configure`` installs one root handler whose
ProcessorFormatter merges those fields into the event, so a log shipper
reading JSON lines gets them as keys and a terminal gets them as
``key=value`` pairs.

Leaf module — no redirectguard imports. The CLI calls it from
``REDIRECTGUARD_JSON_LOGS`` / ``REDIRECTGUARD_LOG_LEVEL``; host
applications may call it themselves or keep their own logging setup.
"""

from __future__ import annotations

import logging
import sys

import structlog


def _pre_chain() -> list:
    """Processors run on every record, structlog-native or stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _final_renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    # no ANSI codes: loop reports are often read from captured stderr
    return structlog.dev.ConsoleRenderer(colors=False)


def configure(*, json_output: bool = False, level: str = "INFO", stream=None) -> None:
    """Send every log record, loop reports included, through one handler.

    Calling it again replaces the previous handler instead of adding one.

    Args:
        json_output: One JSON object per line; ``key=value`` console text otherwise.
        level: Root logger level name; unknown names mean INFO.
        stream: Where the handler writes (``sys.stderr`` when omitted).
    """
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _final_renderer(json_output),
            ],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
