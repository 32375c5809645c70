# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""redirectguard CLI: inspect how the guard sees a request.

Usage:
    python -m redirectguard.cli resolve --server KEY=VALUE ... [--environ-json FILE] [--no-forwarded-host]
    python -m redirectguard.cli check --server KEY=VALUE ... --target URL

Server variables use CGI names (HTTPS, SERVER_PROTOCOL, SERVER_PORT,
SERVER_NAME, HTTP_HOST, HTTP_X_FORWARDED_HOST, REQUEST_URI).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .context import RequestContext
from .current_url import resolve
from .guard import untrailingslashit

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOOP = 1
EXIT_ERROR = 2


def _parse_server_vars(args: argparse.Namespace) -> dict[str, str]:
    """Merge ``--environ-json`` and ``--server`` pairs (pairs win)."""
    environ: dict[str, str] = {}
    if args.environ_json:
        data = json.loads(Path(args.environ_json).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("--environ-json must contain a JSON object")
        environ.update({str(k): str(v) for k, v in data.items()})
    for pair in args.server or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"invalid --server value {pair!r}, expected KEY=VALUE")
        environ[key.strip().upper()] = value
    return environ


def _current_url(args: argparse.Namespace) -> str:
    environ = _parse_server_vars(args)
    try:
        ctx = RequestContext.from_environ(environ)
    except KeyError as e:
        raise ValueError(f"missing server variable {e.args[0]}") from None
    return resolve(ctx, use_forwarded_host=not args.no_forwarded_host)


def cmd_resolve(args: argparse.Namespace) -> int:
    print(_current_url(args))
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    current = _current_url(args)
    looping = untrailingslashit(args.target) == untrailingslashit(current)
    logger.debug("current=%s target=%s loop=%s", current, args.target, looping)
    if looping:
        print(f"loop: {args.target} redirects to itself")
        return EXIT_LOOP
    print(f"ok: {args.target} differs from {current}")
    return EXIT_OK


def _add_request_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--server",
        action="append",
        metavar="KEY=VALUE",
        help="Server variable (repeatable)",
    )
    p.add_argument("--environ-json", type=str, metavar="FILE", help="JSON object of server variables")
    p.add_argument(
        "--no-forwarded-host",
        action="store_true",
        help="Ignore HTTP_X_FORWARDED_HOST",
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Redirect loop guard CLI",
        prog="python -m redirectguard.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_resolve = subparsers.add_parser(
        "resolve",
        help="Print the current URL rebuilt from server variables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s --server SERVER_PROTOCOL=HTTP/1.1 --server SERVER_PORT=80 \\
           --server HTTP_HOST=example.com --server REQUEST_URI=/a""",
    )
    _add_request_args(p_resolve)

    p_check = subparsers.add_parser("check", help="Tell whether a redirect target loops")
    _add_request_args(p_check)
    p_check.add_argument("--target", type=str, required=True, metavar="URL", help="Redirect target")

    args = parser.parse_args(argv)

    from .config import load_config
    from .logging_config import configure as configure_logging

    config = load_config()
    configure_logging(json_output=config.json_logs, level="DEBUG" if args.verbose else config.log_level)

    commands = {"resolve": cmd_resolve, "check": cmd_check}
    try:
        return commands[args.command](args)
    except (ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
