# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Guard configuration from environment variables.

| Variable                        | Field             | Default      |
|---------------------------------|-------------------|--------------|
| ``REDIRECTGUARD_DEBUG``           | ``debug``           | off          |
| ``REDIRECTGUARD_NORMALIZE_PATHS`` | ``normalize_paths`` | on           |
| ``REDIRECTGUARD_CONTENT_DIR``     | ``content_dir``     | cwd          |
| ``REDIRECTGUARD_INSTALL_DIR``     | ``install_dir``     | ``sys.prefix`` |
| ``REDIRECTGUARD_FILTER_PRIORITY`` | ``filter_priority`` | 1000         |
| ``REDIRECTGUARD_JSON_LOGS``       | ``json_logs``       | off          |
| ``REDIRECTGUARD_LOG_LEVEL``       | ``log_level``       | INFO         |
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from contextlib import suppress
from dataclasses import dataclass, field

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")

# Runs after filters registered at the default priority (10)
DEFAULT_FILTER_PRIORITY = 1000


@dataclass(frozen=True, slots=True)
class GuardConfig:
    """Immutable guard settings, read once at application setup."""

    debug: bool = False
    normalize_paths: bool = True
    content_dir: str = field(default_factory=os.getcwd)
    install_dir: str = sys.prefix
    filter_priority: int = DEFAULT_FILTER_PRIORITY
    json_logs: bool = False
    log_level: str = "INFO"

    @property
    def roots(self) -> tuple[str, str]:
        """Path-normalization roots: content root first, install root second."""
        return self.content_dir, self.install_dir


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


def load_config(environ: Mapping[str, str] | None = None) -> GuardConfig:
    """Build a GuardConfig from *environ* (default ``os.environ``).

    Unparseable values fall back to the defaults.
    """
    if environ is None:
        environ = os.environ

    defaults = GuardConfig()
    priority = defaults.filter_priority
    env_priority = environ.get("REDIRECTGUARD_FILTER_PRIORITY", "").strip()
    if env_priority:
        with suppress(ValueError):
            priority = int(env_priority)

    return GuardConfig(
        debug=_env_flag(environ, "REDIRECTGUARD_DEBUG", defaults.debug),
        normalize_paths=_env_flag(environ, "REDIRECTGUARD_NORMALIZE_PATHS", defaults.normalize_paths),
        content_dir=environ.get("REDIRECTGUARD_CONTENT_DIR", "").strip() or defaults.content_dir,
        install_dir=environ.get("REDIRECTGUARD_INSTALL_DIR", "").strip() or defaults.install_dir,
        filter_priority=priority,
        json_logs=_env_flag(environ, "REDIRECTGUARD_JSON_LOGS", defaults.json_logs),
        log_level=environ.get("REDIRECTGUARD_LOG_LEVEL", "").strip().upper() or defaults.log_level,
    )
