"""Logging setup for the harvester."""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from loglift.constants import DEFAULT_LOG_LEVEL, ENV_LOG_LEVEL


def resolve_log_level(override: str | None = None, configured: str | None = None) -> str:
    """Pick the level from the command line, then the environment, then the config file."""
    for candidate in (override, os.getenv(ENV_LOG_LEVEL), configured):
        if candidate and candidate.strip():
            return candidate.strip().upper()
    return DEFAULT_LOG_LEVEL


def _coerce_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if isinstance(value, int):
        return value
    if level.strip().isdigit():
        return int(level)
    raise ValueError(f"Unknown log level: {level}")


def setup_logging(level: int | str = DEFAULT_LOG_LEVEL) -> None:
    target_level = _coerce_level(level)

    # Events may be written to stdout, so log records go to stderr.
    handler = RichHandler(
        level=target_level,
        console=Console(stderr=True),
        markup=False,
        show_path=False,
    )
    logging.basicConfig(
        level=max(target_level, logging.WARNING),
        format="%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
        force=True,
    )
    logging.getLogger("loglift").setLevel(target_level)
    for name in ("boto3", "botocore", "urllib3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def debug_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    """Log ``event`` with ``key=value`` pairs; values are JSON-encoded when not numeric."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    parts = [f"event={event}"]
    for key, value in fields.items():
        if value is None:
            continue
        if isinstance(value, (bool, int, float)):
            parts.append(f"{key}={value}")
        else:
            parts.append(f"{key}={json.dumps(value, ensure_ascii=True, default=str)}")
    logger.debug(" ".join(parts))
