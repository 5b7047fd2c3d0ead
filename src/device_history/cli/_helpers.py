"""Shared utilities for CLI entrypoints and the API process."""

from __future__ import annotations

import argparse
import logging
from typing import Union


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging for troubleshooting",
    )


def configure_logging(level: Union[bool, str]) -> None:
    """Configure root logging from a ``--verbose`` flag or a level name."""
    if isinstance(level, bool):
        numeric = logging.DEBUG if level else logging.INFO
    else:
        numeric = logging.getLevelName(level.upper())
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(name)s: %(message)s")
    if numeric <= logging.DEBUG:
        return
    # Quiet SQL chatter unless explicitly requested.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
