"""
Centralized logging configuration for genpatch.

Usage at the entry point (cli.py):

    from genpatch.log_config import setup_logging
    setup_logging(verbose=True)

Every module logs through a stdlib logger under the ``genpatch`` namespace
(``genpatch.patchers.activity``, ``genpatch.orchestrator``, ...); this module
only decides where those records go.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_initialized = False

LOGGER_NAME = "genpatch"
DEFAULT_LEVEL = "WARNING"


def resolve_level(level: Optional[str] = None, verbose: bool = False) -> int:
    """Explicit *level*, else ``GENPATCH_LOG_LEVEL``, else DEBUG/WARNING by *verbose*."""
    name = (level or os.environ.get("GENPATCH_LOG_LEVEL") or "").strip().upper()
    if not name:
        name = "DEBUG" if verbose else DEFAULT_LEVEL
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name}")
    return value


def setup_logging(
    level: Optional[str] = None,
    *,
    verbose: bool = False,
    console: Optional[Console] = None,
) -> None:
    """Attach a RichHandler to the ``genpatch`` logger.

    Safe to call more than once; only the level is updated after the first call.
    """
    global _initialized

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolve_level(level, verbose))

    if _initialized:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    _initialized = True
