"""Logging setup for the command line and other entry points."""

from __future__ import annotations

import logging
from typing import Final

from .env import optional_env_var

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# request lines from these libraries carry upstream URLs and add little
_CHATTY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "httpx_retries")


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once.

    ``level`` defaults to ``INTAKESYNC_LOG_LEVEL`` (a level name) or INFO. HTTP
    client libraries are held at WARNING unless DEBUG is requested. Pass
    ``force=True`` to reconfigure during tests.
    """

    resolved = level if level is not None else _level_from_env()
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    quiet = logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


def _level_from_env() -> int:
    name = optional_env_var("INTAKESYNC_LOG_LEVEL")
    if name is None:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(name.upper())
    return level if level is not None else logging.INFO
