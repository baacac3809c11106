"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DATABASE_PATH = "planner.sqlite3"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(slots=True)
class Settings:
    """Settings holder.

    ``PLANNER_DATABASE_PATH`` selects the SQLite file and ``PLANNER_LOG_LEVEL``
    the root log level.
    """

    database_path: str = DEFAULT_DATABASE_PATH
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        database_path=env.get("PLANNER_DATABASE_PATH") or DEFAULT_DATABASE_PATH,
        log_level=(env.get("PLANNER_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )


def log_level(name: str) -> int:
    """Numeric level for ``name``; unknown level names mean INFO."""

    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure the root logger once."""

    logging.basicConfig(level=log_level(level), format=LOG_FORMAT)


__all__ = ["Settings", "load_settings", "log_level", "configure_logging"]
