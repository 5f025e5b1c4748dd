"""Process-level runtime state.

The SQLite database (league_repo.LeagueRepo) is the SSOT for every persisted
fact. This module only remembers *which* database the running process serves
and whether its schema was applied.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

_LOCK = Lock()
_DB_PATH: Optional[str] = None
_INITIALIZED_DB_PATHS: set[str] = set()


def set_db_path(db_path: str) -> None:
    global _DB_PATH
    if not db_path:
        raise ValueError("db_path is required")
    with _LOCK:
        _DB_PATH = str(db_path)


def get_db_path() -> str:
    # Fail loud: there is no default db_path.
    if _DB_PATH is None:
        raise RuntimeError("db_path is not configured; call state.set_db_path() first")
    return _DB_PATH


def startup_init_state() -> None:
    """Apply the schema once per db_path."""
    from league_repo import LeagueRepo  # local import to avoid cycles

    db_path = get_db_path()
    with _LOCK:
        if db_path in _INITIALIZED_DB_PATHS:
            return
        with LeagueRepo(db_path) as repo:
            repo.init_db()
        _INITIALIZED_DB_PATHS.add(db_path)
    logger.info("league db initialized: %s", db_path)


def reset_state_for_tests() -> None:
    global _DB_PATH
    with _LOCK:
        _DB_PATH = None
        _INITIALIZED_DB_PATHS.clear()
