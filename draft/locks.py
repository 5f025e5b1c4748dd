from __future__ import annotations

"""draft.locks

Process-local serialization of pick-rights write paths (trade transfers and
swap resolution).

Constraints:
- The SQLite DB (league_repo.LeagueRepo) is the SSOT. Cross-process safety
  comes from the ledger's compare-and-set update and from BEGIN IMMEDIATE
  transactions; this lock only keeps threads of one process from contending
  on the same database file.
- RLock (re-entrant): a resolution that performs a ledger transfer
  re-acquires the same lock without deadlocking.
- Lock order: rights_serial_lock -> LeagueRepo.transaction(...). The first
  acquisition must happen before the transaction is opened.
"""

import logging
from contextlib import contextmanager
from threading import RLock
from typing import Iterator

logger = logging.getLogger(__name__)

_RIGHTS_SERIAL_LOCK = RLock()


@contextmanager
def rights_serial_lock(*, reason: str = "") -> Iterator[None]:
    """Serialize pick-rights critical sections within a single process.

    ``reason`` only labels the debug log line.
    """
    _RIGHTS_SERIAL_LOCK.acquire()
    logger.debug("rights_serial_lock acquired: %s", reason)
    try:
        yield
    finally:
        _RIGHTS_SERIAL_LOCK.release()


__all__ = [
    "rights_serial_lock",
]
