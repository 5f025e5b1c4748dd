# db_schema/init.py
"""Public entrypoint for applying the SQLite schema."""

from __future__ import annotations

import sqlite3
from typing import Iterable

from . import core, picks
from .registry import EnsureColumnsFn, apply_all


# Order matters:
# - core must come first (seasons/teams are referenced by picks)
# - picks holds draft_picks, pick_transfers and pick_swaps
DEFAULT_MODULES = (
    core,
    picks,
)


def apply_schema(
    cur: sqlite3.Cursor,
    *,
    now: str,
    schema_version: str,
    ensure_columns: EnsureColumnsFn,
    modules: Iterable[object] = DEFAULT_MODULES,
) -> None:
    """Apply the schema and migrations (core -> picks)."""
    apply_all(
        cur,
        modules=modules,  # type: ignore[arg-type]
        now=now,
        schema_version=schema_version,
        ensure_columns=ensure_columns,
    )
