# db_schema/picks.py
"""SQLite SSOT schema: draft pick rights tables (picks, transfer log, swaps)."""

from __future__ import annotations

import sqlite3
from typing import Callable, Mapping

EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for pick-rights tables."""
    _ = (now, schema_version)
    return """

                -- Draft picks (SSOT). original_team_id is part of the identity;
                -- current_team_id is mutated only through the transfer path.
                CREATE TABLE IF NOT EXISTS draft_picks (
                    pick_id TEXT PRIMARY KEY,
                    season_id INTEGER NOT NULL,
                    round INTEGER NOT NULL,
                    original_team_id TEXT NOT NULL,
                    current_team_id TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (season_id, round, original_team_id),
                    FOREIGN KEY(season_id) REFERENCES seasons(season_id)
                );
                CREATE INDEX IF NOT EXISTS idx_draft_picks_current ON draft_picks(current_team_id);
                CREATE INDEX IF NOT EXISTS idx_draft_picks_season_round ON draft_picks(season_id, round);

                -- Ordered, append-only ownership log.
                CREATE TABLE IF NOT EXISTS pick_transfers (
                    event_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    pick_id TEXT NOT NULL,
                    from_team_id TEXT NOT NULL,
                    to_team_id TEXT NOT NULL,
                    cause TEXT NOT NULL CHECK (cause IN ('trade', 'swap_resolution')),
                    swap_id TEXT,
                    requested_by TEXT,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(pick_id) REFERENCES draft_picks(pick_id)
                );
                CREATE INDEX IF NOT EXISTS idx_pick_transfers_pick ON pick_transfers(pick_id, event_id);
                -- At most one resolution event per swap.
                CREATE UNIQUE INDEX IF NOT EXISTS idx_pick_transfers_swap_resolution
                    ON pick_transfers(swap_id) WHERE cause = 'swap_resolution';

                -- Pairwise best/worst swap declarations (SSOT).
                CREATE TABLE IF NOT EXISTS pick_swaps (
                    swap_id TEXT PRIMARY KEY,
                    season_id INTEGER NOT NULL,
                    round INTEGER NOT NULL,
                    swap_type TEXT NOT NULL CHECK (swap_type IN ('best', 'worst')),
                    pick_a_id TEXT NOT NULL,
                    pick_b_id TEXT NOT NULL,
                    owned_by_team_id TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'resolved')),
                    winning_pick_id TEXT,
                    losing_pick_id TEXT,
                    outcome_json TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    resolved_at TEXT,
                    CHECK (pick_a_id <> pick_b_id),
                    FOREIGN KEY(pick_a_id) REFERENCES draft_picks(pick_id),
                    FOREIGN KEY(pick_b_id) REFERENCES draft_picks(pick_id),
                    FOREIGN KEY(owned_by_team_id) REFERENCES teams(team_id)
                );
                CREATE INDEX IF NOT EXISTS idx_pick_swaps_owner ON pick_swaps(owned_by_team_id);
                CREATE INDEX IF NOT EXISTS idx_pick_swaps_season_status ON pick_swaps(season_id, status);
"""


def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    ensure_columns(
        cur,
        "pick_transfers",
        {
            "requested_by": "TEXT",
        },
    )
    ensure_columns(
        cur,
        "pick_swaps",
        {
            "outcome_json": "TEXT",
            "resolved_at": "TEXT",
        },
    )
