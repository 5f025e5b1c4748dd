# db_schema/core.py
"""SQLite SSOT schema: core league tables (meta, seasons, teams, standings).

This module contains *only* DDL and schema migrations.
It must not import LeagueRepo (to avoid circular imports).
"""

from __future__ import annotations

import sqlite3
from typing import Callable, Mapping


# Signature compatible with LeagueRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def ddl(*, now: str, schema_version: str) -> str:
    """Return DDL SQL for core tables (one script; the registry splits it into statements)."""
    return f"""
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );

                INSERT INTO meta(key, value) VALUES ('schema_version', '{schema_version}')
                ON CONFLICT(key) DO UPDATE SET value=excluded.value;
                INSERT OR IGNORE INTO meta(key, value) VALUES ('created_at', '{now}');

                CREATE TABLE IF NOT EXISTS seasons (
                    season_id INTEGER PRIMARY KEY,
                    season_number INTEGER NOT NULL,
                    label TEXT,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS teams (
                    team_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    abbreviation TEXT,
                    conference TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                -- One row per (season, team). Written by the standings collaborator,
                -- read-only to the draft rights engine.
                CREATE TABLE IF NOT EXISTS team_standings (
                    season_id INTEGER NOT NULL,
                    team_id TEXT NOT NULL,
                    final_position INTEGER NOT NULL CHECK (final_position BETWEEN 0 AND 30),
                    seed INTEGER NOT NULL CHECK (seed BETWEEN 0 AND 15),
                    elimination_round INTEGER NOT NULL CHECK (elimination_round BETWEEN 0 AND 5),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (season_id, team_id),
                    FOREIGN KEY(season_id) REFERENCES seasons(season_id),
                    FOREIGN KEY(team_id) REFERENCES teams(team_id)
                );
                CREATE INDEX IF NOT EXISTS idx_team_standings_team ON team_standings(team_id);
"""


def migrate(cur: sqlite3.Cursor, *, ensure_columns: EnsureColumnsFn) -> None:
    ensure_columns(
        cur,
        "teams",
        {
            "conference": "TEXT",
        },
    )
