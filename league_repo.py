# league_repo.py
# Developer note:
# - SQLite DB is the single source of truth (SSOT) for persisted league data (tables managed here).
# - team_id is a canonical uppercase string; pick_id/swap_id follow schema.py.
# - draft_picks.current_team_id is written ONLY by compare_and_set_pick_owner(),
#   which draft.ledger.PickLedger.transfer() wraps. Do not add other writers.
"""
LeagueRepository: persisted-data SSOT (SQLite)

Usage (CLI):
  python league_repo.py init --db <db_path>
  python league_repo.py validate --db <db_path>
  python league_repo.py seed-picks --db <db_path> --season <season_id>

Python:
  from league_repo import LeagueRepo
  with LeagueRepo("<db_path>") as repo:
      repo.init_db()
      standings = repo.list_standings(7)
"""

from __future__ import annotations

import argparse
import contextlib
import datetime as _dt
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from schema import (
    DRAFT_ROUNDS,
    SCHEMA_VERSION,
    make_pick_id,
    normalize_season_id,
    normalize_team_id,
)


logger = logging.getLogger(__name__)
_WARN_COUNTS: Dict[str, int] = {}


def _warn_limited(code: str, msg: str, *, limit: int = 5) -> None:
    n = _WARN_COUNTS.get(code, 0)
    if n < limit:
        logger.warning("%s %s", code, msg)
    _WARN_COUNTS[code] = n + 1


def _utc_now_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _json_dumps(obj: Any) -> str:
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=str,
    )


def _json_loads(value: Any, default: Any):
    """
    Safe JSON loader:
    - None -> default
    - already dict/list -> returns as-is
    - invalid JSON -> default
    """
    if value is None:
        return default
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        _warn_limited("JSON_DECODE_FAILED", f"value_preview={repr(str(value))[:120]}", limit=3)
        return default


def _row_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {k: row[k] for k in row.keys()}


# ----------------------------
# Repository
# ----------------------------

class LeagueRepo:
    def __init__(self, db_path: str | Path, *, busy_timeout_s: float = 30.0):
        self.db_path = str(db_path)
        # Autocommit mode: every transaction is opened explicitly by transaction().
        self._conn = sqlite3.connect(self.db_path, timeout=float(busy_timeout_s), isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._conn.execute("PRAGMA journal_mode = WAL;")  # good safety for frequent writes
        # Nested transaction support (SAVEPOINT) for callers that compose repo methods.
        # (SQLite raises if BEGIN is issued while a transaction is already active.)
        self._savepoint_seq = 0

    def __enter__(self) -> "LeagueRepo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            pass

    @property
    def in_transaction(self) -> bool:
        return bool(self._conn.in_transaction)

    @contextlib.contextmanager
    def transaction(self, *, immediate: bool = False):
        """
        Atomic transaction helper.

        Supports nesting via SAVEPOINT:
        - outermost: BEGIN [IMMEDIATE] ... COMMIT/ROLLBACK
        - nested: SAVEPOINT ... RELEASE (or ROLLBACK TO + RELEASE on error)

        immediate=True takes the database write lock up front, so a
        read-then-write unit cannot interleave with another connection's write.
        It only applies to the outermost transaction.
        """
        cur = self._conn.cursor()
        nested = self.in_transaction
        sp_name = None
        try:
            if nested:
                self._savepoint_seq += 1
                sp_name = f"sp_{self._savepoint_seq}"
                cur.execute(f"SAVEPOINT {sp_name};")
            else:
                cur.execute("BEGIN IMMEDIATE;" if immediate else "BEGIN;")

            yield cur

            if nested and sp_name:
                cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            else:
                cur.execute("COMMIT;")
        except Exception:
            if nested and sp_name:
                # Roll back to the savepoint only; do NOT rollback the outer transaction here.
                try:
                    cur.execute(f"ROLLBACK TO SAVEPOINT {sp_name};")
                finally:
                    cur.execute(f"RELEASE SAVEPOINT {sp_name};")
            elif self.in_transaction:
                cur.execute("ROLLBACK;")
            raise
        finally:
            try:
                cur.close()
            except sqlite3.Error:
                pass

    # ------------------------
    # Schema
    # ------------------------

    def _ensure_table_columns(self, cur: sqlite3.Cursor, table: str, columns: Mapping[str, str]) -> None:
        """SQLite has no ADD COLUMN IF NOT EXISTS; check PRAGMA table_info first."""
        rows = cur.execute(f"PRAGMA table_info({table});").fetchall()
        existing = {r["name"] for r in rows}
        for col, ddl in columns.items():
            if col in existing:
                continue
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {col} {ddl};")

    def init_db(self) -> None:
        """Apply SQLite schema (DDL + migrations) via db_schema."""
        from db_schema import apply_schema

        now = _utc_now_iso()
        with self.transaction() as cur:
            apply_schema(
                cur,
                now=now,
                schema_version=SCHEMA_VERSION,
                ensure_columns=self._ensure_table_columns,
            )

    # ------------------------
    # Seasons / Teams
    # ------------------------

    def upsert_season(
        self,
        season_id: int,
        *,
        season_number: Optional[int] = None,
        label: Optional[str] = None,
    ) -> Dict[str, Any]:
        sid = normalize_season_id(season_id)
        number = int(season_number) if season_number is not None else sid
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO seasons(season_id, season_number, label, is_active, created_at, updated_at)
                VALUES (?, ?, ?, 0, ?, ?)
                ON CONFLICT(season_id) DO UPDATE SET
                    season_number=excluded.season_number,
                    label=COALESCE(excluded.label, seasons.label),
                    updated_at=excluded.updated_at;
                """,
                (sid, number, label, now, now),
            )
        season = self.get_season(sid)
        assert season is not None
        return season

    def get_season(self, season_id: int) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT season_id, season_number, label, is_active FROM seasons WHERE season_id=?;",
            (int(season_id),),
        ).fetchone()
        out = _row_dict(row)
        if out is not None:
            out["is_active"] = bool(out["is_active"])
        return out

    def set_active_season(self, season_id: int) -> None:
        """Activate one season and deactivate every other (exactly one active)."""
        sid = normalize_season_id(season_id)
        now = _utc_now_iso()
        with self.transaction() as cur:
            exists = cur.execute("SELECT 1 FROM seasons WHERE season_id=?;", (sid,)).fetchone()
            if exists is None:
                raise KeyError(f"season_id not found: {sid}")
            cur.execute("UPDATE seasons SET is_active=0, updated_at=? WHERE is_active=1 AND season_id<>?;", (now, sid))
            cur.execute("UPDATE seasons SET is_active=1, updated_at=? WHERE season_id=?;", (now, sid))

    def get_active_season(self) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT season_id, season_number, label, is_active FROM seasons WHERE is_active=1 LIMIT 1;"
        ).fetchone()
        out = _row_dict(row)
        if out is not None:
            out["is_active"] = True
        return out

    def upsert_team(
        self,
        team_id: str,
        *,
        name: Optional[str] = None,
        abbreviation: Optional[str] = None,
        conference: Optional[str] = None,
    ) -> Dict[str, Any]:
        tid = normalize_team_id(team_id)
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO teams(team_id, name, abbreviation, conference, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(team_id) DO UPDATE SET
                    name=excluded.name,
                    abbreviation=excluded.abbreviation,
                    conference=excluded.conference,
                    updated_at=excluded.updated_at;
                """,
                (tid, str(name or tid), str(abbreviation or tid), conference, now, now),
            )
        team = self.get_team(tid)
        assert team is not None
        return team

    def get_team(self, team_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            "SELECT team_id, name, abbreviation, conference FROM teams WHERE team_id=?;",
            (normalize_team_id(team_id, strict=False),),
        ).fetchone()
        return _row_dict(row)

    def team_exists(self, team_id: str) -> bool:
        return self.get_team(team_id) is not None

    def list_teams(self) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            "SELECT team_id, name, abbreviation, conference FROM teams ORDER BY team_id;"
        ).fetchall()
        return [dict(_row_dict(r) or {}) for r in rows]

    # ------------------------
    # Standings (read-only to the rights engine)
    # ------------------------

    def upsert_standings(self, season_id: int, rows: Sequence[Mapping[str, Any]]) -> int:
        """Create or update many standing records of one season in one transaction."""
        sid = normalize_season_id(season_id)
        now = _utc_now_iso()
        params = []
        for r in rows:
            params.append(
                (
                    sid,
                    normalize_team_id(r.get("team_id")),
                    int(r["final_position"]),
                    int(r["seed"]),
                    int(r["elimination_round"]),
                    now,
                    now,
                )
            )
        if not params:
            return 0
        with self.transaction() as cur:
            cur.executemany(
                """
                INSERT INTO team_standings(season_id, team_id, final_position, seed, elimination_round, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(season_id, team_id) DO UPDATE SET
                    final_position=excluded.final_position,
                    seed=excluded.seed,
                    elimination_round=excluded.elimination_round,
                    updated_at=excluded.updated_at;
                """,
                params,
            )
        return len(params)

    def delete_standing(self, season_id: int, team_id: str) -> bool:
        with self.transaction() as cur:
            cur.execute(
                "DELETE FROM team_standings WHERE season_id=? AND team_id=?;",
                (int(season_id), normalize_team_id(team_id)),
            )
            return cur.rowcount > 0

    def list_standings(self, season_id: int) -> List[Dict[str, Any]]:
        rows = self._conn.execute(
            """
            SELECT season_id, team_id, final_position, seed, elimination_round
            FROM team_standings
            WHERE season_id=?
            ORDER BY final_position ASC, seed ASC, team_id ASC;
            """,
            (int(season_id),),
        ).fetchall()
        return [dict(_row_dict(r) or {}) for r in rows]

    def list_champions(self, season_id: int) -> List[Dict[str, Any]]:
        return [r for r in self.list_standings(season_id) if int(r["elimination_round"]) == 5]

    def list_playoff_teams(self, season_id: int) -> List[Dict[str, Any]]:
        rows = [r for r in self.list_standings(season_id) if int(r["elimination_round"]) > 0]
        rows.sort(key=lambda r: (-int(r["elimination_round"]), int(r["final_position"])))
        return rows

    # ------------------------
    # Draft picks / transfer log
    # ------------------------

    def insert_pick(self, season_id: int, round_no: int, original_team: str) -> Optional[str]:
        """Insert a pick owned by its original team. Returns None if it already exists."""
        sid = normalize_season_id(season_id)
        tid = normalize_team_id(original_team)
        pick_id = make_pick_id(sid, int(round_no), tid)
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT OR IGNORE INTO draft_picks(pick_id, season_id, round, original_team_id, current_team_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (pick_id, sid, int(round_no), tid, tid, now, now),
            )
            return pick_id if cur.rowcount > 0 else None

    def ensure_picks_seeded(
        self,
        season_id: int,
        team_ids: Iterable[str],
        *,
        rounds: Sequence[int] = DRAFT_ROUNDS,
    ) -> List[str]:
        created: List[str] = []
        with self.transaction():
            for rnd in rounds:
                for tid in team_ids:
                    pick_id = self.insert_pick(season_id, int(rnd), tid)
                    if pick_id is not None:
                        created.append(pick_id)
        return created

    def get_pick(self, pick_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            """
            SELECT pick_id, season_id, round, original_team_id, current_team_id
            FROM draft_picks WHERE pick_id=?;
            """,
            (str(pick_id),),
        ).fetchone()
        return _row_dict(row)

    def list_picks(
        self,
        *,
        season_id: Optional[int] = None,
        min_season_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT pick_id, season_id, round, original_team_id, current_team_id FROM draft_picks"
        where: List[str] = []
        args: List[Any] = []
        if season_id is not None:
            where.append("season_id=?")
            args.append(int(season_id))
        if min_season_id is not None:
            where.append("season_id>=?")
            args.append(int(min_season_id))
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY season_id ASC, round ASC, original_team_id ASC;"
        return [dict(_row_dict(r) or {}) for r in self._conn.execute(sql, args).fetchall()]

    def compare_and_set_pick_owner(self, pick_id: str, expected_team: str, new_team: str) -> bool:
        """Set current_team_id only if it still equals expected_team."""
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                UPDATE draft_picks SET current_team_id=?, updated_at=?
                WHERE pick_id=? AND current_team_id=?;
                """,
                (normalize_team_id(new_team), now, str(pick_id), normalize_team_id(expected_team)),
            )
            return cur.rowcount == 1

    def insert_transfer_event(
        self,
        *,
        pick_id: str,
        from_team: str,
        to_team: str,
        cause: str,
        swap_id: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO pick_transfers(pick_id, from_team_id, to_team_id, cause, swap_id, requested_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    str(pick_id),
                    normalize_team_id(from_team),
                    normalize_team_id(to_team),
                    str(cause),
                    swap_id,
                    requested_by,
                    now,
                ),
            )
            event_id = int(cur.lastrowid)
        event = self.get_transfer_event(event_id)
        assert event is not None
        return event

    def get_transfer_event(self, event_id: int) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            """
            SELECT event_id, pick_id, from_team_id, to_team_id, cause, swap_id, requested_by, created_at
            FROM pick_transfers WHERE event_id=?;
            """,
            (int(event_id),),
        ).fetchone()
        return _row_dict(row)

    def list_transfer_events(self, *, pick_id: Optional[str] = None) -> List[Dict[str, Any]]:
        sql = """
            SELECT event_id, pick_id, from_team_id, to_team_id, cause, swap_id, requested_by, created_at
            FROM pick_transfers
        """
        args: List[Any] = []
        if pick_id is not None:
            sql += " WHERE pick_id=?"
            args.append(str(pick_id))
        sql += " ORDER BY event_id ASC;"
        return [dict(_row_dict(r) or {}) for r in self._conn.execute(sql, args).fetchall()]

    def get_swap_resolution_event(self, swap_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute(
            """
            SELECT event_id, pick_id, from_team_id, to_team_id, cause, swap_id, requested_by, created_at
            FROM pick_transfers
            WHERE swap_id=? AND cause='swap_resolution';
            """,
            (str(swap_id),),
        ).fetchone()
        return _row_dict(row)

    # ------------------------
    # Pick swaps
    # ------------------------

    def insert_swap(
        self,
        *,
        swap_id: str,
        season_id: int,
        round_no: int,
        swap_type: str,
        pick_a_id: str,
        pick_b_id: str,
        owned_by_team_id: str,
    ) -> None:
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                """
                INSERT INTO pick_swaps(
                    swap_id, season_id, round, swap_type, pick_a_id, pick_b_id,
                    owned_by_team_id, status, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 'pending', ?, ?);
                """,
                (
                    str(swap_id),
                    int(season_id),
                    int(round_no),
                    str(swap_type),
                    str(pick_a_id),
                    str(pick_b_id),
                    normalize_team_id(owned_by_team_id),
                    now,
                    now,
                ),
            )

    def _swap_from_row(self, row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
        out = _row_dict(row)
        if out is None:
            return None
        out["outcome"] = _json_loads(out.pop("outcome_json", None), None)
        return out

    def get_swap(self, swap_id: str) -> Optional[Dict[str, Any]]:
        row = self._conn.execute("SELECT * FROM pick_swaps WHERE swap_id=?;", (str(swap_id),)).fetchone()
        return self._swap_from_row(row)

    def list_swaps(
        self,
        *,
        season_id: Optional[int] = None,
        team_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM pick_swaps"
        where: List[str] = []
        args: List[Any] = []
        if season_id is not None:
            where.append("season_id=?")
            args.append(int(season_id))
        if team_id is not None:
            where.append("owned_by_team_id=?")
            args.append(normalize_team_id(team_id))
        if status is not None:
            where.append("status=?")
            args.append(str(status))
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, swap_id ASC;"
        return [s for s in (self._swap_from_row(r) for r in self._conn.execute(sql, args).fetchall()) if s]

    def list_pending_swap_ids_for_pick(self, pick_id: str) -> List[str]:
        rows = self._conn.execute(
            """
            SELECT swap_id FROM pick_swaps
            WHERE status='pending' AND (pick_a_id=? OR pick_b_id=?)
            ORDER BY swap_id;
            """,
            (str(pick_id), str(pick_id)),
        ).fetchall()
        return [str(r["swap_id"]) for r in rows]

    def update_swap_owner(self, swap_id: str, new_owner: str) -> bool:
        now = _utc_now_iso()
        with self.transaction() as cur:
            cur.execute(
                "UPDATE pick_swaps SET owned_by_team_id=?, updated_at=? WHERE swap_id=? AND status='pending';",
                (normalize_team_id(new_owner), now, str(swap_id)),
            )
            return cur.rowcount == 1

    def delete_pending_swap(self, swap_id: str) -> bool:
        with self.transaction() as cur:
            cur.execute("DELETE FROM pick_swaps WHERE swap_id=? AND status='pending';", (str(swap_id),))
            return cur.rowcount == 1

    def mark_swap_resolved(
        self,
        swap_id: str,
        *,
        winning_pick_id: str,
        losing_pick_id: str,
        outcome: Mapping[str, Any],
        resolved_at: str,
    ) -> None:
        with self.transaction() as cur:
            cur.execute(
                """
                UPDATE pick_swaps SET
                    status='resolved',
                    winning_pick_id=?,
                    losing_pick_id=?,
                    outcome_json=?,
                    resolved_at=?,
                    updated_at=?
                WHERE swap_id=?;
                """,
                (
                    str(winning_pick_id),
                    str(losing_pick_id),
                    _json_dumps(dict(outcome)),
                    str(resolved_at),
                    _utc_now_iso(),
                    str(swap_id),
                ),
            )
            if cur.rowcount != 1:
                raise KeyError(f"swap_id not found: {swap_id}")

    # ------------------------
    # Integrity
    # ------------------------

    def validate_integrity(self) -> None:
        """Cross-table invariants of the pick rights ledger. Raises ValueError."""
        problems: List[str] = []
        cur = self._conn.cursor()

        orphans = cur.execute(
            """
            SELECT p.pick_id, p.current_team_id FROM draft_picks p
            LEFT JOIN teams t ON t.team_id = p.current_team_id
            WHERE t.team_id IS NULL;
            """
        ).fetchall()
        for r in orphans:
            problems.append(f"pick {r['pick_id']} held by unknown team {r['current_team_id']}")

        # Current holder must match the most recent logged transfer (if any).
        drift = cur.execute(
            """
            SELECT p.pick_id, p.current_team_id, e.to_team_id
            FROM draft_picks p
            JOIN pick_transfers e ON e.event_id = (
                SELECT MAX(event_id) FROM pick_transfers WHERE pick_id = p.pick_id
            )
            WHERE e.to_team_id <> p.current_team_id;
            """
        ).fetchall()
        for r in drift:
            problems.append(
                f"pick {r['pick_id']} holder {r['current_team_id']} != last transfer {r['to_team_id']}"
            )

        unlogged = cur.execute(
            """
            SELECT s.swap_id FROM pick_swaps s
            LEFT JOIN pick_transfers e ON e.swap_id = s.swap_id AND e.cause = 'swap_resolution'
            WHERE s.status = 'resolved' AND e.event_id IS NULL;
            """
        ).fetchall()
        for r in unlogged:
            problems.append(f"swap {r['swap_id']} resolved without a resolution event")

        cur.close()
        if problems:
            raise ValueError("league db integrity check failed: " + "; ".join(problems))


# ----------------------------
# CLI
# ----------------------------

def _main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="League rights SQLite repository")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="create/upgrade the schema")
    p_init.add_argument("--db", required=True)

    p_val = sub.add_parser("validate", help="run integrity checks")
    p_val.add_argument("--db", required=True)

    p_seed = sub.add_parser("seed-picks", help="create a season's picks for every known team")
    p_seed.add_argument("--db", required=True)
    p_seed.add_argument("--season", type=int, required=True)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    with LeagueRepo(args.db) as repo:
        repo.init_db()
        if args.cmd == "validate":
            repo.validate_integrity()
            logger.info("integrity ok: %s", args.db)
        elif args.cmd == "seed-picks":
            team_ids = [t["team_id"] for t in repo.list_teams()]
            created = repo.ensure_picks_seeded(args.season, team_ids)
            logger.info("seeded %d picks for season %s", len(created), args.season)
        else:
            logger.info("schema applied: %s", args.db)
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
