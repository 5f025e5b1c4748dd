"""
Shared pytest fixtures.

Provides:
- a temporary SQLite league database with the schema applied
- a repo seeded with two seasons and six teams (A..F)
- helpers to build standing rows
"""

from __future__ import annotations

from typing import Any, Dict, Iterator

import pytest

from league_repo import LeagueRepo
from draft.service import LeagueRightsService

SEASON = 2025
NEXT_SEASON = 2026
TEAMS = ("A", "B", "C", "D", "E", "F")


def standing(team_id: str, final_position: int, seed: int, elimination_round: int, season_id: int = SEASON) -> Dict[str, Any]:
    return {
        "season_id": season_id,
        "team_id": team_id,
        "final_position": final_position,
        "seed": seed,
        "elimination_round": elimination_round,
    }


# Valid finished season. Draft order (worst first): B, D, F, C, E, A.
FINAL_STANDINGS = (
    standing("A", 1, 1, 5),
    standing("E", 2, 1, 4),
    standing("C", 5, 3, 2),
    standing("F", 8, 6, 1),
    standing("D", 10, 0, 0),
    standing("B", 12, 0, 0),
)


@pytest.fixture
def db_path(tmp_path) -> str:
    path = tmp_path / "league.sqlite3"
    with LeagueRepo(path) as repo:
        repo.init_db()
    return str(path)


@pytest.fixture
def repo(db_path) -> Iterator[LeagueRepo]:
    with LeagueRepo(db_path) as r:
        for sid in (SEASON, NEXT_SEASON):
            r.upsert_season(sid, label=f"{sid}-{(sid + 1) % 100:02d}")
        r.set_active_season(SEASON)
        for tid in TEAMS:
            r.upsert_team(tid, name=f"Team {tid}")
        r.ensure_picks_seeded(SEASON, TEAMS)
        r.ensure_picks_seeded(NEXT_SEASON, TEAMS)
        yield r


@pytest.fixture
def service(repo) -> LeagueRightsService:
    return LeagueRightsService(repo)


@pytest.fixture
def final_season(repo) -> LeagueRepo:
    """The repo with SEASON's final standings recorded."""
    repo.upsert_standings(SEASON, FINAL_STANDINGS)
    return repo
