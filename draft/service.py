from __future__ import annotations

"""LeagueRightsService: the outward facade of the draft rights engine.

One service wraps one LeagueRepo connection. API routes open a service per
request:

    with LeagueRightsService.open(state.get_db_path()) as svc:
        svc.request_transfer(pick_id, to_team_id, requested_by="ops")

The facade only composes the engine parts (bracket / order / ledger / swaps /
resolution); it never writes pick ownership itself. Authorization of *who*
may request a transfer is the caller's concern.
"""

import contextlib
import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from league_repo import LeagueRepo
from schema import DRAFT_ROUNDS, normalize_season_id, normalize_team_id

from .bracket import count_by_elimination_round, find_bracket_violations, validate_bracket
from .errors import SEASON_NOT_FOUND, TEAM_NOT_FOUND, DraftRightsError
from .ledger import PickLedger
from .order import derive_draft_order
from .resolution import SwapResolver
from .swaps import SwapRegistry
from .types import ResolvedOutcome, StandingRecord, SwapStatus, TransferEvent

logger = logging.getLogger(__name__)


class LeagueRightsService:
    def __init__(self, repo: LeagueRepo):
        self.repo = repo
        self.ledger = PickLedger(repo)
        self.swaps = SwapRegistry(repo, ledger=self.ledger)
        self.resolver = SwapResolver(repo, ledger=self.ledger, registry=self.swaps)

    @classmethod
    @contextlib.contextmanager
    def open(cls, db_path: str) -> Iterator["LeagueRightsService"]:
        repo = LeagueRepo(db_path)
        try:
            yield cls(repo)
        finally:
            repo.close()

    # ------------------------
    # Seasons / Teams (minimal collaborators)
    # ------------------------

    def _require_season(self, season_id: Any) -> int:
        sid = normalize_season_id(season_id)
        if self.repo.get_season(sid) is None:
            raise DraftRightsError(SEASON_NOT_FOUND, "Season not found", {"season_id": sid})
        return sid

    def create_season(
        self,
        season_id: int,
        *,
        season_number: Optional[int] = None,
        label: Optional[str] = None,
        activate: bool = False,
    ) -> Dict[str, Any]:
        with self.repo.transaction():
            season = self.repo.upsert_season(season_id, season_number=season_number, label=label)
            if activate:
                self.repo.set_active_season(season["season_id"])
        return self.repo.get_season(season["season_id"]) or season

    def activate_season(self, season_id: int) -> Dict[str, Any]:
        sid = self._require_season(season_id)
        self.repo.set_active_season(sid)
        logger.info("active season -> %s", sid)
        return self.repo.get_season(sid) or {}

    def get_active_season(self) -> Optional[Dict[str, Any]]:
        return self.repo.get_active_season()

    def upsert_team(
        self,
        team_id: str,
        *,
        name: Optional[str] = None,
        abbreviation: Optional[str] = None,
        conference: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self.repo.upsert_team(team_id, name=name, abbreviation=abbreviation, conference=conference)

    def list_teams(self) -> List[Dict[str, Any]]:
        return self.repo.list_teams()

    # ------------------------
    # Standings
    # ------------------------

    def _standings(self, season_id: int) -> List[StandingRecord]:
        return [StandingRecord.from_row(r) for r in self.repo.list_standings(int(season_id))]

    def list_standings(self, season_id: int) -> List[StandingRecord]:
        """Read-only standings source consumed by the rights engine."""
        return self._standings(normalize_season_id(season_id))

    def record_standings(self, season_id: int, rows: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
        """Upsert many standings of one season.

        The merged result (stored rows overlaid by ``rows``) is validated as a
        bracket first; on any violation nothing is written and BracketError
        reports every violated rule.
        """
        sid = self._require_season(season_id)
        incoming = [
            StandingRecord(
                season_id=sid,
                team_id=r.get("team_id"),
                final_position=r.get("final_position"),
                seed=r.get("seed"),
                elimination_round=r.get("elimination_round"),
            )
            for r in rows
        ]
        seen = set()
        for rec in incoming:
            if rec.team_id in seen:
                raise ValueError(f"duplicate team_id in standings payload: {rec.team_id}")
            seen.add(rec.team_id)
            if not self.repo.team_exists(rec.team_id):
                raise DraftRightsError(TEAM_NOT_FOUND, "Team not found", {"team_id": rec.team_id})

        with self.repo.transaction(immediate=True):
            merged = {rec.team_id: rec for rec in self._standings(sid)}
            merged.update({rec.team_id: rec for rec in incoming})
            validate_bracket(merged.values(), season_id=sid)
            count = self.repo.upsert_standings(sid, [rec.to_dict() for rec in incoming])

        logger.info("season %s: %d standing records written", sid, count)
        return {"season_id": sid, "written": count, "total": len(merged)}

    def list_champions(self, season_id: int) -> List[StandingRecord]:
        return [StandingRecord.from_row(r) for r in self.repo.list_champions(normalize_season_id(season_id))]

    def list_playoff_teams(self, season_id: int) -> List[StandingRecord]:
        return [StandingRecord.from_row(r) for r in self.repo.list_playoff_teams(normalize_season_id(season_id))]

    def bracket_report(self, season_id: int) -> Dict[str, Any]:
        standings = self.list_standings(season_id)
        violations = find_bracket_violations(standings)
        return {
            "season_id": normalize_season_id(season_id),
            "team_count": len(standings),
            "counts": count_by_elimination_round(standings),
            "valid": not violations,
            "final": bool(standings) and not violations,
            "violations": [v.to_dict() for v in violations],
        }

    def draft_order(self, season_id: int) -> Dict[str, Any]:
        sid = normalize_season_id(season_id)
        return derive_draft_order(self._standings(sid), season_id=sid).to_dict()

    # ------------------------
    # Picks
    # ------------------------

    def seed_picks(
        self,
        season_id: int,
        team_ids: Optional[Iterable[str]] = None,
        *,
        rounds: Sequence[int] = DRAFT_ROUNDS,
    ) -> List[str]:
        """Create a season's pick set (default: every known team, every round)."""
        sid = self._require_season(season_id)
        tids = list(team_ids) if team_ids is not None else [t["team_id"] for t in self.repo.list_teams()]
        return self.ledger.seed_season_picks(sid, tids, rounds=rounds)

    def get_pick_ownership(self, season_id: int) -> Dict[str, str]:
        return self.ledger.ownership(normalize_season_id(season_id))

    def get_pick(self, pick_id: str) -> Dict[str, Any]:
        pick = self.ledger.get(pick_id)
        out = pick.to_dict()
        out["pending_swaps"] = self.swaps.pending_for_pick(pick.pick_id)
        return out

    def pick_history(self, pick_id: str) -> List[TransferEvent]:
        return self.ledger.history(pick_id)

    def team_picks(self, team_id: str, *, min_season_id: Optional[int] = None) -> Dict[str, List[Dict[str, Any]]]:
        return self.ledger.team_picks(team_id, min_season_id=min_season_id)

    def request_transfer(
        self,
        pick_id: str,
        to_team_id: str,
        requested_by: Optional[str],
        expected_from_team: Optional[str] = None,
    ) -> TransferEvent:
        """Trade a pick to ``to_team_id``.

        ``expected_from_team`` is the holder the caller last read; if it is
        stale the ledger rejects with NOT_OWNER. When omitted, the holder read
        right now is used.
        """
        if expected_from_team is None:
            expected_from_team = self.ledger.current_owner(pick_id)
        return self.ledger.transfer(
            pick_id,
            expected_from_team,
            to_team_id,
            requested_by=requested_by,
        )

    # ------------------------
    # Swaps
    # ------------------------

    def declare_swap(
        self,
        season_id: int,
        swap_type: Any,
        pick_a_id: str,
        pick_b_id: str,
        owned_by_team_id: str,
    ) -> str:
        return self.swaps.declare(season_id, swap_type, pick_a_id, pick_b_id, owned_by_team_id)

    def list_swaps(
        self,
        *,
        season_id: Optional[int] = None,
        team_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        status_e = SwapStatus(str(status).lower()) if status else None
        tid = normalize_team_id(team_id) if team_id else None
        return [s.to_dict() for s in self.swaps.list(season_id=season_id, team_id=tid, status=status_e)]

    def get_swap_status(self, swap_id: str) -> Dict[str, Any]:
        return self.swaps.status(swap_id)

    def resolve_swap(self, swap_id: str) -> ResolvedOutcome:
        return self.resolver.resolve(swap_id)

    def resolve_pending(self, season_id: int) -> Dict[str, Any]:
        return self.resolver.resolve_pending(normalize_season_id(season_id))

    def transfer_swap_right(self, swap_id: str, new_owner: str) -> Dict[str, Any]:
        return self.swaps.transfer_right(swap_id, new_owner).to_dict()

    def withdraw_swap(self, swap_id: str) -> None:
        self.swaps.withdraw(swap_id)

    # ------------------------
    # Integrity
    # ------------------------

    def validate_integrity(self) -> None:
        self.repo.validate_integrity()
