from __future__ import annotations

"""Pick ownership ledger.

The ledger is the authoritative mapping pick_id -> current holder. It has a
single mutation path, PickLedger.transfer(), used by ordinary trades and by
swap resolution alike:

  1) compare-and-set draft_picks.current_team_id (expected -> new)
  2) append a pick_transfers row (pick_id, from, to, cause, swap_id, timestamp)

Both happen in one transaction. A stale caller whose expected owner no longer
matches gets LedgerError(NOT_OWNER) and must re-read the owner.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from league_repo import LeagueRepo
from schema import DRAFT_ROUNDS, make_pick_id, normalize_season_id, normalize_team_id

from .errors import (
    NOT_OWNER,
    PICK_EXISTS,
    PICK_NOT_FOUND,
    SAME_TEAM,
    TEAM_NOT_FOUND,
    LedgerError,
)
from .locks import rights_serial_lock
from .types import DraftPick, PickId, TeamId, TransferCause, TransferEvent

logger = logging.getLogger(__name__)


class PickLedger:
    def __init__(self, repo: LeagueRepo):
        self.repo = repo

    # ------------------------
    # Creation
    # ------------------------

    def _require_team(self, team_id: str, *, role: str) -> TeamId:
        tid = normalize_team_id(team_id)
        if not self.repo.team_exists(tid):
            raise LedgerError(TEAM_NOT_FOUND, "Team not found", {"team_id": tid, "role": role})
        return tid

    def create(self, season_id: int, round_no: int, original_team: str) -> PickId:
        """Create one pick, held by its original team."""
        sid = normalize_season_id(season_id)
        rnd = int(round_no)
        if rnd < 1:
            raise ValueError(f"round must be >= 1, got {round_no!r}")
        tid = self._require_team(original_team, role="original_team")
        pick_id = self.repo.insert_pick(sid, rnd, tid)
        if pick_id is None:
            raise LedgerError(
                PICK_EXISTS,
                "Pick already exists",
                {"pick_id": make_pick_id(sid, rnd, tid)},
            )
        logger.info("pick created: %s", pick_id)
        return pick_id

    def seed_season_picks(
        self,
        season_id: int,
        team_ids: Iterable[str],
        *,
        rounds: Sequence[int] = DRAFT_ROUNDS,
    ) -> List[PickId]:
        """Create a season's pick set; existing picks are left untouched."""
        tids = [self._require_team(t, role="original_team") for t in team_ids]
        created = self.repo.ensure_picks_seeded(normalize_season_id(season_id), tids, rounds=rounds)
        logger.info("season %s: %d picks seeded", season_id, len(created))
        return created

    # ------------------------
    # Reads
    # ------------------------

    def get(self, pick_id: str) -> DraftPick:
        row = self.repo.get_pick(str(pick_id))
        if row is None:
            raise LedgerError(PICK_NOT_FOUND, "Pick not found", {"pick_id": str(pick_id)})
        return DraftPick.from_row(row)

    def current_owner(self, pick_id: str) -> TeamId:
        return self.get(pick_id).current_team_id

    def ownership(self, season_id: int) -> Dict[PickId, TeamId]:
        return {
            str(r["pick_id"]): str(r["current_team_id"])
            for r in self.repo.list_picks(season_id=int(season_id))
        }

    def history(self, pick_id: str) -> List[TransferEvent]:
        self.get(pick_id)
        return [TransferEvent.from_row(r) for r in self.repo.list_transfer_events(pick_id=str(pick_id))]

    def find_swap_resolution(self, swap_id: str) -> Optional[TransferEvent]:
        row = self.repo.get_swap_resolution_event(str(swap_id))
        return TransferEvent.from_row(row) if row is not None else None

    def team_picks(self, team_id: str, *, min_season_id: Optional[int] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Split a team's pick rights into own / received / lost."""
        tid = normalize_team_id(team_id)
        out: Dict[str, List[Dict[str, Any]]] = {"own_picks": [], "received_picks": [], "lost_picks": []}
        for row in self.repo.list_picks(min_season_id=min_season_id):
            pick = DraftPick.from_row(row)
            if pick.current_team_id == tid and pick.original_team_id == tid:
                out["own_picks"].append(pick.to_dict())
            elif pick.current_team_id == tid:
                out["received_picks"].append(pick.to_dict())
            elif pick.original_team_id == tid:
                out["lost_picks"].append(pick.to_dict())
        return out

    # ------------------------
    # The single mutation path
    # ------------------------

    def transfer(
        self,
        pick_id: str,
        from_team: str,
        to_team: str,
        *,
        cause: TransferCause | str = TransferCause.TRADE,
        swap_id: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> TransferEvent:
        """Move a pick from its current holder to another team.

        Raises:
            LedgerError(PICK_NOT_FOUND): unknown pick.
            LedgerError(TEAM_NOT_FOUND): unknown destination team.
            LedgerError(SAME_TEAM): a trade to the team already holding it.
            LedgerError(NOT_OWNER): from_team is not the holder at call time.
        """
        cause_e = TransferCause(cause)
        from_tid = normalize_team_id(from_team)
        to_tid = normalize_team_id(to_team)

        if cause_e == TransferCause.SWAP_RESOLUTION and not swap_id:
            raise ValueError("swap_id is required for swap_resolution transfers")
        # A resolution onto the holder is still logged; a trade onto it is not a trade.
        if cause_e == TransferCause.TRADE and from_tid == to_tid:
            raise LedgerError(
                SAME_TEAM,
                "Pick cannot be traded to the team that holds it",
                {"pick_id": str(pick_id), "team_id": to_tid},
            )

        with rights_serial_lock(reason=f"PICK_TRANSFER:{pick_id}"):
            with self.repo.transaction(immediate=True):
                pick = self.get(pick_id)
                self._require_team(to_tid, role="to_team")
                if not self.repo.compare_and_set_pick_owner(pick.pick_id, from_tid, to_tid):
                    actual = self.current_owner(pick.pick_id)
                    logger.info(
                        "transfer rejected (NOT_OWNER): pick=%s expected=%s actual=%s",
                        pick.pick_id,
                        from_tid,
                        actual,
                    )
                    raise LedgerError(
                        NOT_OWNER,
                        "Team is not the current owner of the pick",
                        {
                            "pick_id": pick.pick_id,
                            "expected_owner": from_tid,
                            "current_owner": actual,
                        },
                    )
                row = self.repo.insert_transfer_event(
                    pick_id=pick.pick_id,
                    from_team=from_tid,
                    to_team=to_tid,
                    cause=cause_e.value,
                    swap_id=swap_id,
                    requested_by=requested_by,
                )

        event = TransferEvent.from_row(row)
        logger.info(
            "pick transferred: pick=%s %s -> %s cause=%s swap=%s event=%s",
            event.pick_id,
            event.from_team_id,
            event.to_team_id,
            event.cause.value,
            event.swap_id,
            event.event_id,
        )
        return event
