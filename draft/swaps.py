from __future__ import annotations

"""Swap registry: pending best/worst-of-two swap declarations.

Lifecycle:  pending -> resolvable -> resolved

'resolved' is stored (set only by draft.resolution). 'resolvable' is derived
on read: both picks' seasons have standings that certify a valid bracket.
"""

import logging
from typing import Any, Dict, List, Optional

from league_repo import LeagueRepo

from .bracket import is_season_final
from .errors import SWAP_EXISTS, SWAP_NOT_FOUND, SWAP_RESOLVED, TEAM_NOT_FOUND, SwapError
from .ledger import PickLedger
from .swap_integrity import check_entitled_team, validate_swap_declaration
from .types import DraftPick, PickSwap, ResolvedOutcome, StandingRecord, SwapStatus

logger = logging.getLogger(__name__)


class SwapRegistry:
    def __init__(self, repo: LeagueRepo, *, ledger: Optional[PickLedger] = None):
        self.repo = repo
        self.ledger = ledger or PickLedger(repo)

    def _maybe_pick(self, pick_id: str) -> Optional[DraftPick]:
        row = self.repo.get_pick(str(pick_id))
        return DraftPick.from_row(row) if row is not None else None

    def _require_owner_team(self, owner: str, *, context: Dict[str, Any]) -> None:
        if not self.repo.team_exists(owner):
            raise SwapError(TEAM_NOT_FOUND, "Entitled team not found", {**context, "owned_by_team_id": owner})

    def declare(
        self,
        season_id: int,
        swap_type: Any,
        pick_a_id: str,
        pick_b_id: str,
        owned_by_team_id: str,
    ) -> str:
        """Validate and store a swap declaration. Returns its swap_id."""
        with self.repo.transaction(immediate=True):
            pick_a = self._maybe_pick(pick_a_id)
            pick_b = self._maybe_pick(pick_b_id)
            pending = {
                str(pid): self.repo.list_pending_swap_ids_for_pick(str(pid))
                for pid in (pick_a_id, pick_b_id)
            }
            fields = validate_swap_declaration(
                season_id=int(season_id),
                swap_type=swap_type,
                pick_a=pick_a,
                pick_b=pick_b,
                pick_a_id=str(pick_a_id),
                pick_b_id=str(pick_b_id),
                owned_by_team_id=owned_by_team_id,
                pending_swaps_by_pick=pending,
            )
            self._require_owner_team(fields["owned_by_team_id"], context={"swap_id": fields["swap_id"]})
            if self.repo.get_swap(fields["swap_id"]) is not None:
                raise SwapError(SWAP_EXISTS, "Swap already declared for this pick pair", {"swap_id": fields["swap_id"]})
            self.repo.insert_swap(
                swap_id=fields["swap_id"],
                season_id=fields["season_id"],
                round_no=fields["round"],
                swap_type=fields["swap_type"].value,
                pick_a_id=fields["pick_a_id"],
                pick_b_id=fields["pick_b_id"],
                owned_by_team_id=fields["owned_by_team_id"],
            )
        logger.info(
            "swap declared: %s type=%s owner=%s",
            fields["swap_id"],
            fields["swap_type"].value,
            fields["owned_by_team_id"],
        )
        return fields["swap_id"]

    def get(self, swap_id: str) -> PickSwap:
        row = self.repo.get_swap(str(swap_id))
        if row is None:
            raise SwapError(SWAP_NOT_FOUND, "Swap not found", {"swap_id": str(swap_id)})
        return PickSwap.from_row(row, outcome=row.get("outcome"))

    def list(
        self,
        *,
        season_id: Optional[int] = None,
        team_id: Optional[str] = None,
        status: Optional[SwapStatus] = None,
    ) -> List[PickSwap]:
        # 'resolvable' is derived, so filter it from the pending rows.
        stored = None
        if status is not None:
            stored = SwapStatus.RESOLVED.value if status == SwapStatus.RESOLVED else SwapStatus.PENDING.value
        rows = self.repo.list_swaps(season_id=season_id, team_id=team_id, status=stored)
        swaps = [PickSwap.from_row(r, outcome=r.get("outcome")) for r in rows]
        if status == SwapStatus.RESOLVABLE:
            return [s for s in swaps if self._seasons_final(s)]
        if status == SwapStatus.PENDING:
            return [s for s in swaps if not self._seasons_final(s)]
        return swaps

    def _seasons_final(self, swap: PickSwap) -> bool:
        season_ids = set()
        for pid in swap.pick_ids:
            pick = self._maybe_pick(pid)
            season_ids.add(pick.season_id if pick is not None else swap.season_id)
        for sid in sorted(season_ids):
            standings = [StandingRecord.from_row(r) for r in self.repo.list_standings(sid)]
            if not is_season_final(standings):
                return False
        return True

    def status(self, swap_id: str) -> Dict[str, Any]:
        swap = self.get(swap_id)
        if swap.is_resolved:
            outcome = ResolvedOutcome.from_dict(swap.outcome or {}, already_resolved=True)
            return {"swap_id": swap.swap_id, "status": SwapStatus.RESOLVED.value, "outcome": outcome.to_dict()}
        state = SwapStatus.RESOLVABLE if self._seasons_final(swap) else SwapStatus.PENDING
        return {"swap_id": swap.swap_id, "status": state.value, "outcome": None}

    def transfer_right(self, swap_id: str, new_owner: str) -> PickSwap:
        """Hand the entitlement of a pending swap to another team."""
        with self.repo.transaction(immediate=True):
            swap = self.get(swap_id)
            if swap.is_resolved:
                raise SwapError(SWAP_RESOLVED, "Resolved swaps cannot change owner", {"swap_id": swap.swap_id})
            pick_a = self.ledger.get(swap.pick_a_id)
            pick_b = self.ledger.get(swap.pick_b_id)
            owner = check_entitled_team(new_owner, pick_a, pick_b, context={"swap_id": swap.swap_id})
            self._require_owner_team(owner, context={"swap_id": swap.swap_id})
            if not self.repo.update_swap_owner(swap.swap_id, owner):
                raise SwapError(SWAP_RESOLVED, "Swap is no longer pending", {"swap_id": swap.swap_id})
        logger.info("swap right transferred: %s %s -> %s", swap.swap_id, swap.owned_by_team_id, owner)
        return self.get(swap_id)

    def withdraw(self, swap_id: str) -> None:
        """Delete a pending swap, freeing both picks for other swaps."""
        with self.repo.transaction(immediate=True):
            swap = self.get(swap_id)
            if swap.is_resolved or not self.repo.delete_pending_swap(swap.swap_id):
                raise SwapError(SWAP_RESOLVED, "Resolved swaps cannot be withdrawn", {"swap_id": swap.swap_id})
        logger.info("swap withdrawn: %s", swap_id)

    def pending_for_pick(self, pick_id: str) -> List[str]:
        return self.repo.list_pending_swap_ids_for_pick(str(pick_id))
