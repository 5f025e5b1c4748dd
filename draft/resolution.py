from __future__ import annotations

"""Swap resolution engine.

resolve(swap_id) is one logically atomic unit (serial lock + BEGIN IMMEDIATE):

  1) read-through: if the transfer log already holds this swap's
     swap_resolution event, return the recorded outcome (no mutation)
  2) per referenced season: read standings -> validate bracket -> derive order
     (validated here, never trusted from a cached "season done" flag)
  3) position of each pick = 1-based slot of its *current holder* in that order
  4) best -> lower slot wins, worst -> higher slot wins
  5) PickLedger.transfer(winner, holder -> entitled team, cause=swap_resolution)

The losing pick is never touched.

Failure semantics:
  NOT_YET_RESOLVABLE  season has no standings yet, or its bracket is invalid
                      (retry later; no mutation)
  UNRESOLVABLE        data inconsistency (pair mismatch, entitled team now tied
                      to a pick, holder missing from the order, ambiguous
                      order, equal slots, ledger refusal); needs an operator
"""

import logging
from typing import Any, Dict, List, Optional

from league_repo import LeagueRepo

from .bracket import find_bracket_violations
from .errors import (
    NOT_YET_RESOLVABLE,
    UNRESOLVABLE,
    DraftOrderError,
    LedgerError,
    ResolveError,
    SwapError,
)
from .ledger import PickLedger
from .locks import rights_serial_lock
from .order import derive_draft_order
from .swap_integrity import check_entitled_team, check_pick_pair
from .swaps import SwapRegistry
from .types import (
    DraftOrder,
    DraftPick,
    PickSwap,
    ResolvedOutcome,
    StandingRecord,
    SwapStatus,
    SwapType,
    TransferCause,
    TransferEvent,
)

logger = logging.getLogger(__name__)


class SwapResolver:
    def __init__(
        self,
        repo: LeagueRepo,
        *,
        ledger: Optional[PickLedger] = None,
        registry: Optional[SwapRegistry] = None,
    ):
        self.repo = repo
        self.ledger = ledger or PickLedger(repo)
        self.registry = registry or SwapRegistry(repo, ledger=self.ledger)

    # ------------------------
    # Season certification
    # ------------------------

    def _certified_order(self, season_id: int, *, swap_id: str) -> DraftOrder:
        standings = [StandingRecord.from_row(r) for r in self.repo.list_standings(int(season_id))]
        if not standings:
            raise ResolveError(
                NOT_YET_RESOLVABLE,
                "Season standings are not recorded yet",
                {"swap_id": swap_id, "season_id": int(season_id), "reason": "no_standings"},
            )
        violations = find_bracket_violations(standings)
        if violations:
            raise ResolveError(
                NOT_YET_RESOLVABLE,
                "Season standings do not form a valid bracket yet",
                {
                    "swap_id": swap_id,
                    "season_id": int(season_id),
                    "reason": "invalid_bracket",
                    "violations": [v.to_dict() for v in violations],
                },
            )
        try:
            return derive_draft_order(standings, season_id=int(season_id))
        except DraftOrderError as exc:
            raise ResolveError(
                UNRESOLVABLE,
                "Draft order cannot be derived from the season standings",
                {"swap_id": swap_id, "season_id": int(season_id), "cause": exc.to_payload()},
            ) from exc

    # ------------------------
    # Resolution
    # ------------------------

    def _recorded_outcome(self, swap: PickSwap, event: TransferEvent) -> ResolvedOutcome:
        if swap.is_resolved and swap.outcome:
            return ResolvedOutcome.from_dict(swap.outcome, already_resolved=True)
        # Event logged but swap row not marked: the log is authoritative.
        raise ResolveError(
            UNRESOLVABLE,
            "Swap resolution is logged but the swap record is not marked resolved",
            {"swap_id": swap.swap_id, "event": event.to_dict()},
        )

    def _positions(self, swap: PickSwap, picks: List[DraftPick]) -> Dict[str, int]:
        orders: Dict[int, DraftOrder] = {}
        positions: Dict[str, int] = {}
        for pick in picks:
            if pick.season_id not in orders:
                orders[pick.season_id] = self._certified_order(pick.season_id, swap_id=swap.swap_id)
            position = orders[pick.season_id].position_of(pick.current_team_id)
            if position is None:
                raise ResolveError(
                    UNRESOLVABLE,
                    "Pick holder has no standing record in the pick's season",
                    {
                        "swap_id": swap.swap_id,
                        "pick_id": pick.pick_id,
                        "current_team_id": pick.current_team_id,
                        "season_id": pick.season_id,
                    },
                )
            positions[pick.pick_id] = position
        return positions

    def resolve(self, swap_id: str) -> ResolvedOutcome:
        """Resolve a swap exactly once; later calls return the recorded outcome."""
        with rights_serial_lock(reason=f"RESOLVE_SWAP:{swap_id}"):
            with self.repo.transaction(immediate=True):
                swap = self.registry.get(swap_id)

                prior = self.ledger.find_swap_resolution(swap.swap_id)
                if prior is not None:
                    outcome = self._recorded_outcome(swap, prior)
                    logger.info("swap %s already resolved (event=%s); no-op", swap.swap_id, prior.event_id)
                    return outcome

                try:
                    pick_a = self.ledger.get(swap.pick_a_id)
                    pick_b = self.ledger.get(swap.pick_b_id)
                    check_pick_pair(
                        season_id=swap.season_id,
                        pick_a=pick_a,
                        pick_b=pick_b,
                        pick_a_id=swap.pick_a_id,
                        pick_b_id=swap.pick_b_id,
                        context={"swap_id": swap.swap_id},
                    )
                    # Trades since declaration may have moved a pick to the entitled team.
                    check_entitled_team(swap.owned_by_team_id, pick_a, pick_b, context={"swap_id": swap.swap_id})
                except (SwapError, LedgerError) as exc:
                    raise ResolveError(
                        UNRESOLVABLE,
                        "Swap picks are inconsistent",
                        {"swap_id": swap.swap_id, "cause": exc.to_payload()},
                    ) from exc

                positions = self._positions(swap, [pick_a, pick_b])
                pos_a = positions[pick_a.pick_id]
                pos_b = positions[pick_b.pick_id]
                if pos_a == pos_b:
                    raise ResolveError(
                        UNRESOLVABLE,
                        "Both picks resolve to the same draft position",
                        {"swap_id": swap.swap_id, "positions": positions},
                    )

                if swap.swap_type == SwapType.BEST:
                    winner, loser = (pick_a, pick_b) if pos_a < pos_b else (pick_b, pick_a)
                else:
                    winner, loser = (pick_a, pick_b) if pos_a > pos_b else (pick_b, pick_a)

                try:
                    event = self.ledger.transfer(
                        winner.pick_id,
                        winner.current_team_id,
                        swap.owned_by_team_id,
                        cause=TransferCause.SWAP_RESOLUTION,
                        swap_id=swap.swap_id,
                    )
                except LedgerError as exc:
                    raise ResolveError(
                        UNRESOLVABLE,
                        "Winning pick cannot be moved to the entitled team",
                        {"swap_id": swap.swap_id, "pick_id": winner.pick_id, "cause": exc.to_payload()},
                    ) from exc
                outcome = ResolvedOutcome(
                    swap_id=swap.swap_id,
                    swap_type=swap.swap_type,
                    season_id=swap.season_id,
                    winning_pick_id=winner.pick_id,
                    losing_pick_id=loser.pick_id,
                    positions=positions,
                    holders={pick_a.pick_id: pick_a.current_team_id, pick_b.pick_id: pick_b.current_team_id},
                    from_team_id=event.from_team_id,
                    to_team_id=event.to_team_id,
                    event_id=event.event_id,
                    resolved_at=event.created_at,
                )
                self.repo.mark_swap_resolved(
                    swap.swap_id,
                    winning_pick_id=winner.pick_id,
                    losing_pick_id=loser.pick_id,
                    outcome=outcome.to_dict(),
                    resolved_at=outcome.resolved_at,
                )

        logger.info(
            "swap resolved: %s type=%s winner=%s (slot %s) -> %s, loser=%s (slot %s)",
            outcome.swap_id,
            outcome.swap_type.value,
            outcome.winning_pick_id,
            positions[outcome.winning_pick_id],
            outcome.to_team_id,
            outcome.losing_pick_id,
            positions[outcome.losing_pick_id],
        )
        return outcome

    def resolve_pending(self, season_id: int) -> Dict[str, Any]:
        """Attempt every pending swap of a season; each swap is its own unit."""
        report: Dict[str, Any] = {"season_id": int(season_id), "resolved": [], "deferred": [], "failed": []}
        for swap in self.repo.list_swaps(season_id=int(season_id), status=SwapStatus.PENDING.value):
            swap_id = str(swap["swap_id"])
            try:
                outcome = self.resolve(swap_id)
            except ResolveError as exc:
                bucket = "deferred" if exc.retryable else "failed"
                if not exc.retryable:
                    logger.warning("swap %s unresolvable: %s", swap_id, exc.message)
                report[bucket].append({"swap_id": swap_id, "error": exc.to_payload()})
                continue
            report["resolved"].append(outcome.to_dict())
        return report
