from __future__ import annotations

"""Shared swap integrity checks.

Used at two stages so they can never disagree:
  - declaration (draft.swaps.SwapRegistry.declare / transfer_right)
  - resolution  (draft.resolution.SwapResolver), which fails closed

We validate that:
  - Both referenced picks exist and are distinct.
  - The picks match on (season, round), and the season matches the swap's.
  - The entitled team is none of the picks' original or current teams.
  - Neither pick already belongs to another pending swap (declaration only).
"""

from typing import Any, Dict, Mapping, Optional, Sequence

from schema import compute_swap_id, normalize_team_id

from .errors import PICK_IN_SWAP, SWAP_INVALID, SwapError
from .types import DraftPick, SwapType


def normalize_swap_type(raw: Any) -> SwapType:
    value = str(raw.value if isinstance(raw, SwapType) else raw or "").strip().lower()
    try:
        return SwapType(value)
    except ValueError:
        raise SwapError(
            SWAP_INVALID,
            "swap_type must be 'best' or 'worst'",
            {"swap_type": raw},
        ) from None


def check_pick_pair(
    *,
    season_id: int,
    pick_a: Optional[DraftPick],
    pick_b: Optional[DraftPick],
    pick_a_id: str,
    pick_b_id: str,
    context: Optional[Dict[str, Any]] = None,
) -> int:
    """Structural pair checks. Returns the shared round.

    Raises:
        SwapError(SWAP_INVALID)
    """
    details: Dict[str, Any] = dict(context or {})
    details.update({"season_id": int(season_id), "pick_a_id": str(pick_a_id), "pick_b_id": str(pick_b_id)})

    if str(pick_a_id) == str(pick_b_id):
        raise SwapError(SWAP_INVALID, "Swap picks must be different", details)

    if pick_a is None or pick_b is None:
        raise SwapError(
            SWAP_INVALID,
            "Swap picks must exist",
            {**details, "missing": [pid for pid, p in ((pick_a_id, pick_a), (pick_b_id, pick_b)) if p is None]},
        )

    if pick_a.season_id != pick_b.season_id or pick_a.round != pick_b.round:
        raise SwapError(
            SWAP_INVALID,
            "Swap picks must match season and round",
            {
                **details,
                "pick_a": {"season_id": pick_a.season_id, "round": pick_a.round},
                "pick_b": {"season_id": pick_b.season_id, "round": pick_b.round},
            },
        )

    if pick_a.season_id != int(season_id):
        raise SwapError(
            SWAP_INVALID,
            "Swap season does not match the picks' season",
            {**details, "pick_season_id": pick_a.season_id},
        )

    return int(pick_a.round)


def check_entitled_team(
    owned_by_team_id: Any,
    pick_a: DraftPick,
    pick_b: DraftPick,
    *,
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """The entitled team must be distinct from every team tied to either pick."""
    owner = normalize_team_id(owned_by_team_id, strict=False)
    if not owner:
        raise SwapError(SWAP_INVALID, "owned_by_team_id is required", dict(context or {}))
    involved = {
        pick_a.original_team_id,
        pick_a.current_team_id,
        pick_b.original_team_id,
        pick_b.current_team_id,
    }
    if owner in involved:
        raise SwapError(
            SWAP_INVALID,
            "Entitled team must differ from the picks' original and current teams",
            {**dict(context or {}), "owned_by_team_id": owner, "involved_teams": sorted(involved)},
        )
    return owner


def check_picks_free(
    pending_swaps_by_pick: Mapping[str, Sequence[str]],
    *,
    ignore_swap_id: Optional[str] = None,
) -> None:
    """A pick can belong to at most one pending swap."""
    busy = {
        pid: [sid for sid in sids if sid != ignore_swap_id]
        for pid, sids in pending_swaps_by_pick.items()
    }
    busy = {pid: sids for pid, sids in busy.items() if sids}
    if busy:
        raise SwapError(
            PICK_IN_SWAP,
            "Pick is already part of a pending swap",
            {"pending_swaps_by_pick": busy},
        )


def validate_swap_declaration(
    *,
    season_id: int,
    swap_type: Any,
    pick_a: Optional[DraftPick],
    pick_b: Optional[DraftPick],
    pick_a_id: str,
    pick_b_id: str,
    owned_by_team_id: Any,
    pending_swaps_by_pick: Mapping[str, Sequence[str]],
) -> Dict[str, Any]:
    """Validate a declaration. Returns the canonical fields to persist."""
    stype = normalize_swap_type(swap_type)
    round_no = check_pick_pair(
        season_id=season_id,
        pick_a=pick_a,
        pick_b=pick_b,
        pick_a_id=pick_a_id,
        pick_b_id=pick_b_id,
    )
    assert pick_a is not None and pick_b is not None
    owner = check_entitled_team(
        owned_by_team_id,
        pick_a,
        pick_b,
        context={"pick_a_id": pick_a.pick_id, "pick_b_id": pick_b.pick_id},
    )
    check_picks_free(pending_swaps_by_pick)
    return {
        "swap_id": compute_swap_id(pick_a.pick_id, pick_b.pick_id),
        "season_id": int(season_id),
        "round": round_no,
        "swap_type": stype,
        "pick_a_id": pick_a.pick_id,
        "pick_b_id": pick_b.pick_id,
        "owned_by_team_id": owner,
    }
