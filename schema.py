# schema.py
"""Canonical ids and domain constants shared by the repo, the engine and the API.

Conventions:
- team_id is an uppercase string (e.g. 'LAL')
- season_id is a positive integer
- pick_id uses the format "{season_id}_R{round}_{ORIGINAL_TEAM}" (e.g. "7_R1_LAL")
- swap_id is canonical for the unordered pick pair: "SWAP__{min}__{max}"
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

SCHEMA_VERSION = "3.0"

TeamId = str
PickId = str
SwapId = str
SeasonId = int

DRAFT_ROUNDS: Tuple[int, ...] = (1, 2)

FINAL_POSITION_RANGE: Tuple[int, int] = (0, 30)
SEED_RANGE: Tuple[int, int] = (0, 15)
ELIMINATION_ROUND_RANGE: Tuple[int, int] = (0, 5)

# elimination_round -> max number of teams that can reach (and stop at) it.
# 0 = missed playoffs, 1 = lost round 1, 2 = lost conference semifinal,
# 3 = lost conference final, 4 = runner-up, 5 = champion.
BRACKET_CAPACITY: Dict[int, int] = {5: 1, 4: 1, 3: 2, 2: 4, 1: 8}

ELIMINATION_ROUND_LABELS: Dict[int, str] = {
    0: "missed_playoffs",
    1: "first_round",
    2: "conference_semifinal",
    3: "conference_final",
    4: "runner_up",
    5: "champion",
}


def normalize_team_id(value: Any, *, strict: bool = True) -> TeamId:
    """Normalize a team id into its canonical uppercase form.

    With strict=True an empty/missing id raises ValueError.
    """
    tid = str(value or "").strip().upper()
    if strict and not tid:
        raise ValueError(f"invalid team_id: {value!r}")
    return tid


def normalize_season_id(value: Any) -> SeasonId:
    if isinstance(value, bool):
        raise ValueError(f"invalid season_id: {value!r}")
    try:
        sid = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid season_id: {value!r}") from exc
    if sid <= 0:
        raise ValueError(f"season_id must be positive, got {sid}")
    return sid


def make_pick_id(season_id: int, round_no: int, original_team: Any) -> PickId:
    """Create the deterministic pick_id for an original team's pick."""
    tid = normalize_team_id(original_team)
    return f"{int(season_id)}_R{int(round_no)}_{tid}"


def compute_swap_id(pick_id_a: str, pick_id_b: str) -> SwapId:
    a, b = sorted((str(pick_id_a), str(pick_id_b)))
    return f"SWAP__{a}__{b}"
