from __future__ import annotations

"""Playoff bracket validation (pure).

A season's standing records describe how far each team advanced. Before any
draft order is derived from them, the per-round counts must fit a
single-elimination bracket:

    elimination_round 5 (champion)                 <= 1
    elimination_round 4 (runner-up)                <= 1
    elimination_round 3 (conference final losers)  <= 2
    elimination_round 2 (round 2 losers)           <= 4
    elimination_round 1 (round 1 losers)           <= 8

All rules are checked; a failure reports every violated rule at once.
An empty record set is valid ("not recorded yet" is the caller's concern).
"""

from collections import Counter
from typing import Dict, Iterable, List, Optional

from schema import BRACKET_CAPACITY, ELIMINATION_ROUND_RANGE

from .errors import BracketError
from .types import BracketViolation, StandingRecord

_RULE_MESSAGES: Dict[int, str] = {
    5: "Only 1 team can be champion",
    4: "Only 1 team can be runner-up",
    3: "Only 2 teams can reach the conference final",
    2: "Only 4 teams can reach round 2",
    1: "Only 8 teams can reach round 1",
}

_RULE_LABELS: Dict[int, str] = {
    5: "champion",
    4: "runner_up",
    3: "conference_final",
    2: "round2",
    1: "round1",
}


def count_by_elimination_round(standings: Iterable[StandingRecord]) -> Dict[int, int]:
    """Count records per elimination_round (every round 0..5 is present)."""
    lo, hi = ELIMINATION_ROUND_RANGE
    counts = Counter(int(s.elimination_round) for s in standings)
    return {r: int(counts.get(r, 0)) for r in range(lo, hi + 1)}


def find_bracket_violations(standings: Iterable[StandingRecord]) -> List[BracketViolation]:
    counts = count_by_elimination_round(standings)
    violations: List[BracketViolation] = []
    # Deepest round first, matching how operators read a bracket.
    for elimination_round in sorted(BRACKET_CAPACITY, reverse=True):
        limit = BRACKET_CAPACITY[elimination_round]
        count = counts.get(elimination_round, 0)
        if count > limit:
            violations.append(
                BracketViolation(
                    elimination_round=elimination_round,
                    label=_RULE_LABELS[elimination_round],
                    limit=limit,
                    count=count,
                    message=_RULE_MESSAGES[elimination_round],
                )
            )
    return violations


def validate_bracket(standings: Iterable[StandingRecord], *, season_id: Optional[int] = None) -> None:
    """Raise BracketError (with the complete violation list) if invalid."""
    violations = find_bracket_violations(list(standings))
    if violations:
        raise BracketError(violations, season_id=season_id)


def is_season_final(standings: Iterable[StandingRecord]) -> bool:
    """True when standings exist and certify a valid bracket."""
    records = list(standings)
    if not records:
        return False
    return not find_bracket_violations(records)
