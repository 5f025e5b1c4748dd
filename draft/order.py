from __future__ import annotations

"""Draft order derivation (pure).

Responsibilities:
  - From a season's standing records -> the strict order in which teams pick.
  - Draft order is the reverse of finishing order: the team with the worst
    (highest numeric) final_position picks first.
  - Equal final_position (an upstream data error) is broken by ascending seed.
    If the seed also ties, derivation fails instead of guessing.

Note:
  The bracket is re-validated here even if the caller already did so; an
  order is never derived from an invalid bracket.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .bracket import find_bracket_violations
from .errors import ORDER_AMBIGUOUS, ORDER_INVALID_BRACKET, DraftOrderError
from .types import DraftOrder, StandingRecord, TeamId

logger = logging.getLogger(__name__)


def _order_key(rec: StandingRecord) -> Tuple[int, int]:
    return (-int(rec.final_position), int(rec.seed))


def derive_draft_order(
    standings: Iterable[StandingRecord],
    *,
    season_id: Optional[int] = None,
) -> DraftOrder:
    """Compute the DraftOrder (worst finish first) for one season."""
    records = list(standings)

    seasons = {int(r.season_id) for r in records}
    if len(seasons) > 1:
        raise ValueError(f"standings span multiple seasons: {sorted(seasons)}")
    if season_id is None and seasons:
        season_id = next(iter(seasons))

    violations = find_bracket_violations(records)
    if violations:
        raise DraftOrderError(
            ORDER_INVALID_BRACKET,
            "Cannot derive draft order from an invalid playoff bracket",
            {"season_id": season_id, "violations": [v.to_dict() for v in violations]},
        )

    seen: Dict[TeamId, StandingRecord] = {}
    for rec in records:
        if rec.team_id in seen:
            raise DraftOrderError(
                ORDER_AMBIGUOUS,
                "Team has more than one standing record",
                {"season_id": season_id, "team_id": rec.team_id},
            )
        seen[rec.team_id] = rec

    ranked = sorted(records, key=_order_key)

    ambiguous: List[List[TeamId]] = []
    for prev, cur in zip(ranked, ranked[1:]):
        if prev.final_position != cur.final_position:
            continue
        if prev.seed == cur.seed:
            ambiguous.append(sorted([prev.team_id, cur.team_id]))
        else:
            logger.warning(
                "draft order tie on final_position=%s (season_id=%s) broken by seed: %s(seed %s) before %s(seed %s)",
                prev.final_position,
                season_id,
                prev.team_id,
                prev.seed,
                cur.team_id,
                cur.seed,
            )
    if ambiguous:
        raise DraftOrderError(
            ORDER_AMBIGUOUS,
            "Teams share final_position and seed; draft order is ambiguous",
            {"season_id": season_id, "tied_teams": ambiguous},
        )

    return DraftOrder(season_id=season_id, team_ids=tuple(r.team_id for r in ranked))
