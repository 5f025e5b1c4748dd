from __future__ import annotations

"""Draft rights domain types.

This module is deliberately dependency-light so it can be imported by:
- draft.bracket     (pure bracket validation)
- draft.order       (pure draft order derivation)
- draft.ledger      (pick ownership ledger over LeagueRepo)
- draft.swaps       (swap registry over LeagueRepo)
- draft.resolution  (swap resolution engine)

Pick identity (season_id, round, original_team_id) and pick *holder*
(current_team_id) are separate fields; pick_id is the stable key.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from schema import (
    ELIMINATION_ROUND_LABELS,
    ELIMINATION_ROUND_RANGE,
    FINAL_POSITION_RANGE,
    SEED_RANGE,
    PickId,
    SwapId,
    TeamId,
    normalize_season_id,
    normalize_team_id,
)


class SwapType(str, Enum):
    BEST = "best"
    WORST = "worst"


class SwapStatus(str, Enum):
    PENDING = "pending"
    RESOLVABLE = "resolvable"
    RESOLVED = "resolved"


class TransferCause(str, Enum):
    TRADE = "trade"
    SWAP_RESOLUTION = "swap_resolution"


def _strict_int(value: Any, *, field_name: str, bounds: Tuple[int, int]) -> int:
    # Reject bool explicitly (bool is a subclass of int).
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    try:
        out = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be an integer, got {value!r}") from exc
    lo, hi = bounds
    if out < lo or out > hi:
        raise ValueError(f"{field_name} must be between {lo} and {hi}, got {out}")
    return out


@dataclass(frozen=True, slots=True)
class StandingRecord:
    """Final standing of one team in one season."""

    season_id: int
    team_id: TeamId
    final_position: int
    seed: int
    elimination_round: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "season_id", normalize_season_id(self.season_id))
        object.__setattr__(self, "team_id", normalize_team_id(self.team_id))
        object.__setattr__(
            self,
            "final_position",
            _strict_int(self.final_position, field_name="final_position", bounds=FINAL_POSITION_RANGE),
        )
        object.__setattr__(self, "seed", _strict_int(self.seed, field_name="seed", bounds=SEED_RANGE))
        object.__setattr__(
            self,
            "elimination_round",
            _strict_int(self.elimination_round, field_name="elimination_round", bounds=ELIMINATION_ROUND_RANGE),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "StandingRecord":
        return cls(
            season_id=row["season_id"],
            team_id=row["team_id"],
            final_position=row["final_position"],
            seed=row["seed"],
            elimination_round=row["elimination_round"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "season_id": int(self.season_id),
            "team_id": self.team_id,
            "final_position": int(self.final_position),
            "seed": int(self.seed),
            "elimination_round": int(self.elimination_round),
            "elimination_label": ELIMINATION_ROUND_LABELS.get(int(self.elimination_round)),
        }


@dataclass(frozen=True, slots=True)
class BracketViolation:
    """One violated bracket cardinality rule."""

    elimination_round: int
    label: str
    limit: int
    count: int
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elimination_round": int(self.elimination_round),
            "label": self.label,
            "limit": int(self.limit),
            "count": int(self.count),
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class DraftOrder:
    """Strict draft order for one season: team_ids[0] picks first."""

    season_id: Optional[int]
    team_ids: Tuple[TeamId, ...]

    def position_of(self, team_id: Any) -> Optional[int]:
        """1-based draft position of a team, or None when it has no record."""
        tid = normalize_team_id(team_id, strict=False)
        try:
            return self.team_ids.index(tid) + 1
        except ValueError:
            return None

    def __len__(self) -> int:
        return len(self.team_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "season_id": self.season_id,
            "order": [
                {"position": i, "team_id": tid} for i, tid in enumerate(self.team_ids, start=1)
            ],
        }


@dataclass(frozen=True, slots=True)
class DraftPick:
    pick_id: PickId
    season_id: int
    round: int
    original_team_id: TeamId
    current_team_id: TeamId

    @property
    def is_traded(self) -> bool:
        return self.original_team_id != self.current_team_id

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "DraftPick":
        return cls(
            pick_id=str(row["pick_id"]),
            season_id=int(row["season_id"]),
            round=int(row["round"]),
            original_team_id=str(row["original_team_id"]).upper(),
            current_team_id=str(row["current_team_id"]).upper(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pick_id": self.pick_id,
            "season_id": int(self.season_id),
            "round": int(self.round),
            "original_team_id": self.original_team_id,
            "current_team_id": self.current_team_id,
        }


@dataclass(frozen=True, slots=True)
class TransferEvent:
    event_id: int
    pick_id: PickId
    from_team_id: TeamId
    to_team_id: TeamId
    cause: TransferCause
    created_at: str
    swap_id: Optional[SwapId] = None
    requested_by: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TransferEvent":
        return cls(
            event_id=int(row["event_id"]),
            pick_id=str(row["pick_id"]),
            from_team_id=str(row["from_team_id"]),
            to_team_id=str(row["to_team_id"]),
            cause=TransferCause(str(row["cause"])),
            created_at=str(row["created_at"]),
            swap_id=str(row["swap_id"]) if row["swap_id"] is not None else None,
            requested_by=str(row["requested_by"]) if row["requested_by"] is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": int(self.event_id),
            "pick_id": self.pick_id,
            "from_team_id": self.from_team_id,
            "to_team_id": self.to_team_id,
            "cause": self.cause.value,
            "swap_id": self.swap_id,
            "requested_by": self.requested_by,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class PickSwap:
    swap_id: SwapId
    season_id: int
    round: int
    swap_type: SwapType
    pick_a_id: PickId
    pick_b_id: PickId
    owned_by_team_id: TeamId
    status: SwapStatus = SwapStatus.PENDING
    winning_pick_id: Optional[PickId] = None
    losing_pick_id: Optional[PickId] = None
    outcome: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None
    resolved_at: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status == SwapStatus.RESOLVED

    @property
    def pick_ids(self) -> Tuple[PickId, PickId]:
        return (self.pick_a_id, self.pick_b_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], *, outcome: Optional[Dict[str, Any]] = None) -> "PickSwap":
        return cls(
            swap_id=str(row["swap_id"]),
            season_id=int(row["season_id"]),
            round=int(row["round"]),
            swap_type=SwapType(str(row["swap_type"])),
            pick_a_id=str(row["pick_a_id"]),
            pick_b_id=str(row["pick_b_id"]),
            owned_by_team_id=str(row["owned_by_team_id"]),
            status=SwapStatus(str(row["status"])),
            winning_pick_id=row["winning_pick_id"],
            losing_pick_id=row["losing_pick_id"],
            outcome=outcome,
            created_at=row["created_at"],
            resolved_at=row["resolved_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swap_id": self.swap_id,
            "season_id": int(self.season_id),
            "round": int(self.round),
            "swap_type": self.swap_type.value,
            "pick_a_id": self.pick_a_id,
            "pick_b_id": self.pick_b_id,
            "owned_by_team_id": self.owned_by_team_id,
            "status": self.status.value,
            "winning_pick_id": self.winning_pick_id,
            "losing_pick_id": self.losing_pick_id,
            "created_at": self.created_at,
            "resolved_at": self.resolved_at,
        }


@dataclass(frozen=True, slots=True)
class ResolvedOutcome:
    """Derived fact recorded once a swap resolves.

    positions maps each pick_id to its 1-based draft slot; holders maps each
    pick_id to the team whose finish determined that slot (the holder at
    resolution time).
    """

    swap_id: SwapId
    swap_type: SwapType
    season_id: int
    winning_pick_id: PickId
    losing_pick_id: PickId
    positions: Dict[PickId, int]
    holders: Dict[PickId, TeamId]
    from_team_id: TeamId
    to_team_id: TeamId
    event_id: int
    resolved_at: str
    already_resolved: bool = field(default=False, compare=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, already_resolved: bool = False) -> "ResolvedOutcome":
        return cls(
            swap_id=str(data["swap_id"]),
            swap_type=SwapType(str(data["swap_type"])),
            season_id=int(data["season_id"]),
            winning_pick_id=str(data["winning_pick_id"]),
            losing_pick_id=str(data["losing_pick_id"]),
            positions={str(k): int(v) for k, v in dict(data["positions"]).items()},
            holders={str(k): str(v) for k, v in dict(data["holders"]).items()},
            from_team_id=str(data["from_team_id"]),
            to_team_id=str(data["to_team_id"]),
            event_id=int(data["event_id"]),
            resolved_at=str(data["resolved_at"]),
            already_resolved=bool(already_resolved),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "swap_id": self.swap_id,
            "swap_type": self.swap_type.value,
            "season_id": int(self.season_id),
            "winning_pick_id": self.winning_pick_id,
            "losing_pick_id": self.losing_pick_id,
            "positions": dict(self.positions),
            "holders": dict(self.holders),
            "from_team_id": self.from_team_id,
            "to_team_id": self.to_team_id,
            "event_id": int(self.event_id),
            "resolved_at": self.resolved_at,
            "already_resolved": bool(self.already_resolved),
        }
