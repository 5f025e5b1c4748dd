from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class PickSeedRequest(BaseModel):
    season_id: int
    team_ids: Optional[List[str]] = None  # default: every known team
    rounds: List[int] = [1, 2]


class PickTransferRequest(BaseModel):
    to_team_id: str
    requested_by: Optional[str] = None
    # Holder the caller last read; a stale value is rejected with NOT_OWNER.
    expected_from_team: Optional[str] = None
