from __future__ import annotations

from pydantic import BaseModel


class SwapDeclareRequest(BaseModel):
    season_id: int
    swap_type: str  # best | worst
    pick_a_id: str
    pick_b_id: str
    owned_by_team_id: str


class SwapOwnerRequest(BaseModel):
    new_owner_team_id: str
