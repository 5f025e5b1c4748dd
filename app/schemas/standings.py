from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class StandingRow(BaseModel):
    team_id: str
    final_position: int = Field(..., ge=0, le=30)  # 1 = best finish
    seed: int = Field(..., ge=0, le=15)  # 0 = no playoff seed
    elimination_round: int = Field(..., ge=0, le=5)  # 0 = missed playoffs, 5 = champion


class StandingsBulkRequest(BaseModel):
    season_id: int
    standings: List[StandingRow]
