from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class SeasonCreateRequest(BaseModel):
    season_id: int
    season_number: Optional[int] = None  # defaults to season_id
    label: Optional[str] = None
    activate: bool = False


class TeamUpsertRequest(BaseModel):
    team_id: str
    name: Optional[str] = None
    abbreviation: Optional[str] = None
    conference: Optional[str] = None  # East | West (informational)

