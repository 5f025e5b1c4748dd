from __future__ import annotations

from fastapi import APIRouter

from schema import SCHEMA_VERSION
from draft.errors import DraftRightsError
from app.schemas.common import SeasonCreateRequest, TeamUpsertRequest
from app.services.rights_facade import _bad_request_response, _open_rights_service, _rights_error_response

router = APIRouter()


@router.get("/api/health")
async def api_health():
    """Liveness check."""
    return {"ok": True, "schema_version": SCHEMA_VERSION}


@router.post("/api/seasons")
async def api_create_season(req: SeasonCreateRequest):
    try:
        with _open_rights_service() as svc:
            season = svc.create_season(
                req.season_id,
                season_number=req.season_number,
                label=req.label,
                activate=req.activate,
            )
        return {"ok": True, "season": season}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.post("/api/seasons/{season_id}/activate")
async def api_activate_season(season_id: int):
    try:
        with _open_rights_service() as svc:
            season = svc.activate_season(season_id)
        return {"ok": True, "season": season}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/seasons/active")
async def api_active_season():
    with _open_rights_service() as svc:
        season = svc.get_active_season()
    return {"ok": True, "season": season}


@router.post("/api/teams")
async def api_upsert_team(req: TeamUpsertRequest):
    try:
        with _open_rights_service() as svc:
            team = svc.upsert_team(
                req.team_id,
                name=req.name,
                abbreviation=req.abbreviation,
                conference=req.conference,
            )
        return {"ok": True, "team": team}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/teams")
async def api_list_teams():
    with _open_rights_service() as svc:
        teams = svc.list_teams()
    return {"ok": True, "count": len(teams), "teams": teams}
