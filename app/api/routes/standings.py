from __future__ import annotations

import logging

from fastapi import APIRouter

from draft.errors import DraftRightsError
from app.schemas.standings import StandingsBulkRequest
from app.services.rights_facade import _bad_request_response, _open_rights_service, _rights_error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/api/standings/season/{season_id}")
async def api_list_standings(season_id: int):
    try:
        with _open_rights_service() as svc:
            standings = svc.list_standings(season_id)
        return {
            "ok": True,
            "season_id": season_id,
            "count": len(standings),
            "standings": [s.to_dict() for s in standings],
        }
    except ValueError as exc:
        return _bad_request_response(exc)


@router.post("/api/standings/bulk")
async def api_standings_bulk(req: StandingsBulkRequest):
    """Upsert many standings of one season.

    The whole batch is rejected (nothing written) when the resulting season
    would violate the playoff bracket; the error lists every violated rule.
    """
    try:
        with _open_rights_service() as svc:
            rows = [
                {
                    "team_id": row.team_id,
                    "final_position": row.final_position,
                    "seed": row.seed,
                    "elimination_round": row.elimination_round,
                }
                for row in req.standings
            ]
            result = svc.record_standings(req.season_id, rows)
        return {"ok": True, **result}
    except DraftRightsError as exc:
        logger.warning("standings bulk rejected (season_id=%s): %s", req.season_id, exc.message)
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/standings/season/{season_id}/champions")
async def api_champions(season_id: int):
    try:
        with _open_rights_service() as svc:
            champions = svc.list_champions(season_id)
        return {"ok": True, "season_id": season_id, "champions": [s.to_dict() for s in champions]}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/standings/season/{season_id}/playoffs")
async def api_playoff_teams(season_id: int):
    try:
        with _open_rights_service() as svc:
            teams = svc.list_playoff_teams(season_id)
        return {"ok": True, "season_id": season_id, "count": len(teams), "teams": [s.to_dict() for s in teams]}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/standings/season/{season_id}/bracket")
async def api_bracket_report(season_id: int):
    """Per-round counts plus every bracket violation (empty when valid)."""
    try:
        with _open_rights_service() as svc:
            report = svc.bracket_report(season_id)
        return {"ok": True, **report}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/standings/season/{season_id}/draft-order")
async def api_draft_order(season_id: int):
    try:
        with _open_rights_service() as svc:
            order = svc.draft_order(season_id)
        return {"ok": True, **order}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)
