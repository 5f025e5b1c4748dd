from __future__ import annotations

from typing import Optional

from fastapi import APIRouter

from draft.errors import DraftRightsError
from app.schemas.picks import PickSeedRequest, PickTransferRequest
from app.services.rights_facade import _bad_request_response, _open_rights_service, _rights_error_response

router = APIRouter()


@router.post("/api/picks/seed")
async def api_seed_picks(req: PickSeedRequest):
    try:
        with _open_rights_service() as svc:
            created = svc.seed_picks(req.season_id, req.team_ids, rounds=tuple(req.rounds))
        return {"ok": True, "season_id": req.season_id, "created": created, "count": len(created)}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/picks/season/{season_id}")
async def api_pick_ownership(season_id: int):
    """pick_id -> current holder for one season."""
    try:
        with _open_rights_service() as svc:
            ownership = svc.get_pick_ownership(season_id)
        return {"ok": True, "season_id": season_id, "ownership": ownership}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/picks/team/{team_id}")
async def api_team_picks(team_id: str, min_season_id: Optional[int] = None):
    try:
        with _open_rights_service() as svc:
            picks = svc.team_picks(team_id, min_season_id=min_season_id)
        return {"ok": True, "team_id": team_id.upper(), **picks}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/picks/{pick_id}")
async def api_get_pick(pick_id: str):
    try:
        with _open_rights_service() as svc:
            pick = svc.get_pick(pick_id)
        return {"ok": True, "pick": pick}
    except DraftRightsError as exc:
        return _rights_error_response(exc)


@router.get("/api/picks/{pick_id}/history")
async def api_pick_history(pick_id: str):
    try:
        with _open_rights_service() as svc:
            events = svc.pick_history(pick_id)
        return {"ok": True, "pick_id": pick_id, "events": [e.to_dict() for e in events]}
    except DraftRightsError as exc:
        return _rights_error_response(exc)


@router.post("/api/picks/{pick_id}/transfer")
async def api_transfer_pick(pick_id: str, req: PickTransferRequest):
    try:
        with _open_rights_service() as svc:
            event = svc.request_transfer(
                pick_id,
                req.to_team_id,
                req.requested_by,
                expected_from_team=req.expected_from_team,
            )
        return {"ok": True, "event": event.to_dict()}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)
