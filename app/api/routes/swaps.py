from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter

from draft.errors import UNRESOLVABLE, DraftRightsError
from app.schemas.swaps import SwapDeclareRequest, SwapOwnerRequest
from app.services.rights_facade import _bad_request_response, _open_rights_service, _rights_error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/api/swaps")
async def api_declare_swap(req: SwapDeclareRequest):
    try:
        with _open_rights_service() as svc:
            swap_id = svc.declare_swap(
                req.season_id,
                req.swap_type,
                req.pick_a_id,
                req.pick_b_id,
                req.owned_by_team_id,
            )
            status = svc.get_swap_status(swap_id)
        return {"ok": True, "swap_id": swap_id, "status": status["status"]}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/swaps")
async def api_list_swaps(
    season_id: Optional[int] = None,
    team_id: Optional[str] = None,
    status: Optional[str] = None,
):
    """Registry listing; status filter is pending | resolvable | resolved."""
    try:
        with _open_rights_service() as svc:
            swaps = svc.list_swaps(season_id=season_id, team_id=team_id, status=status)
        return {"ok": True, "count": len(swaps), "swaps": swaps}
    except ValueError as exc:
        return _bad_request_response(exc)


@router.get("/api/swaps/{swap_id}")
async def api_swap_status(swap_id: str):
    try:
        with _open_rights_service() as svc:
            status = svc.get_swap_status(swap_id)
        return {"ok": True, **status}
    except DraftRightsError as exc:
        return _rights_error_response(exc)


@router.post("/api/swaps/{swap_id}/resolve")
async def api_resolve_swap(swap_id: str):
    try:
        with _open_rights_service() as svc:
            outcome = svc.resolve_swap(swap_id)
        return {"ok": True, "outcome": outcome.to_dict()}
    except DraftRightsError as exc:
        if exc.code == UNRESOLVABLE:
            logger.warning("swap %s unresolvable: %s", swap_id, exc.details)
        return _rights_error_response(exc)


@router.post("/api/swaps/season/{season_id}/resolve-pending")
async def api_resolve_pending(season_id: int):
    try:
        with _open_rights_service() as svc:
            report = svc.resolve_pending(season_id)
        return {"ok": True, **report}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.post("/api/swaps/{swap_id}/owner")
async def api_transfer_swap_right(swap_id: str, req: SwapOwnerRequest):
    try:
        with _open_rights_service() as svc:
            swap = svc.transfer_swap_right(swap_id, req.new_owner_team_id)
        return {"ok": True, "swap": swap}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
    except ValueError as exc:
        return _bad_request_response(exc)


@router.delete("/api/swaps/{swap_id}")
async def api_withdraw_swap(swap_id: str):
    try:
        with _open_rights_service() as svc:
            svc.withdraw_swap(swap_id)
        return {"ok": True, "swap_id": swap_id, "withdrawn": True}
    except DraftRightsError as exc:
        return _rights_error_response(exc)
