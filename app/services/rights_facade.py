from __future__ import annotations

from fastapi.responses import JSONResponse

import state
from draft.errors import (
    BRACKET_INVALID,
    NOT_OWNER,
    NOT_YET_RESOLVABLE,
    PICK_EXISTS,
    PICK_IN_SWAP,
    SAME_TEAM,
    SWAP_EXISTS,
    SWAP_INVALID,
    SWAP_RESOLVED,
    DraftRightsError,
)
from draft.service import LeagueRightsService

_STATUS_BY_CODE = {
    BRACKET_INVALID: 400,
    SWAP_INVALID: 400,
    SAME_TEAM: 400,
    NOT_OWNER: 409,
    PICK_EXISTS: 409,
    SWAP_EXISTS: 409,
    PICK_IN_SWAP: 409,
    SWAP_RESOLVED: 409,
    # Not a failure: the swap waits for final standings.
    NOT_YET_RESOLVABLE: 202,
}


def _status_for(code: str) -> int:
    if code in _STATUS_BY_CODE:
        return _STATUS_BY_CODE[code]
    if code.endswith("_NOT_FOUND"):
        return 404
    # UNRESOLVABLE, ORDER_INVALID_BRACKET, ORDER_AMBIGUOUS
    return 422


def _rights_error_response(error: DraftRightsError) -> JSONResponse:
    payload = {
        "ok": False,
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details,
        },
    }
    return JSONResponse(status_code=_status_for(error.code), content=payload)


def _bad_request_response(error: ValueError) -> JSONResponse:
    payload = {
        "ok": False,
        "error": {
            "code": "BAD_REQUEST",
            "message": str(error),
            "details": {},
        },
    }
    return JSONResponse(status_code=400, content=payload)


def _open_rights_service():
    """Open a LeagueRightsService on the configured database (context manager)."""
    return LeagueRightsService.open(state.get_db_path())
