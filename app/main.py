from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import DB_PATH_ENV, env_admin_token, env_db_path, env_log_level
import state
from app.api.router import api_router

logging.basicConfig(
    level=env_log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Draft pick rights ledger")

_STATE_CHANGING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@app.on_event("startup")
def _startup_init_state() -> None:
    # 1) db path from the environment (no default)
    # 2) schema apply once (per db_path)
    # 3) repo integrity validate once
    db_path = env_db_path()
    if not db_path:
        raise RuntimeError(f"{DB_PATH_ENV} is required (no default db_path).")
    state.set_db_path(db_path)

    state.startup_init_state()

    from league_repo import LeagueRepo  # local import to avoid cycles

    try:
        with LeagueRepo(db_path) as repo:
            repo.validate_integrity()
    except ValueError as e:
        raise RuntimeError(f"league db integrity check failed during startup: {e}") from e
    logger.info("draft rights server ready (db=%s)", db_path)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _auth_guard_middleware(request: Request, call_next):
    """Optional admin guard.

    If LEAGUE_ADMIN_TOKEN is configured, require it on state-changing API calls.
    """
    required_token = env_admin_token()
    if not required_token:
        return await call_next(request)

    path = request.url.path or ""
    method = (request.method or "GET").upper()
    if method not in _STATE_CHANGING_METHODS or not path.startswith("/api/"):
        return await call_next(request)

    provided = (request.headers.get("X-Admin-Token") or "").strip()
    if provided != required_token:
        return JSONResponse(status_code=401, content={"detail": "Unauthorized: invalid X-Admin-Token"})

    return await call_next(request)


app.include_router(api_router)
