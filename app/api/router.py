from fastapi import APIRouter

from app.api.routes import core, standings, picks, swaps

api_router = APIRouter()
api_router.include_router(core.router)
api_router.include_router(standings.router)
api_router.include_router(picks.router)
api_router.include_router(swaps.router)
