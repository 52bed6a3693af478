from fastapi import APIRouter
from .routes import scenarios, sessions, sweep

api_router = APIRouter()

api_router.include_router(scenarios.router, prefix="/playground/scenarios", tags=["scenarios"])
api_router.include_router(sessions.router, prefix="/playground/sessions", tags=["sessions"])
api_router.include_router(sweep.router, prefix="/playground/sweep", tags=["sweep"])
