from fastapi import APIRouter, Depends

from ..deps import get_manager
from ...schemas.sessions import SweepResponse
from ...services.session_manager import SessionManager

router = APIRouter()


@router.post("/", response_model=SweepResponse)
async def run_sweep(manager: SessionManager = Depends(get_manager)):
    """Run one deadline sweep and matchmaking pass. Meant for cron."""
    sweep, matchmaking = await manager.tick()
    return SweepResponse(
        checked=sweep.checked,
        advanced=sweep.advanced,
        completed=sweep.completed,
        failed=sweep.failed,
        errors=sweep.errors,
        created=matchmaking.created,
        started=matchmaking.started,
        cancelled=matchmaking.cancelled,
    )
