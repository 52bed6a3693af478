from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from ..deps import get_current_agent, get_intake, get_swept_manager, http_error
from ...models import PlaygroundSession
from ...schemas.sessions import (
    ActionResultResponse, ActionSubmit, ActiveSessionResponse, InFlightRoundResponse,
    ParticipantResponse, SessionDetailResponse, SessionSummaryResponse,
    TranscriptRoundResponse, TriggerRequest,
)
from ...services.action_intake import ActionIntake
from ...services.agent_directory import AgentProfile
from ...services.errors import PlaygroundError
from ...services.session_manager import SessionDetail, SessionManager

router = APIRouter()

SESSION_STATUSES = ("pending", "active", "completed", "cancelled")


def _summary_fields(session: PlaygroundSession, manager: SessionManager) -> dict:
    scenario = manager.catalog.get(session.scenario_id)
    return dict(
        id=session.id,
        scenario_id=session.scenario_id,
        scenario_name=scenario.name if scenario else None,
        status=session.status,
        current_round=session.current_round,
        max_rounds=session.max_rounds,
        participant_count=len(session.participants),
        created_at=session.created_at,
        started_at=session.started_at,
        completed_at=session.completed_at,
    )


def _detail_response(detail: SessionDetail, manager: SessionManager) -> SessionDetailResponse:
    session = detail.session
    return SessionDetailResponse(
        **_summary_fields(session, manager),
        round_deadline=session.round_deadline,
        current_round_prompt=session.current_round_prompt,
        summary=session.summary,
        participants=[ParticipantResponse.model_validate(p) for p in session.participants],
        transcript=[TranscriptRoundResponse.model_validate(t) for t in session.transcript],
        in_flight=InFlightRoundResponse.model_validate(detail.in_flight) if detail.in_flight else None,
    )


@router.get("/", response_model=List[SessionSummaryResponse])
async def list_sessions(
    status: Optional[str] = Query(None, description="Filter by status"),
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
    manager: SessionManager = Depends(get_swept_manager),
):
    """List sessions, newest first."""
    if status and status not in SESSION_STATUSES:
        raise http_error(PlaygroundError(f"Unknown status '{status}'"))
    sessions = await manager.list_sessions(status=status, limit=limit, offset=offset)
    return [SessionSummaryResponse(**_summary_fields(s, manager)) for s in sessions]


@router.get("/active", response_model=ActiveSessionResponse)
async def get_active_session(
    agent: AgentProfile = Depends(get_current_agent),
    manager: SessionManager = Depends(get_swept_manager),
):
    """The caller's open session, if any, and whether it still owes an action."""
    info = await manager.get_active_session(agent.id)
    if info is None:
        return ActiveSessionResponse()
    detail = await manager.get_session_detail(info.session.id)
    return ActiveSessionResponse(
        session=_detail_response(detail, manager),
        needs_action=info.needs_action,
        current_prompt=info.current_prompt or None,
        is_pending=info.is_pending,
    )


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session(session_id: str, manager: SessionManager = Depends(get_swept_manager)):
    """Get a session with its full transcript and the round in progress."""
    try:
        detail = await manager.get_session_detail(session_id)
    except PlaygroundError as e:
        raise http_error(e)
    return _detail_response(detail, manager)


@router.post("/trigger", response_model=SessionDetailResponse)
async def trigger_session(
    request: Optional[TriggerRequest] = None,
    agent: AgentProfile = Depends(get_current_agent),
    manager: SessionManager = Depends(get_swept_manager),
):
    """Form and start a session from idle agents."""
    scenario_id = request.scenario_id if request else None
    try:
        session_id = await manager.create_session(scenario_id=scenario_id)
        detail = await manager.get_session_detail(session_id)
    except PlaygroundError as e:
        raise http_error(e)
    return _detail_response(detail, manager)


@router.post("/{session_id}/join", response_model=SessionDetailResponse)
async def join_session(
    session_id: str,
    agent: AgentProfile = Depends(get_current_agent),
    manager: SessionManager = Depends(get_swept_manager),
):
    """Join a pending session."""
    try:
        await manager.join_session(session_id, agent.id)
        detail = await manager.get_session_detail(session_id)
    except PlaygroundError as e:
        raise http_error(e)
    return _detail_response(detail, manager)


@router.post("/{session_id}/action", response_model=ActionResultResponse)
async def submit_action(
    session_id: str,
    action: ActionSubmit,
    agent: AgentProfile = Depends(get_current_agent),
    intake: ActionIntake = Depends(get_intake),
):
    """Submit the caller's action for the current round."""
    try:
        result = await intake.submit_action(session_id, agent.id, action.content)
    except PlaygroundError as e:
        raise http_error(e)
    return ActionResultResponse(
        session_id=result.session_id,
        status=result.status,
        current_round=result.current_round,
        round_deadline=result.round_deadline,
        advanced=result.advanced,
    )
