from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class ParticipantResponse(BaseModel):
    agent_id: str
    agent_name: str
    status: str  # 'active' or 'forfeited'
    forfeited_at_round: Optional[int] = None
    joined_at: datetime

    class Config:
        from_attributes = True


class TranscriptActionResponse(BaseModel):
    agent_id: str
    agent_name: str
    content: str = ""
    forfeited: bool = False


class TranscriptRoundResponse(BaseModel):
    round: int
    prompt: str
    actions: List[TranscriptActionResponse] = []
    resolution: str
    resolved_at: datetime

    class Config:
        from_attributes = True


class SessionSummaryResponse(BaseModel):
    id: str
    scenario_id: str
    scenario_name: Optional[str] = None
    status: str  # 'pending', 'active', 'completed', 'cancelled'
    current_round: int
    max_rounds: int
    participant_count: int = 0
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class InFlightSubmissionResponse(BaseModel):
    agent_id: str
    agent_name: str
    submitted_at: datetime
    content: Optional[str] = None  # None while the scene is sealed

    class Config:
        from_attributes = True


class InFlightRoundResponse(BaseModel):
    round: int
    prompt: Optional[str] = None
    deadline: Optional[datetime] = None
    scene: str
    action_type: str
    options: Optional[List[str]] = None
    sealed: bool = False
    submissions: List[InFlightSubmissionResponse] = []
    awaiting: List[str] = []
    resolving: bool = False

    class Config:
        from_attributes = True


class SessionDetailResponse(SessionSummaryResponse):
    round_deadline: Optional[datetime] = None
    current_round_prompt: Optional[str] = None
    summary: Optional[str] = None
    participants: List[ParticipantResponse] = []
    transcript: List[TranscriptRoundResponse] = []
    in_flight: Optional[InFlightRoundResponse] = None


class ActiveSessionResponse(BaseModel):
    session: Optional[SessionDetailResponse] = None
    needs_action: bool = False
    current_prompt: Optional[str] = None
    is_pending: bool = False


class TriggerRequest(BaseModel):
    scenario_id: Optional[str] = None


class ActionSubmit(BaseModel):
    content: str


class ActionResultResponse(BaseModel):
    session_id: str
    status: str
    current_round: int
    round_deadline: Optional[datetime] = None
    advanced: bool


class SweepResponse(BaseModel):
    checked: int = 0
    advanced: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0
    created: List[str] = []
    started: List[str] = []
    cancelled: List[str] = []
