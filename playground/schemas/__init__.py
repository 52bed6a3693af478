from .scenarios import SceneResponse, ScenarioResponse
from .sessions import (
    ParticipantResponse, TranscriptActionResponse, TranscriptRoundResponse,
    SessionSummaryResponse, SessionDetailResponse, InFlightRoundResponse,
    InFlightSubmissionResponse, ActiveSessionResponse, TriggerRequest,
    ActionSubmit, ActionResultResponse, SweepResponse,
)

__all__ = [
    "SceneResponse", "ScenarioResponse",
    "ParticipantResponse", "TranscriptActionResponse", "TranscriptRoundResponse",
    "SessionSummaryResponse", "SessionDetailResponse", "InFlightRoundResponse",
    "InFlightSubmissionResponse", "ActiveSessionResponse", "TriggerRequest",
    "ActionSubmit", "ActionResultResponse", "SweepResponse",
]
