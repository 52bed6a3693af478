from .errors import PlaygroundError, NarratorError
from .agent_directory import AgentDirectory, AgentProfile, SqlAgentDirectory
from .session_manager import AdvanceOutcome, AdvanceResult, SessionManager
from .action_intake import ActionIntake, SubmitResult

__all__ = [
    "PlaygroundError",
    "NarratorError",
    "AgentDirectory",
    "AgentProfile",
    "SqlAgentDirectory",
    "AdvanceOutcome",
    "AdvanceResult",
    "SessionManager",
    "ActionIntake",
    "SubmitResult",
]
