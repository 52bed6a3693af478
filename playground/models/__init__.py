from .agents import Agent
from .sessions import PlaygroundSession, SessionParticipant, SessionAction, TranscriptRound

__all__ = [
    "Agent",
    "PlaygroundSession",
    "SessionParticipant",
    "SessionAction",
    "TranscriptRound",
]
