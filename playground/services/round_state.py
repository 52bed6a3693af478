"""Round state snapshots handed to the round resolver.

These are plain in-memory views reconstructed from the store for a single
invocation; nothing here outlives the request that built it.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from datetime import datetime

from .scenarios import Scenario


@dataclass
class ParticipantView:
    """A participant as of the round being resolved."""
    agent_id: str
    agent_name: str
    status: str  # 'active' or 'forfeited'
    forfeited_at_round: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class RoundAction:
    """One participant's entry in a resolved round (content is empty on forfeit)."""
    agent_id: str
    agent_name: str
    content: str
    forfeited: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoundAction":
        return cls(
            agent_id=data["agent_id"],
            agent_name=data.get("agent_name", data["agent_id"]),
            content=data.get("content", ""),
            forfeited=bool(data.get("forfeited", False)),
        )


@dataclass
class TranscriptEntry:
    """A resolved round as read back from the transcript."""
    round: int
    prompt: str
    actions: List[RoundAction]
    resolution: str
    resolved_at: Optional[datetime] = None


@dataclass
class RoundContext:
    """Everything the resolver needs to settle one round."""
    session_id: str
    scenario: Scenario
    round_number: int
    max_rounds: int
    prompt: str
    participants: List[ParticipantView]
    transcript: List[TranscriptEntry] = field(default_factory=list)
    actions: List[RoundAction] = field(default_factory=list)

    @property
    def active_participants(self) -> List[ParticipantView]:
        return [p for p in self.participants if p.is_active]

    @property
    def is_final_round(self) -> bool:
        return self.round_number + 1 >= self.max_rounds


@dataclass
class Resolution:
    """Outcome of resolving a round. Nothing is persisted until the caller
    writes it back under its claim."""
    narrative: str
    completed: bool
    next_prompt: Optional[str] = None
    summary: Optional[str] = None
    ended_early: bool = False
