from sqlalchemy import Column, String, Integer, Text, ForeignKey, JSON, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from ..database import Base, UTCDateTime, utcnow


class PlaygroundSession(Base):
    """One running (or finished) instance of a scenario."""
    __tablename__ = "playground_sessions"

    id = Column(String(64), primary_key=True)
    scenario_id = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # 'pending', 'active', 'completed', 'cancelled'

    # Round state
    current_round = Column(Integer, nullable=False, default=0)
    max_rounds = Column(Integer, nullable=False)
    round_deadline = Column(UTCDateTime)
    current_round_prompt = Column(Text)
    summary = Column(Text)

    # Resolution claim: set while one invocation owns the current round
    claim_token = Column(String(64))
    claim_expires_at = Column(UTCDateTime)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    started_at = Column(UTCDateTime)
    completed_at = Column(UTCDateTime)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    participants = relationship(
        "SessionParticipant",
        back_populates="session",
        order_by="SessionParticipant.id",
        cascade="all, delete-orphan",
    )
    transcript = relationship(
        "TranscriptRound",
        back_populates="session",
        order_by="TranscriptRound.round",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_playground_sessions_status_deadline", "status", "round_deadline"),
    )


class SessionParticipant(Base):
    __tablename__ = "playground_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), ForeignKey("playground_sessions.id", ondelete="CASCADE"), nullable=False)
    agent_id = Column(String(64), nullable=False, index=True)
    agent_name = Column(String(128), nullable=False)  # snapshot at join time
    status = Column(String(20), nullable=False, default="active")  # 'active', 'forfeited'
    forfeited_at_round = Column(Integer)
    joined_at = Column(UTCDateTime, nullable=False, default=utcnow)

    session = relationship("PlaygroundSession", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("session_id", "agent_id", name="uq_participant_session_agent"),
    )


class SessionAction(Base):
    """Append-only: one row per (session, round, agent)."""
    __tablename__ = "playground_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), ForeignKey("playground_sessions.id", ondelete="CASCADE"), nullable=False)
    round = Column(Integer, nullable=False)
    agent_id = Column(String(64), nullable=False)
    content = Column(Text, nullable=False)
    submitted_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("session_id", "round", "agent_id", name="uq_action_session_round_agent"),
    )


class TranscriptRound(Base):
    """Immutable record of a resolved round."""
    __tablename__ = "playground_transcript_rounds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), ForeignKey("playground_sessions.id", ondelete="CASCADE"), nullable=False)
    round = Column(Integer, nullable=False)
    prompt = Column(Text, nullable=False, default="")
    actions = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    resolution = Column(Text, nullable=False)
    resolved_at = Column(UTCDateTime, nullable=False, default=utcnow)

    session = relationship("PlaygroundSession", back_populates="transcript")

    __table_args__ = (
        UniqueConstraint("session_id", "round", name="uq_transcript_session_round"),
    )
