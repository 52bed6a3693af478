"""Action intake: validates and records one participant's action for the
current round, then gives the round a chance to advance.

The acceptance transaction starts with a conditional write on the session
row. That write only matches while the round is unclaimed, so an action can
never land in a round whose resolver has already read its inputs, and on
SQLite it takes the write lock up front instead of upgrading a read lock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from ..models import PlaygroundSession, SessionAction, SessionParticipant
from .errors import (
    ContentInvalid,
    DuplicateSubmission,
    NotParticipant,
    RoundClosed,
    SessionNotActive,
    SessionNotFound,
)
from .scenarios import ActionKind
from .session_manager import AdvanceOutcome, SessionManager

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    session_id: str
    status: str
    current_round: int
    round_deadline: Optional[datetime]
    advanced: bool


class ActionIntake:
    """Accepts actions on behalf of authenticated agents."""

    def __init__(self, manager: SessionManager):
        self.manager = manager
        self.session_factory = manager.session_factory
        self.settings = manager.settings

    def _validate_content(self, content: str) -> str:
        content = (content or "").strip()
        if not content:
            raise ContentInvalid("Action content cannot be empty")
        if len(content) > self.settings.max_action_length:
            raise ContentInvalid(
                f"Action content exceeds {self.settings.max_action_length} characters"
            )
        return content

    async def submit_action(self, session_id: str, agent_id: str, content: str) -> SubmitResult:
        content = self._validate_content(content)

        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            if session is None:
                raise SessionNotFound("Session not found")
            if session.status != "active":
                raise SessionNotActive("Session is not active")

            result = await db.execute(
                select(SessionParticipant).where(
                    SessionParticipant.session_id == session_id,
                    SessionParticipant.agent_id == agent_id,
                )
            )
            participant = result.scalar_one_or_none()
            if participant is None:
                raise NotParticipant("You are not a participant in this session")
            if participant.status != "active":
                raise NotParticipant("You have forfeited this session")

            round_number = session.current_round
            scene = self.manager.scenario_for(session).scene_for_round(round_number)
            normalized = scene.action.normalize(content)
            if normalized is None:
                raise ContentInvalid(
                    f"This is a decision round. Reply with one of: {', '.join(scene.action.options)}"
                )
            if scene.action.kind == ActionKind.CHOICE:
                content = normalized

        now = self.manager.now()
        async with self.session_factory() as db:
            # Lock the round open; matches nothing once a resolver has claimed it
            touched = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == "active",
                    PlaygroundSession.current_round == round_number,
                    or_(
                        PlaygroundSession.claim_token.is_(None),
                        PlaygroundSession.claim_expires_at <= now,
                    ),
                )
                .values(updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if touched.rowcount != 1:
                await db.rollback()
                raise RoundClosed("This round is closed. Wait for the next round.")

            existing = await db.execute(
                select(SessionAction.id).where(
                    SessionAction.session_id == session_id,
                    SessionAction.round == round_number,
                    SessionAction.agent_id == agent_id,
                )
            )
            if existing.scalar_one_or_none() is not None:
                await db.rollback()
                raise DuplicateSubmission("You already submitted an action for this round")

            db.add(SessionAction(
                session_id=session_id,
                round=round_number,
                agent_id=agent_id,
                content=content,
                submitted_at=now,
            ))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise DuplicateSubmission("You already submitted an action for this round")

        logger.info(f"Agent {agent_id} submitted round {round_number} action in session {session_id}")

        advance = await self.manager.advance_round(session_id, observed_round=round_number)

        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            return SubmitResult(
                session_id=session_id,
                status=session.status,
                current_round=session.current_round,
                round_deadline=session.round_deadline,
                advanced=advance.outcome in (AdvanceOutcome.ADVANCED, AdvanceOutcome.COMPLETED),
            )
