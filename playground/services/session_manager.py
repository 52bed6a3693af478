"""Session lifecycle manager: matchmaking, round advancement and the deadline sweep.

The manager keeps no state between calls. Every entry point re-reads what it
needs from the database, and the only synchronization primitive is a
conditional UPDATE on the session row (the "claim"). A claim records a token
and a lease expiry; the invocation holding it is the only one allowed to call
the narrator for that round and to write the round's outcome. The outcome
write re-checks the token, so a resolver whose lease lapsed can never
finalize over a newer claim, and a crashed resolver simply lets its lease
expire, after which the round is claimable again.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple
from uuid import uuid4
import logging
import random

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..config import Settings, get_settings
from ..database import utcnow
from ..models import PlaygroundSession, SessionAction, SessionParticipant, TranscriptRound
from .agent_directory import AgentDirectory, AgentProfile
from .errors import (
    AgentNotEligible,
    AgentNotFound,
    AlreadyJoined,
    NarratorError,
    NotEnoughAgents,
    ScenarioNotFound,
    SessionFull,
    SessionNotFound,
    SessionNotPending,
)
from .llm.narrator import Narrator
from .round_resolver import RoundResolver
from .round_state import ParticipantView, RoundAction, RoundContext, TranscriptEntry
from .scenarios import ActionKind, Scenario, ScenarioCatalog, get_catalog

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "active")


class AdvanceOutcome(Enum):
    STALE = "stale"  # round already moved on, or session not active
    NOT_READY = "not_ready"
    CLAIM_LOST = "claim_lost"  # another invocation owns the round
    FAILED = "failed"  # narrator failed; claim released for retry
    ADVANCED = "advanced"
    COMPLETED = "completed"


@dataclass
class AdvanceResult:
    session_id: str
    round_number: int
    outcome: AdvanceOutcome

    @property
    def changed_round(self) -> bool:
        return self.outcome in (AdvanceOutcome.ADVANCED, AdvanceOutcome.COMPLETED)


@dataclass
class SweepReport:
    checked: int = 0
    advanced: int = 0
    completed: int = 0
    failed: int = 0
    errors: int = 0

    def record(self, result: AdvanceResult):
        if result.outcome == AdvanceOutcome.ADVANCED:
            self.advanced += 1
        elif result.outcome == AdvanceOutcome.COMPLETED:
            self.completed += 1
        elif result.outcome == AdvanceOutcome.FAILED:
            self.failed += 1


@dataclass
class MatchmakingReport:
    created: List[str] = field(default_factory=list)
    started: List[str] = field(default_factory=list)
    cancelled: List[str] = field(default_factory=list)


@dataclass
class InFlightSubmission:
    agent_id: str
    agent_name: str
    submitted_at: datetime
    content: Optional[str] = None  # None while sealed


@dataclass
class InFlightRound:
    """Preview of the round currently collecting actions."""
    round: int
    prompt: Optional[str]
    deadline: Optional[datetime]
    scene: str
    action_type: str
    options: Optional[List[str]]
    sealed: bool
    submissions: List[InFlightSubmission]
    awaiting: List[str]
    resolving: bool


@dataclass
class SessionDetail:
    session: PlaygroundSession
    in_flight: Optional[InFlightRound] = None


@dataclass
class ActiveSessionInfo:
    session: PlaygroundSession
    needs_action: bool
    current_prompt: str
    is_pending: bool = False


def new_session_id() -> str:
    return f"pg_{uuid4().hex}"


class SessionManager:
    """Owns every session state transition."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        narrator: Narrator,
        directory: AgentDirectory,
        catalog: Optional[ScenarioCatalog] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.directory = directory
        self.catalog = catalog or get_catalog()
        self.settings = settings or get_settings()
        self.resolver = RoundResolver(narrator)
        self._clock = clock or utcnow
        self._rng = rng or random.Random()

    def now(self) -> datetime:
        return self._clock()

    @property
    def round_timeout(self) -> timedelta:
        return timedelta(seconds=self.settings.action_timeout_seconds)

    @property
    def claim_lease(self) -> timedelta:
        return timedelta(seconds=self.settings.claim_lease_seconds)

    def scenario_for(self, session: PlaygroundSession) -> Scenario:
        scenario = self.catalog.get(session.scenario_id)
        if scenario is None:
            raise ScenarioNotFound(f"Scenario '{session.scenario_id}' is not in the catalog")
        return scenario

    # ------------------------------------------------------------------
    # Store helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _participants(db: AsyncSession, session_id: str) -> List[SessionParticipant]:
        result = await db.execute(
            select(SessionParticipant)
            .where(SessionParticipant.session_id == session_id)
            .order_by(SessionParticipant.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _actions(db: AsyncSession, session_id: str, round_number: int) -> List[SessionAction]:
        result = await db.execute(
            select(SessionAction)
            .where(
                SessionAction.session_id == session_id,
                SessionAction.round == round_number,
            )
            .order_by(SessionAction.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _transcript(db: AsyncSession, session_id: str) -> List[TranscriptEntry]:
        result = await db.execute(
            select(TranscriptRound)
            .where(TranscriptRound.session_id == session_id)
            .order_by(TranscriptRound.round)
        )
        return [
            TranscriptEntry(
                round=row.round,
                prompt=row.prompt,
                actions=[RoundAction.from_dict(a) for a in row.actions or []],
                resolution=row.resolution,
                resolved_at=row.resolved_at,
            )
            for row in result.scalars().all()
        ]

    async def _claim(self, session_id: str, status: str, round_number: int) -> Optional[str]:
        """Conditionally take ownership of a session's current round.

        Succeeds only if the session is still in `status` at `round_number`
        and no unexpired claim exists. Returns the claim token on success.
        """
        token = uuid4().hex
        now = self.now()
        async with self.session_factory() as db:
            result = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == status,
                    PlaygroundSession.current_round == round_number,
                    or_(
                        PlaygroundSession.claim_token.is_(None),
                        PlaygroundSession.claim_expires_at <= now,
                    ),
                )
                .values(claim_token=token, claim_expires_at=now + self.claim_lease)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        return token if result.rowcount == 1 else None

    async def _release(self, session_id: str, token: str):
        async with self.session_factory() as db:
            await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.claim_token == token,
                )
                .values(claim_token=None, claim_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()

    async def _clear_lapsed_claim(self, session_id: str, token: str, now: datetime):
        """Drop a crashed resolver's expired claim so the sweep stops selecting it."""
        async with self.session_factory() as db:
            result = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.claim_token == token,
                    PlaygroundSession.claim_expires_at <= now,
                )
                .values(claim_token=None, claim_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        if result.rowcount == 1:
            logger.info(f"Cleared lapsed claim on session {session_id}")

    # ------------------------------------------------------------------
    # Advancement primitive
    # ------------------------------------------------------------------

    @staticmethod
    def _is_ready(
        participants: List[SessionParticipant],
        actions: List[SessionAction],
        deadline: Optional[datetime],
        now: datetime,
    ) -> bool:
        submitted = {a.agent_id for a in actions}
        active = [p for p in participants if p.status == "active"]
        if active and all(p.agent_id in submitted for p in active):
            return True
        return deadline is not None and deadline <= now

    async def advance_round(
        self,
        session_id: str,
        observed_round: Optional[int] = None,
    ) -> AdvanceResult:
        """Resolve the session's current round if it is ready.

        Safe to call any number of times from any number of concurrent
        invocations: at most one of them resolves a given round, the rest
        return without side effects.
        """
        now = self.now()
        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            if session is None or session.status != "active":
                return AdvanceResult(session_id, observed_round or 0, AdvanceOutcome.STALE)
            round_number = session.current_round
            if observed_round is not None and observed_round != round_number:
                return AdvanceResult(session_id, round_number, AdvanceOutcome.STALE)
            if session.claim_token and session.claim_expires_at and session.claim_expires_at > now:
                return AdvanceResult(session_id, round_number, AdvanceOutcome.CLAIM_LOST)

            participants = await self._participants(db, session_id)
            actions = await self._actions(db, session_id, round_number)
            deadline = session.round_deadline
            stale_token = session.claim_token

        if not self._is_ready(participants, actions, deadline, now):
            if stale_token:
                await self._clear_lapsed_claim(session_id, stale_token, now)
            return AdvanceResult(session_id, round_number, AdvanceOutcome.NOT_READY)

        token = await self._claim(session_id, "active", round_number)
        if token is None:
            logger.debug(f"Session {session_id} round {round_number} already claimed")
            return AdvanceResult(session_id, round_number, AdvanceOutcome.CLAIM_LOST)

        try:
            outcome = await self._resolve_claimed(session_id, round_number, token)
        except NarratorError as e:
            logger.warning(
                f"Narrator failed resolving session {session_id} round {round_number}, "
                f"releasing claim for retry: {e}"
            )
            await self._release(session_id, token)
            return AdvanceResult(session_id, round_number, AdvanceOutcome.FAILED)
        except Exception:
            await self._release(session_id, token)
            raise

        return AdvanceResult(session_id, round_number, outcome)

    async def _resolve_claimed(self, session_id: str, round_number: int, token: str) -> AdvanceOutcome:
        # Intake is locked out of this round from here on, so this read is final
        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            participants = await self._participants(db, session_id)
            actions = await self._actions(db, session_id, round_number)
            transcript = await self._transcript(db, session_id)

        scenario = self.scenario_for(session)
        now = self.now()
        by_agent = {a.agent_id: a for a in actions}
        forfeiting = [
            p.agent_id for p in participants
            if p.status == "active" and p.agent_id not in by_agent
        ]
        deadline_passed = session.round_deadline is not None and session.round_deadline <= now
        if forfeiting and not deadline_passed:
            await self._release(session_id, token)
            return AdvanceOutcome.NOT_READY

        views: List[ParticipantView] = []
        round_actions: List[RoundAction] = []
        for p in participants:
            action = by_agent.get(p.agent_id) if p.status == "active" else None
            if action is not None:
                views.append(ParticipantView(p.agent_id, p.agent_name, "active"))
                round_actions.append(RoundAction(p.agent_id, p.agent_name, action.content))
                continue
            forfeited_at = p.forfeited_at_round if p.status == "forfeited" else round_number
            views.append(ParticipantView(p.agent_id, p.agent_name, "forfeited", forfeited_at))
            round_actions.append(RoundAction(p.agent_id, p.agent_name, "", forfeited=True))

        ctx = RoundContext(
            session_id=session_id,
            scenario=scenario,
            round_number=round_number,
            max_rounds=session.max_rounds,
            prompt=session.current_round_prompt or "",
            participants=views,
            transcript=transcript,
            actions=round_actions,
        )
        resolution = await self.resolver.resolve(ctx)

        now = self.now()
        values = {
            "current_round": round_number + 1,
            "claim_token": None,
            "claim_expires_at": None,
        }
        if resolution.completed:
            values.update(
                status="completed",
                summary=resolution.summary,
                completed_at=now,
                current_round_prompt=None,
                round_deadline=None,
            )
        else:
            values.update(
                current_round_prompt=resolution.next_prompt,
                round_deadline=now + self.round_timeout,
            )

        # Round advance, transcript entry and forfeits commit together or not at all
        async with self.session_factory() as db:
            result = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == "active",
                    PlaygroundSession.current_round == round_number,
                    PlaygroundSession.claim_token == token,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await db.rollback()
                logger.warning(
                    f"Claim on session {session_id} round {round_number} lapsed before finalize"
                )
                return AdvanceOutcome.CLAIM_LOST

            db.add(TranscriptRound(
                session_id=session_id,
                round=round_number,
                prompt=ctx.prompt,
                actions=[a.to_dict() for a in round_actions],
                resolution=resolution.narrative,
                resolved_at=now,
            ))
            if forfeiting:
                await db.execute(
                    update(SessionParticipant)
                    .where(
                        SessionParticipant.session_id == session_id,
                        SessionParticipant.agent_id.in_(forfeiting),
                        SessionParticipant.status == "active",
                    )
                    .values(status="forfeited", forfeited_at_round=round_number)
                    .execution_options(synchronize_session=False)
                )
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.warning(f"Transcript for session {session_id} round {round_number} already written")
                return AdvanceOutcome.CLAIM_LOST

        if forfeiting:
            logger.info(f"Session {session_id} round {round_number}: forfeited {', '.join(forfeiting)}")
        if resolution.completed:
            logger.info(f"Session {session_id} completed after round {round_number}")
            return AdvanceOutcome.COMPLETED
        logger.info(f"Session {session_id} advanced to round {round_number + 1}")
        return AdvanceOutcome.ADVANCED

    # ------------------------------------------------------------------
    # Deadline sweep
    # ------------------------------------------------------------------

    async def sweep_deadlines(self) -> SweepReport:
        """Advance every active session whose deadline (or claim lease) has lapsed."""
        now = self.now()
        async with self.session_factory() as db:
            result = await db.execute(
                select(PlaygroundSession.id, PlaygroundSession.current_round)
                .where(
                    PlaygroundSession.status == "active",
                    or_(
                        PlaygroundSession.round_deadline <= now,
                        PlaygroundSession.claim_expires_at <= now,
                    ),
                )
                .order_by(PlaygroundSession.round_deadline)
                .limit(self.settings.sweep_batch_limit)
            )
            due = result.all()

        report = SweepReport(checked=len(due))
        for session_id, round_number in due:
            try:
                outcome = await self.advance_round(session_id, observed_round=round_number)
            except Exception:
                logger.exception(f"Error advancing session {session_id}")
                report.errors += 1
                continue
            report.record(outcome)
        return report

    # ------------------------------------------------------------------
    # Matchmaking
    # ------------------------------------------------------------------

    async def _busy_agent_ids(self, db: AsyncSession) -> Set[str]:
        result = await db.execute(
            select(SessionParticipant.agent_id)
            .join(PlaygroundSession, PlaygroundSession.id == SessionParticipant.session_id)
            .where(
                PlaygroundSession.status.in_(OPEN_STATUSES),
                SessionParticipant.status == "active",
            )
        )
        return set(result.scalars().all())

    def _activity_cutoff(self) -> datetime:
        return self.now() - timedelta(days=self.settings.activity_window_days)

    async def idle_agents(self) -> List[AgentProfile]:
        """Recently active agents not already playing in an open session."""
        recent = await self.directory.list_recently_active(self._activity_cutoff())
        async with self.session_factory() as db:
            busy = await self._busy_agent_ids(db)
        return [a for a in recent if a.id not in busy]

    def _pick_scenario(self, available: int) -> Tuple[Optional[Scenario], int]:
        """Largest group size some scenario admits, and a random scenario for it."""
        largest = max((s.max_players for s in self.catalog.list()), default=0)
        for size in range(min(available, largest), 0, -1):
            scenario = self.catalog.pick_random(size)
            if scenario is not None:
                return scenario, size
        return None, 0

    async def create_session(self, scenario_id: Optional[str] = None, start: bool = True) -> str:
        """Form a pending session from idle agents and try to start it."""
        idle = await self.idle_agents()

        if scenario_id:
            scenario = self.catalog.get(scenario_id)
            if scenario is None:
                raise ScenarioNotFound(
                    f"Scenario '{scenario_id}' not found. Available: {', '.join(self.catalog.ids())}"
                )
            if len(idle) < scenario.min_players:
                raise NotEnoughAgents(
                    f"Not enough idle agents for {scenario.name}. Need {scenario.min_players}, "
                    f"found {len(idle)} active in the last {self.settings.activity_window_days} days."
                )
            size = min(scenario.max_players, len(idle))
        else:
            scenario, size = self._pick_scenario(len(idle))
            if scenario is None:
                raise NotEnoughAgents(f"No suitable scenario for {len(idle)} idle agent(s)")

        group = self._rng.sample(idle, size)
        now = self.now()
        session = PlaygroundSession(
            id=new_session_id(),
            scenario_id=scenario.id,
            status="pending",
            current_round=0,
            max_rounds=scenario.round_budget,
            created_at=now,
        )
        session.participants = [
            SessionParticipant(agent_id=a.id, agent_name=a.display_name, status="active", joined_at=now)
            for a in group
        ]
        async with self.session_factory() as db:
            db.add(session)
            await db.commit()
        logger.info(f"Created pending session {session.id} ({scenario.id}) with {size} agents")

        if start:
            await self.start_session(session.id)
        return session.id

    async def join_session(self, session_id: str, agent_id: str) -> PlaygroundSession:
        """Add an eligible idle agent to a pending session."""
        profile = await self.directory.lookup(agent_id)
        if profile is None:
            raise AgentNotFound(f"Agent {agent_id} not found")
        if profile.last_active_at is None or profile.last_active_at < self._activity_cutoff():
            raise AgentNotEligible(
                f"Agent must have been active in the last {self.settings.activity_window_days} days"
            )

        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            if session is None:
                raise SessionNotFound("Session not found")
            if session.status != "pending":
                raise SessionNotPending("Session is not accepting participants")
            scenario = self.scenario_for(session)

        now = self.now()
        async with self.session_factory() as db:
            # Serializes joins on the session row; seats are counted after this
            touched = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == "pending",
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
                raise SessionNotPending("Session is not accepting participants")

            participants = await self._participants(db, session_id)
            if any(p.agent_id == agent_id for p in participants):
                raise AlreadyJoined("Agent already joined this session")
            if len(participants) >= scenario.max_players:
                raise SessionFull("Session is full")
            if agent_id in await self._busy_agent_ids(db):
                raise AgentNotEligible("Agent is already playing in another session")

            db.add(SessionParticipant(
                session_id=session_id,
                agent_id=agent_id,
                agent_name=profile.display_name,
                status="active",
                joined_at=now,
            ))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise AlreadyJoined("Agent already joined this session")
            filled = len(participants) + 1 >= scenario.max_players

        if filled:
            await self.start_session(session_id)
        return await self.get_session(session_id)

    async def start_session(self, session_id: str) -> bool:
        """Open round 0 of a pending session. Returns False if another
        invocation started it or is starting it, or the narrator failed
        (retried on a later tick)."""
        async with self.session_factory() as db:
            session = await db.get(PlaygroundSession, session_id)
            if session is None:
                raise SessionNotFound("Session not found")
            if session.status != "pending":
                logger.debug(f"Session {session_id} already left pending ({session.status})")
                return False
            participants = await self._participants(db, session_id)

        scenario = self.scenario_for(session)
        active = [p for p in participants if p.status == "active"]
        if len(active) < scenario.min_players:
            raise NotEnoughAgents(
                f"{scenario.name} needs {scenario.min_players} players, {len(active)} joined"
            )

        token = await self._claim(session_id, "pending", 0)
        if token is None:
            return False

        # Joins are shut out while the claim is held, so this roster is final
        async with self.session_factory() as db:
            participants = await self._participants(db, session_id)
        active = [p for p in participants if p.status == "active"]

        views = [ParticipantView(p.agent_id, p.agent_name, "active") for p in active]
        try:
            prompt = await self.resolver.open_round(scenario, 0, session.max_rounds, views, [])
        except NarratorError as e:
            logger.warning(f"Narrator failed opening session {session_id}, will retry: {e}")
            await self._release(session_id, token)
            return False
        except Exception:
            await self._release(session_id, token)
            raise

        now = self.now()
        async with self.session_factory() as db:
            result = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == "pending",
                    PlaygroundSession.claim_token == token,
                )
                .values(
                    status="active",
                    current_round=0,
                    current_round_prompt=prompt,
                    round_deadline=now + self.round_timeout,
                    started_at=now,
                    claim_token=None,
                    claim_expires_at=None,
                )
                .execution_options(synchronize_session=False)
            )
            await db.commit()

        if result.rowcount != 1:
            return False
        logger.info(f"Started session {session_id} ({scenario.id}) with {len(active)} agents")
        return True

    async def cancel_session(self, session_id: str) -> bool:
        """Cancel a pending session unless someone is starting it right now."""
        now = self.now()
        async with self.session_factory() as db:
            result = await db.execute(
                update(PlaygroundSession)
                .where(
                    PlaygroundSession.id == session_id,
                    PlaygroundSession.status == "pending",
                    or_(
                        PlaygroundSession.claim_token.is_(None),
                        PlaygroundSession.claim_expires_at <= now,
                    ),
                )
                .values(status="cancelled", completed_at=now, claim_token=None, claim_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        cancelled = result.rowcount == 1
        if cancelled:
            logger.info(f"Cancelled pending session {session_id}")
        return cancelled

    async def run_matchmaking(self) -> MatchmakingReport:
        """Start or time out pending sessions, then form new ones from idle agents."""
        report = MatchmakingReport()
        now = self.now()
        timeout = timedelta(seconds=self.settings.matchmaking_timeout_seconds)

        async with self.session_factory() as db:
            result = await db.execute(
                select(PlaygroundSession)
                .where(PlaygroundSession.status == "pending")
                .order_by(PlaygroundSession.created_at)
            )
            pending = list(result.scalars().all())
            counts_result = await db.execute(
                select(SessionParticipant.session_id, func.count(SessionParticipant.id))
                .where(
                    SessionParticipant.session_id.in_([s.id for s in pending]),
                    SessionParticipant.status == "active",
                )
                .group_by(SessionParticipant.session_id)
            )
            counts: Dict[str, int] = dict(counts_result.all())

        for session in pending:
            scenario = self.catalog.get(session.scenario_id)
            if scenario is not None and counts.get(session.id, 0) >= scenario.min_players:
                if await self.start_session(session.id):
                    report.started.append(session.id)
                    continue
            if session.created_at <= now - timeout and await self.cancel_session(session.id):
                report.cancelled.append(session.id)

        if self.settings.matchmaking_auto_form:
            while True:
                try:
                    session_id = await self.create_session()
                except NotEnoughAgents:
                    break
                report.created.append(session_id)

        return report

    async def tick(self) -> Tuple[SweepReport, MatchmakingReport]:
        """One periodic pass: deadline sweep followed by matchmaking."""
        sweep = await self.sweep_deadlines()
        matchmaking = await self.run_matchmaking()
        return sweep, matchmaking

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def get_session(self, session_id: str) -> PlaygroundSession:
        async with self.session_factory() as db:
            result = await db.execute(
                select(PlaygroundSession)
                .options(
                    selectinload(PlaygroundSession.participants),
                    selectinload(PlaygroundSession.transcript),
                )
                .where(PlaygroundSession.id == session_id)
            )
            session = result.scalar_one_or_none()
        if session is None:
            raise SessionNotFound("Session not found")
        return session

    async def list_sessions(
        self,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[PlaygroundSession]:
        query = select(PlaygroundSession).options(selectinload(PlaygroundSession.participants))
        if status:
            query = query.where(PlaygroundSession.status == status)
        query = query.order_by(PlaygroundSession.created_at.desc()).limit(limit).offset(offset)

        async with self.session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def get_session_detail(self, session_id: str) -> SessionDetail:
        """Full transcript plus, while active, the unresolved round so far."""
        session = await self.get_session(session_id)
        if session.status != "active":
            return SessionDetail(session=session)

        async with self.session_factory() as db:
            actions = await self._actions(db, session_id, session.current_round)

        scene = self.scenario_for(session).scene_for_round(session.current_round)
        sealed = scene.action.kind == ActionKind.CHOICE
        names = {p.agent_id: p.agent_name for p in session.participants}
        submitted = {a.agent_id for a in actions}
        now = self.now()

        in_flight = InFlightRound(
            round=session.current_round,
            prompt=session.current_round_prompt,
            deadline=session.round_deadline,
            scene=scene.name,
            action_type=scene.action.kind.value,
            options=list(scene.action.options) if sealed else None,
            sealed=sealed,
            submissions=[
                InFlightSubmission(
                    agent_id=a.agent_id,
                    agent_name=names.get(a.agent_id, a.agent_id),
                    submitted_at=a.submitted_at,
                    content=None if sealed else a.content,
                )
                for a in actions
            ],
            awaiting=[
                p.agent_name for p in session.participants
                if p.status == "active" and p.agent_id not in submitted
            ],
            resolving=bool(
                session.claim_token and session.claim_expires_at and session.claim_expires_at > now
            ),
        )
        return SessionDetail(session=session, in_flight=in_flight)

    async def get_active_session(self, agent_id: str) -> Optional[ActiveSessionInfo]:
        """The open session an agent is playing in, and whether it owes an action."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(PlaygroundSession)
                .join(SessionParticipant, SessionParticipant.session_id == PlaygroundSession.id)
                .options(
                    selectinload(PlaygroundSession.participants),
                    selectinload(PlaygroundSession.transcript),
                )
                .where(
                    SessionParticipant.agent_id == agent_id,
                    SessionParticipant.status == "active",
                    PlaygroundSession.status.in_(OPEN_STATUSES),
                )
                .order_by(PlaygroundSession.status, PlaygroundSession.created_at.desc())
            )
            sessions = list(result.scalars().unique().all())
            if not sessions:
                return None

            # 'active' sorts before 'pending'
            session = sessions[0]
            if session.status == "pending":
                return ActiveSessionInfo(session=session, needs_action=False, current_prompt="", is_pending=True)

            actions = await self._actions(db, session.id, session.current_round)

        already_submitted = any(a.agent_id == agent_id for a in actions)
        return ActiveSessionInfo(
            session=session,
            needs_action=not already_submitted,
            current_prompt=session.current_round_prompt or "",
        )
