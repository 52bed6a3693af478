"""Shared helpers for playground tests: a file-backed SQLite store, a
scripted narrator and a controllable clock."""

import asyncio
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional
import random

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from playground.config import Settings
from playground.database import init_db
from playground.models import Agent, PlaygroundSession, SessionAction, SessionParticipant, TranscriptRound
from playground.services.action_intake import ActionIntake
from playground.services.agent_directory import SqlAgentDirectory
from playground.services.errors import NarratorError
from playground.services.session_manager import SessionManager

START = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeNarrator:
    """Returns scripted text, or numbered filler once the script runs out."""

    def __init__(self, responses: Optional[List[str]] = None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.delay = delay
        self.calls = []
        self.fail_next = 0
        self.fail_always = False
        self.fail_calls = set()  # 1-based call numbers that raise

    async def generate(self, prompt: str, system: str = "") -> str:
        self.calls.append((prompt, system))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_always or len(self.calls) in self.fail_calls:
            raise NarratorError("narrator unavailable")
        if self.fail_next:
            self.fail_next -= 1
            raise NarratorError("narrator unavailable")
        if self.responses:
            return self.responses.pop(0)
        return f"The Game Master narrates #{len(self.calls)}."


class Clock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_settings(**overrides) -> Settings:
    values = dict(
        action_timeout_seconds=600,
        claim_lease_seconds=300,
        matchmaking_auto_form=False,
        llm_api_key="test",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class PlaygroundEnv:
    engine: object
    session_factory: async_sessionmaker
    narrator: FakeNarrator
    clock: Clock
    settings: Settings
    directory: SqlAgentDirectory
    manager: SessionManager
    intake: ActionIntake

    async def close(self):
        await self.engine.dispose()


async def build_env(tmp_path, narrator: Optional[FakeNarrator] = None, seed: int = 7, **overrides) -> PlaygroundEnv:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'playground.db'}", poolclass=NullPool)
    await init_db(engine)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    narrator = narrator or FakeNarrator()
    clock = Clock()
    settings = make_settings(**overrides)
    directory = SqlAgentDirectory(session_factory)
    manager = SessionManager(
        session_factory,
        narrator,
        directory,
        settings=settings,
        clock=clock,
        rng=random.Random(seed),
    )
    return PlaygroundEnv(
        engine=engine,
        session_factory=session_factory,
        narrator=narrator,
        clock=clock,
        settings=settings,
        directory=directory,
        manager=manager,
        intake=ActionIntake(manager),
    )


async def add_agents(env: PlaygroundEnv, *agent_ids: str, active_days_ago: float = 0.0):
    async with env.session_factory() as db:
        for agent_id in agent_ids:
            db.add(Agent(
                id=agent_id,
                name=agent_id,
                display_name=agent_id.capitalize(),
                api_key=f"key-{agent_id}",
                last_active_at=env.clock() - timedelta(days=active_days_ago),
            ))
        await db.commit()


async def start_session(env: PlaygroundEnv, scenario_id: str, *agent_ids: str) -> str:
    """Register the agents and start a session of `scenario_id` with all of them."""
    await add_agents(env, *agent_ids)
    return await env.manager.create_session(scenario_id=scenario_id)


async def load_session(env: PlaygroundEnv, session_id: str) -> PlaygroundSession:
    async with env.session_factory() as db:
        return await db.get(PlaygroundSession, session_id)


async def load_transcript(env: PlaygroundEnv, session_id: str) -> List[TranscriptRound]:
    async with env.session_factory() as db:
        result = await db.execute(
            select(TranscriptRound)
            .where(TranscriptRound.session_id == session_id)
            .order_by(TranscriptRound.round)
        )
        return list(result.scalars().all())


async def load_participants(env: PlaygroundEnv, session_id: str) -> List[SessionParticipant]:
    async with env.session_factory() as db:
        result = await db.execute(
            select(SessionParticipant)
            .where(SessionParticipant.session_id == session_id)
            .order_by(SessionParticipant.id)
        )
        return list(result.scalars().all())


async def load_actions(env: PlaygroundEnv, session_id: str, round_number: int) -> List[SessionAction]:
    async with env.session_factory() as db:
        result = await db.execute(
            select(SessionAction)
            .where(SessionAction.session_id == session_id, SessionAction.round == round_number)
        )
        return list(result.scalars().all())
