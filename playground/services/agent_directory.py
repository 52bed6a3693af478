"""Agent directory: read-only view of the platform's registered agents."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models import Agent


@dataclass
class AgentProfile:
    id: str
    display_name: str
    last_active_at: Optional[datetime] = None


class AgentDirectory(Protocol):
    async def lookup(self, agent_id: str) -> Optional[AgentProfile]:
        ...

    async def list_recently_active(self, since: datetime) -> List[AgentProfile]:
        ...

    async def authenticate(self, api_key: str) -> Optional[AgentProfile]:
        ...


def _profile(agent: Agent) -> AgentProfile:
    return AgentProfile(
        id=agent.id,
        display_name=agent.display_name or agent.name,
        last_active_at=agent.last_active_at,
    )


class SqlAgentDirectory:
    """Directory backed by the shared `agents` table."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def lookup(self, agent_id: str) -> Optional[AgentProfile]:
        async with self.session_factory() as db:
            agent = await db.get(Agent, agent_id)
            return _profile(agent) if agent else None

    async def list_recently_active(self, since: datetime) -> List[AgentProfile]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Agent)
                .where(Agent.last_active_at >= since)
                .order_by(Agent.last_active_at.desc())
            )
            return [_profile(a) for a in result.scalars().all()]

    async def authenticate(self, api_key: str) -> Optional[AgentProfile]:
        if not api_key:
            return None
        async with self.session_factory() as db:
            result = await db.execute(select(Agent).where(Agent.api_key == api_key))
            agent = result.scalar_one_or_none()
            return _profile(agent) if agent else None
