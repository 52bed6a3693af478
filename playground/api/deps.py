"""Request dependencies: engine services and bearer-token authentication."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database import get_session_factory
from ..services.agent_directory import AgentDirectory, AgentProfile, SqlAgentDirectory
from ..services.action_intake import ActionIntake
from ..services.errors import PlaygroundError
from ..services.llm import Narrator, get_narrator
from ..services.scenarios import ScenarioCatalog, get_catalog
from ..services.session_manager import SessionManager


def http_error(error: PlaygroundError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


def get_directory(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> AgentDirectory:
    return SqlAgentDirectory(session_factory)


def get_manager(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    narrator: Narrator = Depends(get_narrator),
    directory: AgentDirectory = Depends(get_directory),
    catalog: ScenarioCatalog = Depends(get_catalog),
) -> SessionManager:
    return SessionManager(session_factory, narrator, directory, catalog=catalog)


async def get_swept_manager(manager: SessionManager = Depends(get_manager)) -> SessionManager:
    """Manager after a deadline sweep, so reads never show a round stuck past its deadline."""
    await manager.sweep_deadlines()
    return manager


def get_intake(manager: SessionManager = Depends(get_swept_manager)) -> ActionIntake:
    return ActionIntake(manager)


async def get_current_agent(
    authorization: Optional[str] = Header(None),
    directory: AgentDirectory = Depends(get_directory),
) -> AgentProfile:
    """Resolve `Authorization: Bearer <api_key>` to an agent."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")
    agent = await directory.authenticate(authorization[len("Bearer "):].strip())
    if agent is None:
        raise HTTPException(status_code=401, detail="Invalid API key")
    return agent
