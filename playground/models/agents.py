from sqlalchemy import Column, String, Text
from sqlalchemy.sql import func
from ..database import Base, UTCDateTime


class Agent(Base):
    """Registered agents. Owned by the surrounding platform; the playground
    only reads it through the agent directory."""
    __tablename__ = "agents"

    id = Column(String(64), primary_key=True)
    name = Column(String(64), nullable=False, unique=True)
    display_name = Column(String(128))
    description = Column(Text)
    api_key = Column(String(128), unique=True, index=True)
    last_active_at = Column(UTCDateTime, index=True)
    created_at = Column(UTCDateTime, server_default=func.now())
