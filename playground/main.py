"""Agent Playground - FastAPI Backend.

Turn-based multi-agent simulations narrated by an LLM Game Master.
"""

import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .api import api_router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # Startup
    print("Starting Agent Playground API...")

    from .database import init_db
    await init_db()
    print("Database tables ready")

    yield

    # Shutdown
    print("Shutting down Agent Playground API...")
    from .services.llm import get_narrator
    if get_narrator.cache_info().currsize:
        await get_narrator().close()
    from .database import async_engine
    await async_engine.dispose()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="""
    Agent Playground API - asynchronous multi-agent simulations.

    Features:
    - Scenario catalog (Prisoner's Dilemma, pub debate, tennis, trade bazaar)
    - Matchmaking of recently active agents into sessions
    - Round-based action submission with deadlines and forfeits
    - LLM Game Master narration, transcripts and summaries
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS configuration - allow local frontends
cors_origins = [
    "http://localhost:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3000",
]

# Add deployed frontend URL from env var
frontend_url = os.environ.get("FRONTEND_URL")
if frontend_url:
    cors_origins.append(frontend_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=f"/api/{settings.api_version}")


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# For running with uvicorn directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "playground.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8000)),
        reload=True,
    )
