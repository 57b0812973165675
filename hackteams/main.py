"""
HackTeams — FastAPI application entry-point.

Run with:
    uvicorn hackteams.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

import hackteams.models  # noqa: F401
from hackteams.config import settings
from hackteams.database import Base, engine

# ── Import routers ──
from hackteams.routers import hackathons, teams
from hackteams.routers.responses import request_validation_handler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s started", settings.APP_NAME)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Hackathon team membership — create, join, invite and manage teams.",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Register API routers ──
app.include_router(hackathons.router)
app.include_router(teams.router)

# ── Validation errors share the action result shape ──
app.add_exception_handler(RequestValidationError, request_validation_handler)


@app.get("/health")
async def health():
    return {"status": "ok"}
