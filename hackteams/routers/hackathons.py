"""
Hackathons router — registry endpoints and team creation.

Endpoints:
    POST  /api/hackathons                        → create hackathon (caller organizes)
    GET   /api/hackathons/{id}                   → hackathon configuration
    PATCH /api/hackathons/{id}                   → organizer settings
    GET   /api/hackathons/{id}/teams             → teams with seat counts
    GET   /api/hackathons/{id}/my-team           → caller's team, if any
    POST  /api/hackathons/{id}/teams             → create team (caller owns)
    POST  /api/hackathons/{id}/teams/for-user    → organizer creates team for a user
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.database import get_db
from hackteams.identity import get_caller_context
from hackteams.models.hackathon import RegistrationStatus
from hackteams.routers.responses import to_response
from hackteams.schemas.hackathon import HackathonOut
from hackteams.services import hackathons as hackathon_service
from hackteams.services import teams as team_service
from hackteams.services.actions import ActionContext

router = APIRouter(prefix="/api/hackathons", tags=["hackathons"])


class HackathonBody(BaseModel):
    name: str
    description: Optional[str] = None
    registration_status: RegistrationStatus = RegistrationStatus.OPEN
    max_team_size: int = 5
    min_team_size: int = 1
    max_teams: Optional[int] = None


class HackathonSettingsBody(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    registration_status: Optional[RegistrationStatus] = None
    max_team_size: Optional[int] = None
    min_team_size: Optional[int] = None
    max_teams: Optional[int] = None


class TeamBody(BaseModel):
    name: str = ""
    description: Optional[str] = None
    looking_for_members: bool = True


class TeamForUserBody(TeamBody):
    target_user_id: str


@router.post("")
async def create_hackathon(
    body: HackathonBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await hackathon_service.create_hackathon(db, ctx, **body.model_dump())
    return to_response(result, success_status=201)


@router.get("/{hackathon_id}", response_model=HackathonOut)
async def hackathon_detail(hackathon_id: int, db: AsyncSession = Depends(get_db)):
    hackathon = await hackathon_service.get_hackathon(db, hackathon_id)
    if not hackathon:
        raise HTTPException(status_code=404, detail="Hackathon not found")
    return hackathon


@router.patch("/{hackathon_id}")
async def update_hackathon(
    hackathon_id: int,
    body: HackathonSettingsBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await hackathon_service.update_hackathon_settings(
        db, ctx, hackathon_id, **body.model_dump(exclude_unset=True)
    )
    return to_response(result)


@router.get("/{hackathon_id}/teams")
async def list_teams(hackathon_id: int, db: AsyncSession = Depends(get_db)):
    """List the hackathon's teams."""
    teams = await team_service.get_teams_by_hackathon(db, hackathon_id)
    return [t.model_dump(mode="json") for t in teams]


@router.get("/{hackathon_id}/my-team")
async def my_team(
    hackathon_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    if not ctx.is_authenticated:
        raise HTTPException(status_code=401, detail="You must be signed in")
    team = await team_service.get_user_team_for_hackathon(db, ctx.caller_id, hackathon_id)
    return {"team": team.model_dump(mode="json") if team else None}


@router.post("/{hackathon_id}/teams")
async def create_team(
    hackathon_id: int,
    body: TeamBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await team_service.create_team(
        db,
        ctx,
        hackathon_id,
        name=body.name,
        description=body.description,
        looking_for_members=body.looking_for_members,
    )
    return to_response(result, success_status=201)


@router.post("/{hackathon_id}/teams/for-user")
async def create_team_for_user(
    hackathon_id: int,
    body: TeamForUserBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await team_service.create_team_for_user(
        db,
        ctx,
        hackathon_id,
        body.target_user_id,
        name=body.name,
        description=body.description,
        looking_for_members=body.looking_for_members,
    )
    return to_response(result, success_status=201)
