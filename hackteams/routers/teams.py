"""Teams router – membership, requests, invitations and invite links."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.database import get_db
from hackteams.identity import get_caller_context
from hackteams.routers.responses import to_response
from hackteams.services import invitations as invitation_service
from hackteams.services import join_requests as request_service
from hackteams.services import teams as team_service
from hackteams.services.actions import ActionContext

router = APIRouter(prefix="/api/teams", tags=["teams"])


class TeamUpdateBody(BaseModel):
    name: str = ""
    description: Optional[str] = None
    project_name: Optional[str] = None
    looking_for_members: bool = True


class JoinRequestBody(BaseModel):
    message: Optional[str] = None


class JoinRequestDecision(BaseModel):
    action: Literal["accept", "reject"]


class InvitationBody(BaseModel):
    hackathon_id: int
    email: str


class InvitationDecision(BaseModel):
    action: Literal["accept", "decline"]


class ExternalMemberBody(BaseModel):
    hackathon_id: int
    name: str = ""


class HackathonRef(BaseModel):
    hackathon_id: int


# ═══════════════════════════════════════════════════════════════
#  Team detail / settings
# ═══════════════════════════════════════════════════════════════

@router.get("/{team_id}")
async def team_detail(team_id: int, db: AsyncSession = Depends(get_db)):
    """Show team detail with members."""
    team = await team_service.get_team(db, team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team.model_dump(mode="json")


@router.patch("/{team_id}")
async def update_team(
    team_id: int,
    body: TeamUpdateBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await team_service.update_team(db, ctx, team_id, **body.model_dump())
    return to_response(result)


@router.delete("/{team_id}")
async def delete_team(
    team_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    """Organizer dissolves the team."""
    result = await team_service.remove_team(db, ctx, team_id)
    return to_response(result)


# ═══════════════════════════════════════════════════════════════
#  Joining
# ═══════════════════════════════════════════════════════════════

@router.post("/{team_id}/join")
async def join_team(
    team_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await team_service.join_team(db, ctx, team_id)
    return to_response(result)


@router.post("/{team_id}/leave")
async def leave_team(
    team_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    """Member leaves the team."""
    result = await team_service.leave_team(db, ctx, team_id)
    return to_response(result)


@router.delete("/{team_id}/members/{user_id}")
async def remove_member(
    team_id: int,
    user_id: str,
    hackathon_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await team_service.remove_team_member(db, ctx, team_id, user_id, hackathon_id)
    return to_response(result)


# ═══════════════════════════════════════════════════════════════
#  Join requests
# ═══════════════════════════════════════════════════════════════

@router.post("/{team_id}/requests")
async def request_to_join(
    team_id: int,
    body: JoinRequestBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    """Member requests to join a team."""
    result = await request_service.request_to_join_team(db, ctx, team_id, body.message)
    return to_response(result, success_status=201)


@router.get("/{team_id}/requests")
async def list_join_requests(
    team_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await request_service.get_team_join_requests(db, ctx, team_id)
    return to_response(result)


@router.post("/requests/{request_id}")
async def handle_join_request(
    request_id: int,
    body: JoinRequestDecision,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await request_service.handle_join_request(db, ctx, request_id, body.action)
    return to_response(result)


# ═══════════════════════════════════════════════════════════════
#  Invitations and external members
# ═══════════════════════════════════════════════════════════════

@router.post("/{team_id}/invitations")
async def invite_member(
    team_id: int,
    body: InvitationBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    """Owner or organizer invites a user by email."""
    result = await invitation_service.invite_team_member(
        db, ctx, team_id, body.hackathon_id, body.email
    )
    return to_response(result, success_status=201)


@router.post("/invitations/{invitation_id}/respond")
async def respond_invitation(
    invitation_id: int,
    body: InvitationDecision,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    """Respond to an invite."""
    result = await invitation_service.respond_to_invitation(db, ctx, invitation_id, body.action)
    return to_response(result)


@router.post("/{team_id}/external-members")
async def add_external_member(
    team_id: int,
    body: ExternalMemberBody,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await invitation_service.add_team_member_by_name(
        db, ctx, team_id, body.hackathon_id, body.name
    )
    return to_response(result, success_status=201)


@router.delete("/{team_id}/external-members/{external_member_id}")
async def remove_external_member(
    team_id: int,
    external_member_id: int,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await invitation_service.remove_external_team_member(
        db, ctx, team_id, external_member_id
    )
    return to_response(result)


# ═══════════════════════════════════════════════════════════════
#  Invite links
# ═══════════════════════════════════════════════════════════════

@router.post("/{team_id}/invite-link")
async def generate_invite_link(
    team_id: int,
    body: HackathonRef,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await invitation_service.generate_team_invite_link(
        db, ctx, team_id, body.hackathon_id
    )
    return to_response(result)


@router.post("/{team_id}/invite-link/redeem")
async def redeem_invite_link(
    team_id: int,
    body: HackathonRef,
    ctx: ActionContext = Depends(get_caller_context),
    db: AsyncSession = Depends(get_db),
):
    result = await invitation_service.join_team_via_invite_link(
        db, ctx, team_id, body.hackathon_id
    )
    return to_response(result)
