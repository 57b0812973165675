"""
Team membership core — creation, joining, settings and removal.

Each action loads the hackathon and team once, validates against those
values, then writes through the counters in ``membership`` so capacity and
team caps hold under concurrent callers.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hackteams.models.external_member import ExternalTeamMember
from hackteams.models.request import TeamJoinRequest
from hackteams.models.team import Team
from hackteams.models.team_invitation import TeamInvitation
from hackteams.models.team_membership import Role, TeamMember
from hackteams.schemas.results import ActionResult, Change
from hackteams.schemas.team import TeamCreate, TeamDetailOut, TeamOut, TeamUpdate
from hackteams.services.actions import ActionContext, ActionError, FailureCode, team_action
from hackteams.services.hackathons import check_and_update_registration_status
from hackteams.services.membership import (
    admit_member,
    claim_team_slot,
    ensure_no_team,
    ensure_organizer,
    ensure_registration_open,
    ensure_seat_free,
    ensure_team_admin,
    find_team_member,
    fresh,
    insert_member,
    load_hackathon,
    load_team,
    load_team_in_hackathon,
    release_seat,
    release_team_slot,
)
from hackteams.services.users import get_user

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
#  Reads
# ═══════════════════════════════════════════════════════════════

async def get_team(db: AsyncSession, team_id: int) -> Optional[TeamDetailOut]:
    """A team with its members and external members."""
    result = await db.execute(
        fresh(select(Team)
        .where(Team.id == team_id)
        .options(selectinload(Team.members), selectinload(Team.external_members)))
    )
    team = result.scalar_one_or_none()
    if not team:
        return None
    return TeamDetailOut.model_validate(team)


async def get_teams_by_hackathon(db: AsyncSession, hackathon_id: int) -> List[TeamOut]:
    result = await db.execute(
        fresh(select(Team).where(Team.hackathon_id == hackathon_id).order_by(Team.created_at, Team.id))
    )
    return [TeamOut.model_validate(t) for t in result.scalars().all()]


async def get_user_team_for_hackathon(
    db: AsyncSession, user_id: str, hackathon_id: int
) -> Optional[TeamOut]:
    """The team ``user_id`` belongs to in this hackathon, if any."""
    result = await db.execute(
        fresh(select(Team)
        .join(TeamMember, Team.id == TeamMember.team_id)
        .where(TeamMember.hackathon_id == hackathon_id, TeamMember.user_id == user_id))
    )
    team = result.scalar_one_or_none()
    return TeamOut.model_validate(team) if team else None


# ═══════════════════════════════════════════════════════════════
#  Create
# ═══════════════════════════════════════════════════════════════

async def _create_team_with_owner(
    db: AsyncSession,
    hackathon,
    owner_id: str,
    data: TeamCreate,
    require_open: bool,
    already_on_team_message: Optional[str] = None,
) -> ActionResult:
    await claim_team_slot(db, hackathon, require_open=require_open)

    team = Team(
        hackathon_id=hackathon.id,
        name=data.name,
        description=data.description or None,
        looking_for_members=data.looking_for_members,
        member_count=1,
    )
    db.add(team)
    await db.flush()
    await insert_member(db, team, owner_id, Role.Owner, already_on_team_message)

    # The owner may already fill the team when max_team_size is 1.
    if team.member_count >= hackathon.max_team_size and team.looking_for_members:
        team.looking_for_members = False
        await db.flush()

    closed = await check_and_update_registration_status(db, hackathon.id)
    await db.refresh(team)

    changes = [
        Change(kind="team", id=team.id, action="created"),
        Change(kind="team_member", id=owner_id, action="created"),
    ]
    if closed:
        changes.append(Change(kind="hackathon", id=hackathon.id, action="registration_closed"))

    logger.info("Team %s created in hackathon %s with owner %s", team.id, hackathon.id, owner_id)
    return ActionResult.ok(
        team=TeamOut.model_validate(team),
        hackathon_id=hackathon.id,
        registration_closed=closed,
        changes=changes,
    )


@team_action("Failed to create team")
async def create_team(
    db: AsyncSession,
    ctx: ActionContext,
    hackathon_id: int,
    name: str,
    description: Optional[str] = None,
    looking_for_members: bool = True,
) -> ActionResult:
    """Create a team in an open hackathon with the caller as owner."""
    data = TeamCreate(name=name, description=description, looking_for_members=looking_for_members)

    hackathon = await load_hackathon(db, hackathon_id)
    ensure_registration_open(hackathon)
    if hackathon.team_cap_reached:
        raise ActionError(FailureCode.TEAM_CAP_REACHED)
    await ensure_no_team(db, hackathon.id, ctx.caller_id)

    return await _create_team_with_owner(db, hackathon, ctx.caller_id, data, require_open=True)


@team_action("Failed to create team for user")
async def create_team_for_user(
    db: AsyncSession,
    ctx: ActionContext,
    hackathon_id: int,
    target_user_id: str,
    name: str,
    description: Optional[str] = None,
    looking_for_members: bool = True,
) -> ActionResult:
    """Organizer creates a team owned by ``target_user_id``.

    Registration may be closed; the team cap still applies.
    """
    hackathon = await load_hackathon(db, hackathon_id)
    ensure_organizer(hackathon, ctx.caller_id, "Only organizers can create teams for other users")
    data = TeamCreate(name=name, description=description, looking_for_members=looking_for_members)

    if not await get_user(db, target_user_id):
        raise ActionError(FailureCode.USER_NOT_FOUND, "User not found")
    if hackathon.team_cap_reached:
        raise ActionError(FailureCode.TEAM_CAP_REACHED)

    message = "This user is already part of a team for this hackathon"
    await ensure_no_team(db, hackathon.id, target_user_id, message)

    return await _create_team_with_owner(
        db, hackathon, target_user_id, data, require_open=False, already_on_team_message=message
    )


# ═══════════════════════════════════════════════════════════════
#  Join
# ═══════════════════════════════════════════════════════════════

@team_action("Failed to join team")
async def join_team(db: AsyncSession, ctx: ActionContext, team_id: int) -> ActionResult:
    """Join a recruiting team directly."""
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)

    ensure_registration_open(hackathon)
    await ensure_no_team(db, hackathon.id, ctx.caller_id)
    # A full team reports TEAM_FULL whatever its recruiting flag says.
    ensure_seat_free(team, hackathon)
    if not team.looking_for_members:
        raise ActionError(FailureCode.TEAM_NOT_RECRUITING)

    now_full = await admit_member(db, team, hackathon, ctx.caller_id)

    changes = [Change(kind="team_member", id=ctx.caller_id, action="created")]
    if now_full:
        changes.append(Change(kind="team", id=team.id, action="updated"))

    logger.info("User %s joined team %s", ctx.caller_id, team.id)
    return ActionResult.ok(team_id=team.id, hackathon_id=hackathon.id, changes=changes)


# ═══════════════════════════════════════════════════════════════
#  Update
# ═══════════════════════════════════════════════════════════════

@team_action("Failed to update team")
async def update_team(
    db: AsyncSession,
    ctx: ActionContext,
    team_id: int,
    name: str,
    description: Optional[str] = None,
    project_name: Optional[str] = None,
    looking_for_members: bool = True,
) -> ActionResult:
    """Overwrite the team's editable fields.

    ``looking_for_members`` is taken as given, even on a full team.
    """
    data = TeamUpdate(
        name=name,
        description=description,
        project_name=project_name,
        looking_for_members=looking_for_members,
    )
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    team.name = data.name
    team.description = data.description or None
    team.project_name = data.project_name or None
    team.looking_for_members = data.looking_for_members
    await db.flush()
    await db.refresh(team)

    return ActionResult.ok(
        team=TeamOut.model_validate(team),
        changes=[Change(kind="team", id=team.id, action="updated")],
    )


# ═══════════════════════════════════════════════════════════════
#  Remove / leave
# ═══════════════════════════════════════════════════════════════

@team_action("Failed to remove team member")
async def remove_team_member(
    db: AsyncSession,
    ctx: ActionContext,
    team_id: int,
    member_user_id: str,
    hackathon_id: int,
) -> ActionResult:
    """Owner or organizer removes a member.

    Only the organizer may remove an owner, and an owner never removes
    themself. The freed seat does not reopen recruiting.
    """
    hackathon = await load_hackathon(db, hackathon_id)
    team = await load_team_in_hackathon(db, team_id, hackathon.id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    membership = await find_team_member(db, team.id, member_user_id)
    if not membership:
        raise ActionError(FailureCode.MEMBER_NOT_FOUND)

    if membership.role == Role.Owner:
        if member_user_id == ctx.caller_id:
            raise ActionError(FailureCode.CANNOT_REMOVE_SELF)
        ensure_organizer(hackathon, ctx.caller_id, "Only the hackathon organizer can remove the team owner")

    await db.delete(membership)
    await db.flush()
    await release_seat(db, team)

    logger.info("User %s removed from team %s by %s", member_user_id, team.id, ctx.caller_id)
    return ActionResult.ok(
        team_id=team.id,
        hackathon_id=hackathon.id,
        changes=[Change(kind="team_member", id=member_user_id, action="deleted")],
    )


@team_action("Failed to leave team")
async def leave_team(db: AsyncSession, ctx: ActionContext, team_id: int) -> ActionResult:
    """A plain member leaves; owners must be removed by the organizer."""
    team = await load_team(db, team_id)
    membership = await find_team_member(db, team.id, ctx.caller_id)
    if not membership:
        raise ActionError(FailureCode.MEMBER_NOT_FOUND, "You are not a member of this team")
    if membership.role == Role.Owner:
        raise ActionError(FailureCode.OWNER_CANNOT_LEAVE)

    await db.delete(membership)
    await db.flush()
    await release_seat(db, team)

    logger.info("User %s left team %s", ctx.caller_id, team.id)
    return ActionResult.ok(
        team_id=team.id,
        hackathon_id=team.hackathon_id,
        changes=[Change(kind="team_member", id=ctx.caller_id, action="deleted")],
    )


@team_action("Failed to remove team")
async def remove_team(db: AsyncSession, ctx: ActionContext, team_id: int) -> ActionResult:
    """Organizer deletes a team and everything hanging off it.

    Registration is not reopened when the team count drops.
    """
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    ensure_organizer(hackathon, ctx.caller_id, "Only the hackathon organizer can remove teams")

    # 1. Requests and invitations
    await db.execute(delete(TeamJoinRequest).where(TeamJoinRequest.team_id == team.id))
    await db.execute(delete(TeamInvitation).where(TeamInvitation.team_id == team.id))

    # 2. Members
    await db.execute(delete(ExternalTeamMember).where(ExternalTeamMember.team_id == team.id))
    await db.execute(delete(TeamMember).where(TeamMember.team_id == team.id))

    # 3. Team
    await db.delete(team)
    await db.flush()
    await release_team_slot(db, hackathon.id)

    logger.info("Team %s removed from hackathon %s by %s", team_id, hackathon.id, ctx.caller_id)
    return ActionResult.ok(
        team_id=team_id,
        hackathon_id=hackathon.id,
        changes=[Change(kind="team", id=team_id, action="deleted")],
    )
