"""
Invitations, invite links and external (account-less) members.

An invite link only encodes the team and hackathon ids: it carries no
secret and no expiry, so anyone holding the URL can redeem it.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.config import settings
from hackteams.models.external_member import ExternalTeamMember
from hackteams.models.team_invitation import InvitationStatus, TeamInvitation
from hackteams.schemas.results import ActionResult, Change
from hackteams.schemas.team import ExternalMemberCreate, ExternalMemberOut, InvitationOut, InviteCreate
from hackteams.services.actions import ActionContext, ActionError, FailureCode, team_action
from hackteams.services.membership import (
    admit_member,
    claim_seat,
    ensure_no_team,
    ensure_registration_open,
    ensure_seat_free,
    ensure_team_admin,
    find_membership,
    fresh,
    load_hackathon,
    load_team,
    load_team_in_hackathon,
    release_seat,
)
from hackteams.services.users import get_user, get_user_by_email

logger = logging.getLogger(__name__)

ACCEPT = "accept"
DECLINE = "decline"


# ═══════════════════════════════════════════════════════════════
#  Email invitations
# ═══════════════════════════════════════════════════════════════

@team_action("Failed to send invitation")
async def invite_team_member(
    db: AsyncSession, ctx: ActionContext, team_id: int, hackathon_id: int, email: str
) -> ActionResult:
    """Invite a registered user by email. Nobody joins until they accept."""
    data = InviteCreate(email=email)

    hackathon = await load_hackathon(db, hackathon_id)
    team = await load_team_in_hackathon(db, team_id, hackathon.id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)
    ensure_seat_free(team, hackathon)

    invitee = await get_user_by_email(db, data.email)
    if not invitee:
        raise ActionError(FailureCode.USER_NOT_FOUND)
    await ensure_no_team(
        db, hackathon.id, invitee.id, "This user is already part of a team for this hackathon"
    )

    existing = await db.execute(
        select(TeamInvitation).where(
            TeamInvitation.team_id == team.id,
            TeamInvitation.email == data.email,
            TeamInvitation.status == InvitationStatus.Pending,
        )
    )
    if existing.scalar_one_or_none():
        raise ActionError(FailureCode.ALREADY_INVITED)

    invitation = TeamInvitation(
        team_id=team.id,
        email=data.email,
        invited_by_id=ctx.caller_id,
    )
    db.add(invitation)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ActionError(FailureCode.ALREADY_INVITED) from exc

    logger.info("Team %s invited %s (by %s)", team.id, data.email, ctx.caller_id)
    return ActionResult.ok(
        invitation=InvitationOut.model_validate(invitation),
        changes=[Change(kind="team_invitation", id=invitation.id, action="created")],
    )


@team_action("Failed to respond to invitation")
async def respond_to_invitation(
    db: AsyncSession, ctx: ActionContext, invitation_id: int, action: str
) -> ActionResult:
    """The invitee accepts or declines; the inviter or a team admin may revoke.

    Acceptance re-checks registration, existing membership and capacity. An
    invitation that no longer qualifies is declined.
    """
    if action not in (ACCEPT, DECLINE):
        raise ActionError(FailureCode.VALIDATION_FAILED, "Action must be 'accept' or 'decline'")

    result = await db.execute(
        fresh(select(TeamInvitation).where(TeamInvitation.id == invitation_id))
    )
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise ActionError(FailureCode.INVITATION_NOT_FOUND)

    team = await load_team(db, invitation.team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    caller = await get_user(db, ctx.caller_id)
    is_invitee = caller is not None and caller.email == invitation.email

    # ── Decline / revoke ──
    if action == DECLINE:
        if not is_invitee and invitation.invited_by_id != ctx.caller_id:
            await ensure_team_admin(db, team, hackathon, ctx.caller_id)
        if invitation.status == InvitationStatus.Accepted:
            raise ActionError(FailureCode.INVITATION_ALREADY_RESOLVED)
        changes = []
        if invitation.status == InvitationStatus.Pending:
            invitation.status = InvitationStatus.Declined
            await db.flush()
            changes.append(Change(kind="team_invitation", id=invitation.id, action="declined"))
        return ActionResult.ok(
            invitation_id=invitation.id,
            status=InvitationStatus.Declined.value,
            changes=changes,
        )

    # ── Accept ──
    if not is_invitee:
        raise ActionError(FailureCode.UNAUTHORIZED, "This invitation was sent to a different email address")
    if invitation.status != InvitationStatus.Pending:
        raise ActionError(FailureCode.INVITATION_ALREADY_RESOLVED)

    invitation_pk, team_pk, hackathon_pk = invitation.id, team.id, hackathon.id

    failure: Optional[ActionError] = None
    if not hackathon.is_registration_open:
        failure = ActionError(FailureCode.REGISTRATION_CLOSED)
    elif await find_membership(db, hackathon_pk, ctx.caller_id):
        failure = ActionError(FailureCode.ALREADY_ON_TEAM)
    else:
        try:
            async with db.begin_nested():
                now_full = await admit_member(db, team, hackathon, ctx.caller_id)
        except ActionError as exc:
            failure = exc

    if failure is not None:
        invitation.status = InvitationStatus.Declined
        await db.flush()
        logger.info("Invitation %s declined on acceptance: %s", invitation_pk, failure.code.value)
        return ActionResult.fail(
            failure.code,
            failure.message,
            changes=[Change(kind="team_invitation", id=invitation_pk, action="declined")],
        )

    invitation.status = InvitationStatus.Accepted
    await db.flush()

    changes = [
        Change(kind="team_invitation", id=invitation_pk, action="accepted"),
        Change(kind="team_member", id=ctx.caller_id, action="created"),
    ]
    if now_full:
        changes.append(Change(kind="team", id=team_pk, action="updated"))

    logger.info("Invitation %s accepted; %s joined team %s", invitation_pk, ctx.caller_id, team_pk)
    return ActionResult.ok(
        invitation_id=invitation_pk,
        status=InvitationStatus.Accepted.value,
        team_id=team_pk,
        hackathon_id=hackathon_pk,
        changes=changes,
    )


# ═══════════════════════════════════════════════════════════════
#  External members
# ═══════════════════════════════════════════════════════════════

@team_action("Failed to add team member")
async def add_team_member_by_name(
    db: AsyncSession, ctx: ActionContext, team_id: int, hackathon_id: int, name: str
) -> ActionResult:
    """Record an account-less member by name. External members take a seat."""
    data = ExternalMemberCreate(name=name)

    hackathon = await load_hackathon(db, hackathon_id)
    team = await load_team_in_hackathon(db, team_id, hackathon.id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)
    ensure_seat_free(team, hackathon)

    now_full = await claim_seat(db, team, hackathon)
    external = ExternalTeamMember(team_id=team.id, name=data.name, added_by_id=ctx.caller_id)
    db.add(external)
    await db.flush()

    changes = [Change(kind="external_team_member", id=external.id, action="created")]
    if now_full:
        changes.append(Change(kind="team", id=team.id, action="updated"))

    logger.info("External member %r added to team %s by %s", data.name, team.id, ctx.caller_id)
    return ActionResult.ok(
        external_member=ExternalMemberOut.model_validate(external),
        changes=changes,
    )


@team_action("Failed to remove team member")
async def remove_external_team_member(
    db: AsyncSession, ctx: ActionContext, team_id: int, external_member_id: int
) -> ActionResult:
    """Drop a named placeholder and give its seat back. Owner or organizer."""
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    result = await db.execute(
        select(ExternalTeamMember).where(
            ExternalTeamMember.id == external_member_id,
            ExternalTeamMember.team_id == team.id,
        )
    )
    external = result.scalar_one_or_none()
    if not external:
        raise ActionError(FailureCode.MEMBER_NOT_FOUND)

    await db.delete(external)
    await db.flush()
    await release_seat(db, team)

    logger.info(
        "External member %s removed from team %s (by %s)", external_member_id, team.id, ctx.caller_id
    )

    return ActionResult.ok(
        team_id=team.id,
        changes=[Change(kind="external_team_member", id=external_member_id, action="deleted")],
    )


# ═══════════════════════════════════════════════════════════════
#  Invite links
# ═══════════════════════════════════════════════════════════════

def build_invite_link(team_id: int, hackathon_id: int) -> str:
    query = urlencode({"hackathonId": hackathon_id})
    return f"{settings.BASE_URL.rstrip('/')}/invite/team/{team_id}?{query}"


@team_action("Failed to generate invite link")
async def generate_team_invite_link(
    db: AsyncSession, ctx: ActionContext, team_id: int, hackathon_id: int
) -> ActionResult:
    hackathon = await load_hackathon(db, hackathon_id)
    team = await load_team_in_hackathon(db, team_id, hackathon.id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    return ActionResult.ok(invite_link=build_invite_link(team.id, hackathon.id))


@team_action("Failed to join team")
async def join_team_via_invite_link(
    db: AsyncSession, ctx: ActionContext, team_id: int, hackathon_id: int
) -> ActionResult:
    """Redeem an invite link.

    The link stands in for the owner's approval, so ``looking_for_members``
    is not consulted; registration must still be open.
    """
    hackathon = await load_hackathon(db, hackathon_id)
    team = await load_team_in_hackathon(db, team_id, hackathon.id)

    ensure_registration_open(hackathon)
    await ensure_no_team(db, hackathon.id, ctx.caller_id)
    ensure_seat_free(team, hackathon)

    now_full = await admit_member(db, team, hackathon, ctx.caller_id)

    changes = [Change(kind="team_member", id=ctx.caller_id, action="created")]
    if now_full:
        changes.append(Change(kind="team", id=team.id, action="updated"))

    logger.info("User %s joined team %s via invite link", ctx.caller_id, team.id)
    return ActionResult.ok(team_id=team.id, hackathon_id=hackathon.id, changes=changes)
