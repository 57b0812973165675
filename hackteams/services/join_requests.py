"""
Join requests — a participant asks, the team owner or organizer decides.

State may change between asking and deciding, so acceptance re-checks
registration, the requester's membership and capacity at that moment. A
request that no longer qualifies is rejected rather than left pending.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.models.request import RequestStatus, TeamJoinRequest
from hackteams.schemas.results import ActionResult, Change
from hackteams.schemas.team import JoinRequestOut
from hackteams.services.actions import ActionContext, ActionError, FailureCode, team_action
from hackteams.services.membership import (
    admit_member,
    ensure_no_team,
    ensure_registration_open,
    ensure_seat_free,
    ensure_team_admin,
    find_membership,
    fresh,
    load_hackathon,
    load_team,
)

logger = logging.getLogger(__name__)

ACCEPT = "accept"
REJECT = "reject"


async def _pending_request(db: AsyncSession, team_id: int, user_id: str) -> Optional[TeamJoinRequest]:
    result = await db.execute(
        select(TeamJoinRequest).where(
            TeamJoinRequest.team_id == team_id,
            TeamJoinRequest.user_id == user_id,
            TeamJoinRequest.status == RequestStatus.PENDING,
        )
    )
    return result.scalar_one_or_none()


@team_action("Failed to send join request")
async def request_to_join_team(
    db: AsyncSession, ctx: ActionContext, team_id: int, message: Optional[str] = None
) -> ActionResult:
    """Ask to join a recruiting team."""
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)

    ensure_registration_open(hackathon)
    await ensure_no_team(db, hackathon.id, ctx.caller_id)
    ensure_seat_free(team, hackathon)
    if not team.looking_for_members:
        raise ActionError(FailureCode.TEAM_NOT_RECRUITING)
    if await _pending_request(db, team.id, ctx.caller_id):
        raise ActionError(FailureCode.ALREADY_REQUESTED)

    join_request = TeamJoinRequest(
        team_id=team.id,
        user_id=ctx.caller_id,
        message=(message or "").strip() or None,
    )
    db.add(join_request)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise ActionError(FailureCode.ALREADY_REQUESTED) from exc

    logger.info("User %s requested to join team %s", ctx.caller_id, team.id)
    return ActionResult.ok(
        request=JoinRequestOut.model_validate(join_request),
        changes=[Change(kind="join_request", id=join_request.id, action="created")],
    )


@team_action("Failed to fetch join requests")
async def get_team_join_requests(db: AsyncSession, ctx: ActionContext, team_id: int) -> ActionResult:
    """Pending requests for a team; owner or organizer only."""
    team = await load_team(db, team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    result = await db.execute(
        select(TeamJoinRequest)
        .where(
            TeamJoinRequest.team_id == team.id,
            TeamJoinRequest.status == RequestStatus.PENDING,
        )
        .order_by(TeamJoinRequest.created_at, TeamJoinRequest.id)
    )
    requests = [JoinRequestOut.model_validate(r) for r in result.scalars().all()]
    return ActionResult.ok(requests=requests)


@team_action("Failed to handle join request")
async def handle_join_request(
    db: AsyncSession, ctx: ActionContext, request_id: int, action: str
) -> ActionResult:
    """Accept or reject a join request.

    Rejecting an already-rejected request is a no-op success.
    """
    if action not in (ACCEPT, REJECT):
        raise ActionError(FailureCode.VALIDATION_FAILED, "Action must be 'accept' or 'reject'")

    result = await db.execute(
        fresh(select(TeamJoinRequest).where(TeamJoinRequest.id == request_id))
    )
    join_request = result.scalar_one_or_none()
    if not join_request:
        raise ActionError(FailureCode.REQUEST_NOT_FOUND)

    team = await load_team(db, join_request.team_id)
    hackathon = await load_hackathon(db, team.hackathon_id)
    await ensure_team_admin(db, team, hackathon, ctx.caller_id)

    # ── Reject ──
    if action == REJECT:
        if join_request.status == RequestStatus.ACCEPTED:
            raise ActionError(FailureCode.REQUEST_ALREADY_RESOLVED)
        changes = []
        if join_request.status == RequestStatus.PENDING:
            join_request.status = RequestStatus.REJECTED
            await db.flush()
            changes.append(Change(kind="join_request", id=join_request.id, action="rejected"))
        return ActionResult.ok(
            request_id=join_request.id,
            status=RequestStatus.REJECTED.value,
            changes=changes,
        )

    # ── Accept ──
    if join_request.status != RequestStatus.PENDING:
        raise ActionError(FailureCode.REQUEST_ALREADY_RESOLVED)

    # A savepoint rollback may expire loaded rows; keep plain ids.
    request_pk, requester_id = join_request.id, join_request.user_id
    team_id, hackathon_id = team.id, hackathon.id

    failure: Optional[ActionError] = None
    existing = await find_membership(db, hackathon_id, requester_id)
    if not hackathon.is_registration_open:
        failure = ActionError(FailureCode.REGISTRATION_CLOSED)
    elif existing and existing.team_id == team_id:
        failure = ActionError(FailureCode.ALREADY_ON_TEAM, "User is already a member of this team")
    elif existing:
        failure = ActionError(
            FailureCode.ALREADY_ON_TEAM, "User has already joined another team for this hackathon"
        )
    else:
        try:
            async with db.begin_nested():
                now_full = await admit_member(
                    db,
                    team,
                    hackathon,
                    requester_id,
                    message="User has already joined another team for this hackathon",
                )
        except ActionError as exc:
            failure = exc

    if failure is not None:
        join_request.status = RequestStatus.REJECTED
        await db.flush()
        logger.info(
            "Join request %s rejected on acceptance: %s", request_pk, failure.code.value
        )
        # Returned, not raised, so the rejection is committed.
        return ActionResult.fail(
            failure.code,
            failure.message,
            changes=[Change(kind="join_request", id=request_pk, action="rejected")],
        )

    join_request.status = RequestStatus.ACCEPTED
    await db.flush()

    changes = [
        Change(kind="join_request", id=request_pk, action="accepted"),
        Change(kind="team_member", id=requester_id, action="created"),
    ]
    if now_full:
        changes.append(Change(kind="team", id=team_id, action="updated"))

    logger.info("Join request %s accepted; %s joined team %s", request_pk, requester_id, team_id)
    return ActionResult.ok(
        request_id=request_pk,
        status=RequestStatus.ACCEPTED.value,
        team_id=team_id,
        hackathon_id=hackathon_id,
        changes=changes,
    )
