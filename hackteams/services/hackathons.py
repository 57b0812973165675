"""
Hackathon registry and the registration lifecycle trigger.

The registry exposes the configuration the team actions depend on. The
trigger closes registration once a hackathon's team cap is reached; it only
ever moves a hackathon from open to closed.
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.models.hackathon import Hackathon, RegistrationStatus
from hackteams.models.team import Team
from hackteams.schemas.hackathon import HackathonCreate, HackathonOut, HackathonSettingsUpdate
from hackteams.schemas.results import ActionResult, Change
from hackteams.services.actions import ActionContext, ActionError, FailureCode, team_action
from hackteams.services.membership import ensure_organizer, fresh, load_hackathon

logger = logging.getLogger(__name__)


async def get_hackathon(db: AsyncSession, hackathon_id: int) -> Optional[Hackathon]:
    result = await db.execute(fresh(select(Hackathon).where(Hackathon.id == hackathon_id)))
    return result.scalar_one_or_none()


async def check_and_update_registration_status(db: AsyncSession, hackathon_id: int) -> bool:
    """Close registration if the team cap has been reached.

    Does nothing when no cap is configured or registration is already
    closed. Returns True when this call performed the transition. Runs in
    the caller's transaction so the closure commits with the team insert.
    """
    result = await db.execute(
        update(Hackathon)
        .where(
            Hackathon.id == hackathon_id,
            Hackathon.registration_status == RegistrationStatus.OPEN,
            Hackathon.max_teams.is_not(None),
            Hackathon.team_count >= Hackathon.max_teams,
        )
        .values(registration_status=RegistrationStatus.CLOSED)
        .execution_options(synchronize_session=False)
    )
    closed = result.rowcount == 1
    if closed:
        logger.info("Hackathon %s reached its team cap; registration closed", hackathon_id)
    return closed


@team_action("Failed to create hackathon")
async def create_hackathon(db: AsyncSession, ctx: ActionContext, **fields) -> ActionResult:
    """Create a hackathon organized by the caller."""
    data = HackathonCreate(**fields)
    hackathon = Hackathon(organizer_id=ctx.caller_id, **data.model_dump())
    db.add(hackathon)
    await db.flush()
    await db.refresh(hackathon)

    logger.info("Hackathon %s created by %s", hackathon.id, ctx.caller_id)
    return ActionResult.ok(
        hackathon=HackathonOut.model_validate(hackathon),
        changes=[Change(kind="hackathon", id=hackathon.id, action="created")],
    )


@team_action("Failed to update hackathon")
async def update_hackathon_settings(
    db: AsyncSession, ctx: ActionContext, hackathon_id: int, **fields
) -> ActionResult:
    """Organizer-only settings update.

    Reopening registration here is the only way a closed hackathon opens
    again; membership operations never do it.
    """
    data = HackathonSettingsUpdate(**fields)
    hackathon = await load_hackathon(db, hackathon_id)
    ensure_organizer(hackathon, ctx.caller_id, "Only the organizer can change hackathon settings")

    changes = data.model_dump(exclude_unset=True)
    min_size = changes.get("min_team_size", hackathon.min_team_size)
    max_size = changes.get("max_team_size", hackathon.max_team_size)
    if min_size > max_size:
        raise ActionError(
            FailureCode.VALIDATION_FAILED, "Minimum team size cannot exceed maximum team size"
        )
    if "max_team_size" in changes and max_size < hackathon.max_team_size:
        largest = await db.scalar(
            select(func.max(Team.member_count)).where(Team.hackathon_id == hackathon.id)
        )
        if largest is not None and largest > max_size:
            raise ActionError(
                FailureCode.VALIDATION_FAILED,
                f"A team already has {largest} members; maximum team size cannot be lower",
            )

    for key, value in changes.items():
        setattr(hackathon, key, value)
    await db.flush()
    if "max_team_size" in changes:
        # Teams that the new size fills stop recruiting, as a join would do.
        await db.execute(
            update(Team)
            .where(Team.hackathon_id == hackathon.id, Team.member_count >= max_size)
            .values(looking_for_members=False)
            .execution_options(synchronize_session=False)
        )
    await db.refresh(hackathon)

    logger.info("Hackathon %s settings updated: %s", hackathon.id, sorted(changes))
    return ActionResult.ok(
        hackathon=HackathonOut.model_validate(hackathon),
        changes=[Change(kind="hackathon", id=hackathon.id, action="updated")],
    )
