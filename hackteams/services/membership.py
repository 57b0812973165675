"""
Loaders, guards and seat accounting shared by the team actions.

Seats (``teams.member_count``) and team slots (``hackathons.team_count``)
are claimed with a single conditional UPDATE. A claim that matches no row
means the limit was already reached, whatever other callers did between
our read and our write. The unique constraints on ``team_members`` and the
pending-row indexes back the remaining check-then-insert paths.
"""

import logging
from typing import Optional

from sqlalchemy import case, false, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackteams.models.hackathon import Hackathon, RegistrationStatus
from hackteams.models.team import Team
from hackteams.models.team_membership import Role, TeamMember
from hackteams.services.actions import ActionError, FailureCode

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
#  Loaders
# ═══════════════════════════════════════════════════════════════

def fresh(stmt):
    """Overwrite identity-map copies; counters are written by bulk UPDATEs."""
    return stmt.execution_options(populate_existing=True)


async def load_hackathon(db: AsyncSession, hackathon_id: int) -> Hackathon:
    result = await db.execute(fresh(select(Hackathon).where(Hackathon.id == hackathon_id)))
    hackathon = result.scalar_one_or_none()
    if not hackathon:
        raise ActionError(FailureCode.HACKATHON_NOT_FOUND)
    return hackathon


async def load_team(db: AsyncSession, team_id: int) -> Team:
    result = await db.execute(fresh(select(Team).where(Team.id == team_id)))
    team = result.scalar_one_or_none()
    if not team:
        raise ActionError(FailureCode.TEAM_NOT_FOUND)
    return team


async def load_team_in_hackathon(db: AsyncSession, team_id: int, hackathon_id: int) -> Team:
    team = await load_team(db, team_id)
    if team.hackathon_id != hackathon_id:
        raise ActionError(FailureCode.TEAM_NOT_IN_HACKATHON)
    return team


async def find_membership(db: AsyncSession, hackathon_id: int, user_id: str) -> Optional[TeamMember]:
    """The user's membership row in this hackathon, if any."""
    result = await db.execute(
        fresh(select(TeamMember).where(
            TeamMember.hackathon_id == hackathon_id,
            TeamMember.user_id == user_id,
        ))
    )
    return result.scalar_one_or_none()


async def find_team_member(db: AsyncSession, team_id: int, user_id: str) -> Optional[TeamMember]:
    result = await db.execute(
        fresh(select(TeamMember).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
        ))
    )
    return result.scalar_one_or_none()


# ═══════════════════════════════════════════════════════════════
#  Guards
# ═══════════════════════════════════════════════════════════════

def ensure_registration_open(hackathon: Hackathon) -> None:
    if not hackathon.is_registration_open:
        raise ActionError(FailureCode.REGISTRATION_CLOSED)


def ensure_seat_free(team: Team, hackathon: Hackathon) -> None:
    if team.member_count >= hackathon.max_team_size:
        raise ActionError(FailureCode.TEAM_FULL)


async def ensure_no_team(
    db: AsyncSession, hackathon_id: int, user_id: str, message: Optional[str] = None
) -> None:
    if await find_membership(db, hackathon_id, user_id):
        raise ActionError(FailureCode.ALREADY_ON_TEAM, message)


async def ensure_team_admin(db: AsyncSession, team: Team, hackathon: Hackathon, user_id: str) -> bool:
    """Allow the team owner or the hackathon organizer.

    Returns True when the caller is acting as organizer.
    """
    if hackathon.organizer_id == user_id:
        return True
    member = await find_team_member(db, team.id, user_id)
    if member and member.role == Role.Owner:
        return False
    raise ActionError(FailureCode.UNAUTHORIZED)


def ensure_organizer(hackathon: Hackathon, user_id: str, message: Optional[str] = None) -> None:
    if hackathon.organizer_id != user_id:
        raise ActionError(FailureCode.UNAUTHORIZED, message)


# ═══════════════════════════════════════════════════════════════
#  Counters
# ═══════════════════════════════════════════════════════════════

async def claim_team_slot(db: AsyncSession, hackathon: Hackathon, require_open: bool = True) -> None:
    """Take one of the hackathon's team slots or fail."""
    conditions = [
        Hackathon.id == hackathon.id,
        or_(Hackathon.max_teams.is_(None), Hackathon.team_count < Hackathon.max_teams),
    ]
    if require_open:
        conditions.append(Hackathon.registration_status == RegistrationStatus.OPEN)

    result = await db.execute(
        update(Hackathon)
        .where(*conditions)
        .values(team_count=Hackathon.team_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(hackathon)
    if result.rowcount != 1:
        if require_open and not hackathon.is_registration_open:
            raise ActionError(FailureCode.REGISTRATION_CLOSED)
        raise ActionError(FailureCode.TEAM_CAP_REACHED)


async def release_team_slot(db: AsyncSession, hackathon_id: int) -> None:
    await db.execute(
        update(Hackathon)
        .where(Hackathon.id == hackathon_id, Hackathon.team_count > 0)
        .values(team_count=Hackathon.team_count - 1)
        .execution_options(synchronize_session=False)
    )


async def claim_seat(db: AsyncSession, team: Team, hackathon: Hackathon) -> bool:
    """Take a seat on ``team``; stop recruiting when it was the last one.

    Returns True when the team is now full.
    """
    max_size = hackathon.max_team_size
    result = await db.execute(
        update(Team)
        .where(Team.id == team.id, Team.member_count < max_size)
        .values(
            member_count=Team.member_count + 1,
            looking_for_members=case(
                (Team.member_count + 1 >= max_size, false()),
                else_=Team.looking_for_members,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ActionError(FailureCode.TEAM_FULL)
    await db.refresh(team)
    return team.member_count >= max_size


async def release_seat(db: AsyncSession, team: Team) -> None:
    """Free a seat. ``looking_for_members`` is left as it is."""
    await db.execute(
        update(Team)
        .where(Team.id == team.id, Team.member_count > 0)
        .values(member_count=Team.member_count - 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(team)


async def insert_member(
    db: AsyncSession, team: Team, user_id: str, role: Role, message: Optional[str] = None
) -> TeamMember:
    """Insert the membership row; a uniqueness clash means another team won."""
    membership = TeamMember(
        team_id=team.id,
        hackathon_id=team.hackathon_id,
        user_id=user_id,
        role=role,
    )
    db.add(membership)
    try:
        await db.flush()
    except IntegrityError as exc:
        logger.info("Membership insert for %s on team %s lost a race", user_id, team.id)
        raise ActionError(FailureCode.ALREADY_ON_TEAM, message) from exc
    return membership


async def admit_member(
    db: AsyncSession,
    team: Team,
    hackathon: Hackathon,
    user_id: str,
    message: Optional[str] = None,
) -> bool:
    """Claim a seat and add ``user_id`` as a plain member.

    Returns True when the team became full. ``message`` overrides the
    ALREADY_ON_TEAM text, e.g. when an admin acts on someone else's behalf.
    """
    now_full = await claim_seat(db, team, hackathon)
    await insert_member(db, team, user_id, Role.Member, message)
    return now_full
