"""
Unit tests for team creation.

Covers the owner seed row, team caps, one-team-per-hackathon and the
organizer's create-for-user override.
"""

import pytest
from sqlalchemy import select

from hackteams.models.hackathon import Hackathon, RegistrationStatus
from hackteams.models.team_membership import Role, TeamMember
from hackteams.services.actions import ActionContext, FailureCode
from hackteams.services.hackathons import update_hackathon_settings
from hackteams.services.teams import create_team, create_team_for_user, get_user_team_for_hackathon

from helpers import ctx, make_hackathon, make_team, reload, team_of


@pytest.mark.asyncio
async def test_create_team_seeds_owner(db_session, users):
    """Test the creator becomes the sole owner and a team slot is taken."""
    hack_id = await make_hackathon(db_session, users["org"])

    result = await create_team(db_session, ctx(users["alice"]), hack_id, "Team Rocket", "We build")

    assert result.success
    team = result.data["team"]
    assert result.data["hackathon_id"] == hack_id
    assert team.name == "Team Rocket"
    assert team.member_count == 1
    assert team.looking_for_members is True

    rows = (await db_session.execute(select(TeamMember).where(TeamMember.team_id == team.id))).scalars().all()
    assert [(m.user_id, m.role) for m in rows] == [(users["alice"], Role.Owner)]

    hackathon = await reload(db_session, Hackathon, hack_id)
    assert hackathon.team_count == 1

    kinds = {(c.kind, c.action) for c in result.changes}
    assert ("team", "created") in kinds


@pytest.mark.asyncio
async def test_create_team_requires_caller(db_session, users):
    hack_id = await make_hackathon(db_session, users["org"])

    result = await create_team(db_session, ActionContext(), hack_id, "Team Rocket")

    assert not result.success
    assert result.code == FailureCode.UNAUTHENTICATED.value


@pytest.mark.asyncio
async def test_create_team_short_name(db_session, users):
    """Test names under three characters are rejected with a readable message."""
    hack_id = await make_hackathon(db_session, users["org"])

    result = await create_team(db_session, ctx(users["alice"]), hack_id, "AB")

    assert not result.success
    assert result.code == FailureCode.VALIDATION_FAILED.value
    assert result.error == "Team name must be at least 3 characters"


@pytest.mark.asyncio
async def test_create_team_unknown_hackathon(db_session, users):
    result = await create_team(db_session, ctx(users["alice"]), 9999, "Team Rocket")

    assert not result.success
    assert result.code == FailureCode.HACKATHON_NOT_FOUND.value


@pytest.mark.asyncio
async def test_create_team_registration_closed(db_session, users):
    hack_id = await make_hackathon(
        db_session, users["org"], registration_status=RegistrationStatus.CLOSED
    )

    result = await create_team(db_session, ctx(users["alice"]), hack_id, "Team Rocket")

    assert not result.success
    assert result.code == FailureCode.REGISTRATION_CLOSED.value
    assert result.error == "Hackathon is not accepting registrations"


@pytest.mark.asyncio
async def test_create_second_team_same_hackathon(db_session, users):
    """Test a user cannot own or join two teams in one hackathon."""
    hack_id = await make_hackathon(db_session, users["org"])
    await make_team(db_session, users["alice"], hack_id)

    result = await create_team(db_session, ctx(users["alice"]), hack_id, "Second Team")

    assert not result.success
    assert result.code == FailureCode.ALREADY_ON_TEAM.value
    hackathon = await reload(db_session, Hackathon, hack_id)
    assert hackathon.team_count == 1


@pytest.mark.asyncio
async def test_teams_in_different_hackathons(db_session, users):
    """Test membership is only constrained within a hackathon."""
    first = await make_hackathon(db_session, users["org"], name="First")
    second = await make_hackathon(db_session, users["org"], name="Second")

    await make_team(db_session, users["alice"], first)
    result = await create_team(db_session, ctx(users["alice"]), second, "Other Team")

    assert result.success
    team = await get_user_team_for_hackathon(db_session, users["alice"], second)
    assert team.id == result.data["team"].id


@pytest.mark.asyncio
async def test_single_seat_team_stops_recruiting(db_session, users):
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=1)

    team_id = await make_team(db_session, users["alice"], hack_id)

    team = await team_of(db_session, team_id)
    assert team.looking_for_members is False


@pytest.mark.asyncio
async def test_team_cap_without_closing(db_session, users):
    """Test the cap is enforced even if an organizer reopened registration."""
    hack_id = await make_hackathon(db_session, users["org"], max_teams=1)
    await make_team(db_session, users["alice"], hack_id)
    reopened = await update_hackathon_settings(
        db_session, ctx(users["org"]), hack_id, registration_status=RegistrationStatus.OPEN
    )
    assert reopened.success

    result = await create_team(db_session, ctx(users["bob"]), hack_id, "Late Team")

    assert not result.success
    assert result.code == FailureCode.TEAM_CAP_REACHED.value


# ──────────────────────────────────────────────────────────────
# Organizer override
# ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_team_for_user(db_session, users):
    """Test the organizer can seat a user as owner even with registration closed."""
    hack_id = await make_hackathon(
        db_session, users["org"], registration_status=RegistrationStatus.CLOSED
    )

    result = await create_team_for_user(
        db_session, ctx(users["org"]), hack_id, users["bob"], "Bob's Team"
    )

    assert result.success
    team_id = result.data["team"].id
    owner = (
        await db_session.execute(
            select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.role == Role.Owner)
        )
    ).scalar_one()
    assert owner.user_id == users["bob"]


@pytest.mark.asyncio
async def test_create_team_for_user_requires_organizer(db_session, users):
    hack_id = await make_hackathon(db_session, users["org"])

    result = await create_team_for_user(
        db_session, ctx(users["alice"]), hack_id, users["bob"], "Bob's Team"
    )

    assert not result.success
    assert result.code == FailureCode.UNAUTHORIZED.value


@pytest.mark.asyncio
async def test_create_team_for_user_already_on_team(db_session, users):
    hack_id = await make_hackathon(db_session, users["org"])
    await make_team(db_session, users["bob"], hack_id)

    result = await create_team_for_user(
        db_session, ctx(users["org"]), hack_id, users["bob"], "Another Team"
    )

    assert not result.success
    assert result.code == FailureCode.ALREADY_ON_TEAM.value
    assert result.error == "This user is already part of a team for this hackathon"


@pytest.mark.asyncio
async def test_create_team_for_unknown_user(db_session, users):
    hack_id = await make_hackathon(db_session, users["org"])

    result = await create_team_for_user(
        db_session, ctx(users["org"]), hack_id, "user_ghost", "Ghost Team"
    )

    assert not result.success
    assert result.code == FailureCode.USER_NOT_FOUND.value
