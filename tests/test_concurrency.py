"""
Concurrent callers on separate sessions, as simultaneous requests would be.
"""

import asyncio

import pytest
from sqlalchemy import func, select

from hackteams.models.hackathon import Hackathon, RegistrationStatus
from hackteams.models.request import RequestStatus, TeamJoinRequest
from hackteams.models.team import Team
from hackteams.models.team_invitation import InvitationStatus, TeamInvitation
from hackteams.models.team_membership import TeamMember
from hackteams.services.actions import FailureCode
from hackteams.services.invitations import (
    invite_team_member,
    join_team_via_invite_link,
    respond_to_invitation,
)
from hackteams.services.join_requests import handle_join_request, request_to_join_team
from hackteams.services.teams import create_team, join_team

from helpers import ctx, make_hackathon, make_team, reload


async def _in_own_session(session_factory, action, *args):
    async with session_factory() as session:
        return await action(session, *args)


@pytest.mark.asyncio
async def test_concurrent_joins_respect_capacity(db_session, session_factory, users):
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=2)
    team_id = await make_team(db_session, users["alice"], hack_id)
    await db_session.commit()

    results = await asyncio.gather(
        *(
            _in_own_session(session_factory, join_team, ctx(users[key]), team_id)
            for key in ("bob", "carol", "dave", "erin")
        )
    )

    assert sum(r.success for r in results) == 1
    assert {r.code for r in results if not r.success} <= {
        FailureCode.TEAM_FULL.value,
        FailureCode.TEAM_NOT_RECRUITING.value,
    }
    count = await db_session.execute(
        select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team_id)
    )
    assert count.scalar_one() == 2
    team = await reload(db_session, Team, team_id)
    assert team.member_count == 2


@pytest.mark.asyncio
async def test_concurrent_join_paths_respect_capacity(db_session, session_factory, users):
    """Test direct joins and invite links compete for the same seats."""
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=3)
    team_id = await make_team(db_session, users["alice"], hack_id)
    await db_session.commit()

    results = await asyncio.gather(
        _in_own_session(session_factory, join_team, ctx(users["bob"]), team_id),
        _in_own_session(session_factory, join_team, ctx(users["carol"]), team_id),
        _in_own_session(
            session_factory, join_team_via_invite_link, ctx(users["dave"]), team_id, hack_id
        ),
        _in_own_session(
            session_factory, join_team_via_invite_link, ctx(users["erin"]), team_id, hack_id
        ),
    )

    assert sum(r.success for r in results) == 2
    team = await reload(db_session, Team, team_id)
    assert team.member_count == 3


@pytest.mark.asyncio
async def test_concurrent_create_same_user(db_session, session_factory, users):
    hack_id = await make_hackathon(db_session, users["org"])
    await db_session.commit()

    results = await asyncio.gather(
        *(
            _in_own_session(session_factory, create_team, ctx(users["alice"]), hack_id, f"Team {i}")
            for i in range(3)
        )
    )

    assert sum(r.success for r in results) == 1
    assert {r.code for r in results if not r.success} == {FailureCode.ALREADY_ON_TEAM.value}
    memberships = await db_session.execute(
        select(func.count())
        .select_from(TeamMember)
        .where(TeamMember.hackathon_id == hack_id, TeamMember.user_id == users["alice"])
    )
    assert memberships.scalar_one() == 1
    hackathon = await reload(db_session, Hackathon, hack_id)
    assert hackathon.team_count == 1


@pytest.mark.asyncio
async def test_concurrent_create_respects_team_cap(db_session, session_factory, users):
    hack_id = await make_hackathon(db_session, users["org"], max_teams=2)
    await db_session.commit()

    results = await asyncio.gather(
        *(
            _in_own_session(session_factory, create_team, ctx(users[key]), hack_id, f"Team {key}")
            for key in ("alice", "bob", "carol", "dave")
        )
    )

    assert sum(r.success for r in results) == 2
    assert {r.code for r in results if not r.success} <= {
        FailureCode.REGISTRATION_CLOSED.value,
        FailureCode.TEAM_CAP_REACHED.value,
    }
    teams = await db_session.execute(
        select(func.count()).select_from(Team).where(Team.hackathon_id == hack_id)
    )
    assert teams.scalar_one() == 2
    hackathon = await reload(db_session, Hackathon, hack_id)
    assert hackathon.team_count == 2
    assert hackathon.registration_status == RegistrationStatus.CLOSED


async def _pending_request(db_session, user_id, team_id):
    result = await request_to_join_team(db_session, ctx(user_id), team_id)
    assert result.success, result.error
    return result.data["request"].id


async def _stale_membership_check(db, hackathon_id, user_id):
    """Stands in for a membership lookup that ran before a rival commit."""
    return None


@pytest.mark.asyncio
async def test_concurrent_accepts_and_join_share_last_seat(db_session, session_factory, users):
    """Test owner and organizer accepts race a direct join for one free seat."""
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=3)
    team_id = await make_team(db_session, users["alice"], hack_id)
    assert (await join_team(db_session, ctx(users["dave"]), team_id)).success
    bob_request = await _pending_request(db_session, users["bob"], team_id)
    carol_request = await _pending_request(db_session, users["carol"], team_id)
    await db_session.commit()

    results = await asyncio.gather(
        _in_own_session(
            session_factory, handle_join_request, ctx(users["alice"]), bob_request, "accept"
        ),
        _in_own_session(
            session_factory, handle_join_request, ctx(users["org"]), carol_request, "accept"
        ),
        _in_own_session(session_factory, join_team, ctx(users["erin"]), team_id),
    )

    assert sum(r.success for r in results) == 1
    assert {r.code for r in results if not r.success} <= {
        FailureCode.TEAM_FULL.value,
        FailureCode.TEAM_NOT_RECRUITING.value,
    }
    team = await reload(db_session, Team, team_id)
    assert team.member_count == 3
    count = await db_session.execute(
        select(func.count()).select_from(TeamMember).where(TeamMember.team_id == team_id)
    )
    assert count.scalar_one() == 3

    for request_id, result in zip((bob_request, carol_request), results):
        join_request = await reload(db_session, TeamJoinRequest, request_id)
        expected = RequestStatus.ACCEPTED if result.success else RequestStatus.REJECTED
        assert join_request.status == expected


@pytest.mark.asyncio
async def test_accept_request_after_requester_joined_elsewhere(db_session, users, monkeypatch):
    """Test the insert-time conflict rolls back the seat and still rejects the request."""
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=3)
    team_id = await make_team(db_session, users["alice"], hack_id)
    other_id = await make_team(db_session, users["carol"], hack_id, name="Team Carol")
    request_id = await _pending_request(db_session, users["bob"], team_id)
    assert (await join_team(db_session, ctx(users["bob"]), other_id)).success
    monkeypatch.setattr(
        "hackteams.services.join_requests.find_membership", _stale_membership_check
    )

    result = await handle_join_request(db_session, ctx(users["alice"]), request_id, "accept")

    assert result.code == FailureCode.ALREADY_ON_TEAM.value
    assert result.error == "User has already joined another team for this hackathon"
    assert ("join_request", request_id, "rejected") in {
        (c.kind, c.id, c.action) for c in result.changes
    }
    join_request = await reload(db_session, TeamJoinRequest, request_id)
    assert join_request.status == RequestStatus.REJECTED
    team = await reload(db_session, Team, team_id)
    assert team.member_count == 1
    assert team.looking_for_members is True


@pytest.mark.asyncio
async def test_accept_invitation_after_invitee_joined_elsewhere(db_session, users, monkeypatch):
    hack_id = await make_hackathon(db_session, users["org"], max_team_size=3)
    team_id = await make_team(db_session, users["alice"], hack_id)
    other_id = await make_team(db_session, users["carol"], hack_id, name="Team Carol")
    invited = await invite_team_member(
        db_session, ctx(users["alice"]), team_id, hack_id, "bob@example.com"
    )
    assert invited.success, invited.error
    invitation_id = invited.data["invitation"].id
    assert (await join_team(db_session, ctx(users["bob"]), other_id)).success
    monkeypatch.setattr(
        "hackteams.services.invitations.find_membership", _stale_membership_check
    )

    result = await respond_to_invitation(db_session, ctx(users["bob"]), invitation_id, "accept")

    assert result.code == FailureCode.ALREADY_ON_TEAM.value
    invitation = await reload(db_session, TeamInvitation, invitation_id)
    assert invitation.status == InvitationStatus.Declined
    team = await reload(db_session, Team, team_id)
    assert team.member_count == 1
    other = await reload(db_session, Team, other_id)
    assert other.member_count == 2
