"""Small helpers shared by the test modules."""

from hackteams.models.team import Team
from hackteams.services.actions import ActionContext
from hackteams.services.hackathons import create_hackathon
from hackteams.services.teams import create_team


def ctx(user_id):
    return ActionContext(caller_id=user_id)


async def make_hackathon(db_session, organizer_id, **fields):
    """Create a hackathon through the registry, return its id."""
    fields.setdefault("name", "Test Hack")
    result = await create_hackathon(db_session, ctx(organizer_id), **fields)
    assert result.success, result.error
    return result.data["hackathon"].id


async def make_team(db_session, owner_id, hackathon_id, name="Team Rocket", **fields):
    """Create a team owned by ``owner_id``, return its id."""
    result = await create_team(db_session, ctx(owner_id), hackathon_id, name, **fields)
    assert result.success, result.error
    return result.data["team"].id


async def reload(db_session, model, pk):
    """Fetch a row bypassing the identity map."""
    return await db_session.get(model, pk, populate_existing=True)


async def team_of(db_session, team_id):
    return await reload(db_session, Team, team_id)
