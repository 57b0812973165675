"""
HackTeams – SQLAlchemy ORM models package.

Imports all model classes so the app and the tests can discover them
through a single ``import hackteams.models``.
"""

from hackteams.models.user import User                               # noqa: F401
from hackteams.models.hackathon import Hackathon                     # noqa: F401
from hackteams.models.team import Team                               # noqa: F401
from hackteams.models.team_membership import TeamMember              # noqa: F401
from hackteams.models.team_invitation import TeamInvitation          # noqa: F401
from hackteams.models.request import TeamJoinRequest                 # noqa: F401
from hackteams.models.external_member import ExternalTeamMember      # noqa: F401
