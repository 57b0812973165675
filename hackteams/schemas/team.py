"""Team Pydantic schemas."""

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, field_validator

from hackteams.config import settings
from hackteams.models.request import RequestStatus
from hackteams.models.team_invitation import InvitationStatus
from hackteams.models.team_membership import Role


def _check_team_name(value: str) -> str:
    value = value.strip()
    if len(value) < settings.MIN_TEAM_NAME_LENGTH:
        raise ValueError(
            f"Team name must be at least {settings.MIN_TEAM_NAME_LENGTH} characters"
        )
    return value


TeamName = Annotated[str, AfterValidator(_check_team_name)]


class TeamCreate(BaseModel):
    name: TeamName
    description: Optional[str] = None
    looking_for_members: bool = True


class TeamUpdate(BaseModel):
    name: TeamName
    description: Optional[str] = None
    project_name: Optional[str] = None
    looking_for_members: bool = True


class InviteCreate(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def _normalise(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class ExternalMemberCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a name")
        return value


class JoinRequestCreate(BaseModel):
    message: Optional[str] = None


class TeamOut(BaseModel):
    id: int
    hackathon_id: int
    name: str
    description: Optional[str] = None
    project_name: Optional[str] = None
    looking_for_members: bool
    member_count: int

    model_config = {"from_attributes": True}


class MemberOut(BaseModel):
    user_id: str
    role: Role
    joined_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ExternalMemberOut(BaseModel):
    id: int
    name: str
    added_by_id: str

    model_config = {"from_attributes": True}


class TeamDetailOut(TeamOut):
    members: List[MemberOut] = []
    external_members: List[ExternalMemberOut] = []


class JoinRequestOut(BaseModel):
    id: int
    team_id: int
    user_id: str
    message: Optional[str] = None
    status: RequestStatus

    model_config = {"from_attributes": True}


class InvitationOut(BaseModel):
    id: int
    team_id: int
    email: str
    invited_by_id: str
    status: InvitationStatus

    model_config = {"from_attributes": True}
