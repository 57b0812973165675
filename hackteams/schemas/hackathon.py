"""Hackathon Pydantic schemas."""

from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator

from hackteams.models.hackathon import RegistrationStatus


class HackathonCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    registration_status: RegistrationStatus = RegistrationStatus.OPEN
    max_team_size: int = Field(default=5, ge=1)
    min_team_size: int = Field(default=1, ge=1)
    max_teams: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.min_team_size > self.max_team_size:
            raise ValueError("Minimum team size cannot exceed maximum team size")
        return self


class HackathonSettingsUpdate(BaseModel):
    """Partial update; unset fields keep their stored value."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    registration_status: Optional[RegistrationStatus] = None
    max_team_size: Optional[int] = Field(default=None, ge=1)
    min_team_size: Optional[int] = Field(default=None, ge=1)
    max_teams: Optional[int] = Field(default=None, ge=1)

    # max_teams may be cleared (no cap); the rest are NOT NULL columns.
    @field_validator("name", "registration_status", "max_team_size", "min_team_size")
    @classmethod
    def _not_null(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be empty")
        return value


class HackathonOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    organizer_id: str
    registration_status: RegistrationStatus
    max_team_size: int
    min_team_size: int
    max_teams: Optional[int] = None
    team_count: int

    model_config = {"from_attributes": True}
