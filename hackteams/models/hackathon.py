"""Hackathon model — registration gate and team-size configuration."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from hackteams.database import Base


class RegistrationStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Hackathon(Base):
    __tablename__ = "hackathons"
    __table_args__ = (
        CheckConstraint("min_team_size >= 1", name="ck_hackathons_min_team_size"),
        CheckConstraint("min_team_size <= max_team_size", name="ck_hackathons_team_size_bounds"),
        CheckConstraint("max_teams IS NULL OR max_teams >= 1", name="ck_hackathons_max_teams"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    organizer_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)

    # ── Registration ──
    registration_status: Mapped[RegistrationStatus] = mapped_column(
        Enum(
            RegistrationStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=RegistrationStatus.OPEN,
        nullable=False,
    )

    # ── Team constraints ──
    max_team_size: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    min_team_size: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_teams: Mapped[Optional[int]] = mapped_column(Integer)

    # Live number of teams; claimed and released together with team rows.
    team_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def is_registration_open(self) -> bool:
        return self.registration_status == RegistrationStatus.OPEN

    @property
    def team_cap_reached(self) -> bool:
        return self.max_teams is not None and self.team_count >= self.max_teams
