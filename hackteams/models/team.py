"""Team model."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hackteams.database import Base


class Team(Base):
    __tablename__ = "teams"
    __table_args__ = (
        CheckConstraint("member_count >= 0", name="ck_teams_member_count"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    hackathon_id: Mapped[int] = mapped_column(
        ForeignKey("hackathons.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    project_name: Mapped[Optional[str]] = mapped_column(String(255))
    looking_for_members: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Seats taken by members and external members.
    member_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relationships ──
    members: Mapped[List["TeamMember"]] = relationship(  # noqa: F821
        "TeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    external_members: Mapped[List["ExternalTeamMember"]] = relationship(  # noqa: F821
        "ExternalTeamMember",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
