from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class TournamentStatus(str, Enum):
    """Tournament lifecycle states."""

    OPEN = "open"  # Registration / seeding
    IN_PROGRESS = "in_progress"  # Bracket running
    COMPLETED = "completed"  # Champion decided


class TournamentScope(str, Enum):
    GLOBAL = "global"
    CLUB = "club"


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    status: str = Field(default=TournamentStatus.OPEN.value, index=True)

    # Access scoping; club admins may only manage club-scope tournaments of their own club
    scope: str = Field(default=TournamentScope.GLOBAL.value)
    club_id: Optional[str] = Field(default=None, index=True)

    ends_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
