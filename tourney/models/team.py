from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class Team(SQLModel, table=True):
    """A team entered into one tournament."""
    __tablename__ = "tournament_teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    name: str
    team_no: Optional[int] = Field(default=None)  # Seed number, informational only
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TeamMembership(SQLModel, table=True):
    __tablename__ = "tournament_team_members"
    __table_args__ = (UniqueConstraint("team_id", "player_id", name="unique_team_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="tournament_teams.id", index=True)
    player_id: str = Field(index=True)  # Issued by the identity provider
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
