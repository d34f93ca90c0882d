from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class MatchStatus(str, Enum):
    """Match lifecycle states."""

    OPEN = "open"  # Waiting for one or both slots to resolve
    SCHEDULED = "scheduled"  # Both teams known
    IN_PLAY = "in_play"  # Captains may submit scores
    COMPLETED = "completed"  # Winner decided
    BYE = "bye"  # No real opponent


class SlotSourceType(str, Enum):
    TEAM = "team"
    WINNER_OF_MATCH = "winner_of_match"
    BYE = "bye"


@dataclass(frozen=True)
class SlotSource:
    """Where a match slot gets its team from."""

    kind: SlotSourceType
    team_id: Optional[int] = None
    match_id: Optional[int] = None

    @classmethod
    def team(cls, team_id: int) -> "SlotSource":
        return cls(SlotSourceType.TEAM, team_id=team_id)

    @classmethod
    def winner_of(cls, match_id: int) -> "SlotSource":
        return cls(SlotSourceType.WINNER_OF_MATCH, match_id=match_id)

    @classmethod
    def bye(cls) -> "SlotSource":
        return cls(SlotSourceType.BYE)


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    round: Optional[int] = Field(default=None, index=True)  # None / <= 0 is outside the bracket
    match_no: Optional[int] = Field(default=None)

    # Teams (unset until the slot resolves)
    team_a_id: Optional[int] = Field(default=None, foreign_key="tournament_teams.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="tournament_teams.id")

    # Slot sources; a NULL type is the legacy "nothing recorded" encoding
    slot_a_source_type: Optional[str] = Field(default=None)
    slot_a_source_match_id: Optional[int] = Field(default=None, foreign_key="matches.id")
    slot_b_source_type: Optional[str] = Field(default=None)
    slot_b_source_match_id: Optional[int] = Field(default=None, foreign_key="matches.id")

    status: str = Field(default=MatchStatus.OPEN.value, index=True)

    # Captain consensus
    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)
    submitted_by: Optional[str] = Field(default=None)
    submitted_at: Optional[datetime] = Field(default=None)
    confirmed_by_a: bool = Field(default=False)
    confirmed_by_b: bool = Field(default=False)

    winner_team_id: Optional[int] = Field(default=None, foreign_key="tournament_teams.id")
    finalized_at: Optional[datetime] = Field(default=None)

    # Administrator override
    finalized_by_admin: bool = Field(default=False)
    admin_final_by: Optional[str] = Field(default=None)
    admin_final_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def team_id(self, side: str) -> Optional[int]:
        return self.team_a_id if side == "a" else self.team_b_id

    def slot_source(self, side: str) -> Optional[SlotSource]:
        """Return the slot source for side "a" or "b", or None for legacy rows."""
        if side == "a":
            kind, match_id = self.slot_a_source_type, self.slot_a_source_match_id
        else:
            kind, match_id = self.slot_b_source_type, self.slot_b_source_match_id

        if not kind:
            return None
        kind = SlotSourceType(kind)
        if kind == SlotSourceType.TEAM:
            return SlotSource.team(self.team_id(side))
        if kind == SlotSourceType.WINNER_OF_MATCH:
            return SlotSource.winner_of(match_id)
        return SlotSource.bye()

    def set_slot_source(self, side: str, source: SlotSource) -> None:
        match_id = source.match_id if source.kind == SlotSourceType.WINNER_OF_MATCH else None
        if side == "a":
            self.slot_a_source_type = source.kind.value
            self.slot_a_source_match_id = match_id
            if source.kind == SlotSourceType.TEAM:
                self.team_a_id = source.team_id
        else:
            self.slot_b_source_type = source.kind.value
            self.slot_b_source_match_id = match_id
            if source.kind == SlotSourceType.TEAM:
                self.team_b_id = source.team_id
