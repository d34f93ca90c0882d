from .tournament import Tournament, TournamentStatus, TournamentScope
from .team import Team, TeamMembership
from .match import Match, MatchStatus, SlotSource, SlotSourceType

__all__ = [
    "Tournament",
    "TournamentStatus",
    "TournamentScope",
    "Team",
    "TeamMembership",
    "Match",
    "MatchStatus",
    "SlotSource",
    "SlotSourceType",
]
