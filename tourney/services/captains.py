"""
Captain resolution.

A team's captain is never stored: it is the lexicographically smallest
player id among the team's memberships, so every reader agrees on it
regardless of insertion order.
"""

import logging
from typing import Dict, List, Optional, Tuple
from sqlmodel import Session, select

from ..errors import CaptainsUnresolved, NoCaptain, NotCaptain
from ..models.team import TeamMembership

logger = logging.getLogger(__name__)


def _min_id(ids: List[str]) -> Optional[str]:
    return min(ids) if ids else None


def captain_of(db: Session, team_id: int) -> str:
    """Return the captain's player id for a team."""
    statement = select(TeamMembership.player_id).where(TeamMembership.team_id == team_id)
    captain = _min_id([pid for pid in db.exec(statement).all() if pid])
    if captain is None:
        raise NoCaptain(f"Team {team_id} has no members")
    return captain


def resolve_captains(db: Session, team_a_id: int, team_b_id: int) -> Tuple[str, str]:
    """
    Resolve both captains of a match with a single membership read.

    Raises:
        CaptainsUnresolved: if either team has no members
    """
    statement = select(TeamMembership).where(
        TeamMembership.team_id.in_([team_a_id, team_b_id])
    )
    members: Dict[int, List[str]] = {team_a_id: [], team_b_id: []}
    for membership in db.exec(statement).all():
        if membership.player_id:
            members[membership.team_id].append(membership.player_id)

    captain_a = _min_id(members[team_a_id])
    captain_b = _min_id(members[team_b_id])

    if not captain_a or not captain_b:
        logger.info("Captains unresolved for teams %s/%s", team_a_id, team_b_id)
        raise CaptainsUnresolved()

    return captain_a, captain_b


def captain_sides(captains: Tuple[str, str], actor_id: str) -> Tuple[bool, bool]:
    """Return (is_captain_a, is_captain_b) for the actor, or raise NotCaptain."""
    captain_a, captain_b = captains
    is_a = actor_id == captain_a
    is_b = actor_id == captain_b
    if not is_a and not is_b:
        raise NotCaptain()
    return is_a, is_b
