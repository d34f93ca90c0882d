"""
Removal of placeholder matches left behind by bracket generation.

Odd-sized fields can leave a lone entrant promoted into a round past the
real final. Those rows never carried a result and are safe to delete; any
row with observable outcome data is left alone.
"""

import logging
from typing import Dict, List, Optional, Sequence
from sqlalchemy import delete
from sqlmodel import Session, select

from ..models.match import Match, SlotSourceType
from .completion import is_bye

logger = logging.getLogger(__name__)


def _awaits_upstream(match: Match, by_id: Dict[int, Match]) -> bool:
    """True while an empty slot is still linked to an upstream match in the bracket."""
    for side in ("a", "b"):
        source = match.slot_source(side)
        if source is None or source.kind != SlotSourceType.WINNER_OF_MATCH:
            continue
        if match.team_id(side) is None and source.match_id in by_id:
            return True
    return False


def max_full_round(matches: Sequence[Match]) -> Optional[int]:
    """Highest round whose match has both slots resolved to teams."""
    rounds = [
        m.round for m in matches
        if m.round and m.round > 0
        and not is_bye(m)
        and m.team_a_id is not None
        and m.team_b_id is not None
    ]
    return max(rounds) if rounds else None


def within_full_rounds(matches: Sequence[Match]) -> List[Match]:
    """
    Drop rounds past the last full round; completion is judged on the rest.

    A later-round match still waiting on an upstream winner is kept, so a
    winner that has not reached it yet holds completion back.
    """
    ceiling = max_full_round(matches)
    if ceiling is None:
        return list(matches)
    by_id = {m.id: m for m in matches}
    return [
        m for m in matches
        if (m.round or 0) <= ceiling or _awaits_upstream(m, by_id)
    ]


def find_phantom_matches(matches: Sequence[Match]) -> List[Match]:
    ceiling = max_full_round(matches)
    if ceiling is None:
        return []

    by_id = {m.id: m for m in matches}
    phantoms = []
    for m in matches:
        if not m.round or m.round <= ceiling:
            continue
        if m.winner_team_id is not None or m.finalized_by_admin:
            continue
        if m.score_a is not None or m.score_b is not None:
            continue
        if m.team_a_id is not None and m.team_b_id is not None:
            continue
        if _awaits_upstream(m, by_id):
            continue
        phantoms.append(m)
    return phantoms


def remove_phantom_matches(db: Session, tournament_id: int) -> List[int]:
    """Delete placeholder rounds past the last full round. Returns deleted match ids."""
    matches = db.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    phantom_ids = [m.id for m in find_phantom_matches(matches)]
    if not phantom_ids:
        return []

    # Re-check the emptiness conditions in the delete itself
    result = db.exec(
        delete(Match).where(
            Match.id.in_(phantom_ids),
            Match.winner_team_id.is_(None),
            Match.finalized_by_admin == False,  # noqa: E712
            Match.score_a.is_(None),
            Match.score_b.is_(None),
        )
    )
    deleted = result.rowcount
    db.commit()

    if deleted != len(phantom_ids):
        # A concurrent write gave some rows a result; those were kept
        kept = set(db.exec(select(Match.id).where(Match.id.in_(phantom_ids))).all())
        logger.info("Kept placeholder matches %s that gained a result during cleanup", sorted(kept))
        phantom_ids = [match_id for match_id in phantom_ids if match_id not in kept]

    if phantom_ids:
        logger.info("Removed placeholder matches %s from tournament %s", phantom_ids, tournament_id)
    return phantom_ids
