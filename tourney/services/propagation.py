"""
Winner propagation into downstream slots.

Both passes are conditional bulk updates, so re-running them after nothing
changed touches no rows.
"""

import logging
from datetime import datetime, UTC
from sqlalchemy import update
from sqlmodel import Session

from ..models.match import Match, MatchStatus, SlotSourceType

logger = logging.getLogger(__name__)


def propagate_winner(db: Session, match: Match) -> int:
    """
    Push a completed match's winner into every slot that waits on it.

    Returns:
        Number of downstream slots filled
    """
    if match.winner_team_id is None:
        return 0

    winner_id = match.winner_team_id
    now = datetime.now(UTC)

    slot_a = db.exec(
        update(Match)
        .where(
            Match.tournament_id == match.tournament_id,
            Match.slot_a_source_type == SlotSourceType.WINNER_OF_MATCH.value,
            Match.slot_a_source_match_id == match.id,
            Match.team_a_id.is_(None),
        )
        .values(
            team_a_id=winner_id,
            slot_a_source_type=SlotSourceType.TEAM.value,
            slot_a_source_match_id=None,
            updated_at=now,
        )
    )
    slot_b = db.exec(
        update(Match)
        .where(
            Match.tournament_id == match.tournament_id,
            Match.slot_b_source_type == SlotSourceType.WINNER_OF_MATCH.value,
            Match.slot_b_source_match_id == match.id,
            Match.team_b_id.is_(None),
        )
        .values(
            team_b_id=winner_id,
            slot_b_source_type=SlotSourceType.TEAM.value,
            slot_b_source_match_id=None,
            updated_at=now,
        )
    )
    filled = slot_a.rowcount + slot_b.rowcount
    db.commit()

    if filled:
        logger.info("Propagated winner team %s of match %s into %s slot(s)", winner_id, match.id, filled)
    return filled


def promote_ready_matches(db: Session, tournament_id: int) -> int:
    """Move every open match with both teams known to scheduled."""
    result = db.exec(
        update(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.status == MatchStatus.OPEN.value,
            Match.team_a_id.is_not(None),
            Match.team_b_id.is_not(None),
        )
        .values(status=MatchStatus.SCHEDULED.value, updated_at=datetime.now(UTC))
    )
    promoted = result.rowcount
    db.commit()

    if promoted:
        logger.info("Scheduled %s match(es) in tournament %s", promoted, tournament_id)
    return promoted
