"""
One-time conversion of legacy slot encodings.

Older rows recorded no slot source at all: a filled slot meant a fixed
team and an empty one meant a bye. Normalizing writes those meanings out
as explicit slot sources.
"""

import logging
from datetime import datetime, UTC
from sqlmodel import Session, select

from ..models.match import Match, SlotSource

logger = logging.getLogger(__name__)


def normalize_match_slots(match: Match) -> bool:
    """Give every unset slot source an explicit value. Returns True if the match changed."""
    changed = False
    for side in ("a", "b"):
        if match.slot_source(side) is not None:
            continue
        team_id = match.team_id(side)
        if team_id is not None:
            match.set_slot_source(side, SlotSource.team(team_id))
        else:
            match.set_slot_source(side, SlotSource.bye())
        changed = True

    if changed:
        match.updated_at = datetime.now(UTC)
    return changed


def normalize_tournament_slots(db: Session, tournament_id: int) -> int:
    """Normalize all matches of a tournament. Returns the number of rows rewritten."""
    statement = select(Match).where(
        Match.tournament_id == tournament_id,
        (Match.slot_a_source_type.is_(None)) | (Match.slot_b_source_type.is_(None)),
    )
    changed = 0
    for match in db.exec(statement).all():
        if normalize_match_slots(match):
            db.add(match)
            changed += 1

    if changed:
        db.commit()
        logger.info("Normalized slot sources on %s match(es) in tournament %s", changed, tournament_id)
    return changed
