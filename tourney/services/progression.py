"""
Bracket progression after a match reaches a terminal state.

Everything here is best-effort: the consensus write that triggered it has
already committed, so failures are logged and reported as warnings
instead of failing the caller. Each pass is idempotent and is simply
retried on the next relevant event.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..errors import NotFound
from ..models.match import Match, MatchStatus, SlotSourceType
from ..models.tournament import Tournament, TournamentStatus
from .cleanup import remove_phantom_matches, within_full_rounds
from .completion import derive_completion, infer_winner_team_id
from .propagation import promote_ready_matches, propagate_winner

logger = logging.getLogger(__name__)


@dataclass
class CompletionAttempt:
    attempted: bool
    completed: bool
    final_round: Optional[int] = None
    newly_completed: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class ProgressionReport:
    tournament_completed: bool = False
    warnings: List[str] = field(default_factory=list)


def _backfill_winner(db: Session, match: Match, winner_id: int) -> bool:
    """Store the score-implied winner on a finished match that never got one."""
    result = db.exec(
        update(Match)
        .where(Match.id == match.id, Match.winner_team_id.is_(None))
        .values(winner_team_id=winner_id, updated_at=datetime.now(UTC))
    )
    stored = result.rowcount > 0
    db.commit()
    if stored:
        logger.info("Backfilled winner team %s on match %s", winner_id, match.id)
    return stored


def _catch_up_propagation(db: Session, tournament_id: int) -> int:
    """
    Re-push winners whose downstream slots are still empty.

    Covers propagation that failed after an earlier match completed.
    Returns the number of slots filled.
    """
    matches = db.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    by_id = {m.id: m for m in matches}

    pending = set()
    for m in matches:
        for side in ("a", "b"):
            source = m.slot_source(side)
            if source is None or source.kind != SlotSourceType.WINNER_OF_MATCH:
                continue
            upstream = by_id.get(source.match_id)
            if m.team_id(side) is None and upstream is not None and upstream.winner_team_id is not None:
                pending.add(upstream.id)

    filled = 0
    for match_id in sorted(pending):
        filled += propagate_winner(db, by_id[match_id])
    promote_ready_matches(db, tournament_id)

    if filled:
        logger.info("Caught up %s pending slot(s) in tournament %s", filled, tournament_id)
    return filled


def complete_tournament_if_done(db: Session, tournament_id: int) -> CompletionAttempt:
    """
    Push any stranded winners forward, clean up placeholder rounds,
    re-derive completion and mark the tournament completed if the final
    has a winner.

    Returns:
        CompletionAttempt; ``attempted`` is False when the bracket is not finished
    """
    if db.get(Tournament, tournament_id) is None:
        raise NotFound("Tournament", tournament_id)

    warnings: List[str] = []

    try:
        _catch_up_propagation(db, tournament_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Propagation catch-up failed for tournament %s", tournament_id, exc_info=True)
        warnings.append("Winner propagation failed; it will be retried on the next completion check")

    try:
        remove_phantom_matches(db, tournament_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Placeholder cleanup failed for tournament %s", tournament_id, exc_info=True)
        warnings.append("Bracket cleanup failed; it will be retried on the next completion check")

    # Rounds past the last full round are ignored even if cleanup kept them
    matches = within_full_rounds(
        db.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    )
    state = derive_completion(matches)

    # Older rows may be completed with scores but no winner
    if state.final_round is not None:
        finals = [
            m for m in matches
            if m.round == state.final_round
            and m.winner_team_id is None
            and (m.status == MatchStatus.COMPLETED.value or m.finalized_by_admin)
        ]
        for m in finals:
            winner_id = infer_winner_team_id(m)
            if winner_id is None:
                continue
            try:
                _backfill_winner(db, m, winner_id)
            except SQLAlchemyError:
                db.rollback()
                logger.warning("Winner backfill failed for match %s", m.id, exc_info=True)
                warnings.append(f"Could not store winner for match {m.id}")
        state = derive_completion(matches)

    if not state.completed:
        return CompletionAttempt(
            attempted=False,
            completed=False,
            final_round=state.final_round,
            warnings=warnings
        )

    result = db.exec(
        update(Tournament)
        .where(
            Tournament.id == tournament_id,
            Tournament.status != TournamentStatus.COMPLETED.value,
        )
        .values(status=TournamentStatus.COMPLETED.value, ends_at=datetime.now(UTC))
    )
    newly_completed = result.rowcount > 0
    db.commit()

    if newly_completed:
        logger.info("Tournament %s completed after round %s", tournament_id, state.final_round)

    return CompletionAttempt(
        attempted=True,
        completed=True,
        final_round=state.final_round,
        newly_completed=newly_completed,
        warnings=warnings
    )


def on_match_completed(db: Session, match: Match) -> ProgressionReport:
    """Propagate a fresh winner and close out the tournament if it was the final."""
    report = ProgressionReport()
    match_id = match.id
    tournament_id = match.tournament_id

    try:
        propagate_winner(db, match)
        promote_ready_matches(db, tournament_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Propagation failed after match %s completed", match_id, exc_info=True)
        report.warnings.append("Winner propagation failed; it will be retried on the next match event")
        return report

    try:
        attempt = complete_tournament_if_done(db, tournament_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Completion check failed for tournament %s", tournament_id, exc_info=True)
        report.warnings.append("Tournament completion check failed; run it again to close the tournament")
        return report

    report.warnings.extend(attempt.warnings)
    report.tournament_completed = attempt.completed
    return report
