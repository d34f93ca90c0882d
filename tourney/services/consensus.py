"""
Two-captain score consensus with administrator override.

A captain submits a score, which confirms their own side and resets the
other side. The opposing captain confirms, which completes the match. An
administrator can force a result from any non-terminal state.

Every write is a single conditional UPDATE keyed on the state the checks
were made against. If another request changed the row in between, the
update matches nothing and the operation fails; nothing is retried here.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Dict, List, Tuple
from sqlalchemy import update
from sqlmodel import Session

from ..errors import (
    AlreadyConfirmed,
    AlreadyFinalized,
    InvalidScore,
    NoScoreSubmitted,
    NotAdmin,
    NotFound,
    SelfConfirmation,
    TiedScoreNotAllowed,
    WrongState,
)
from ..models.match import Match, MatchStatus
from .captains import captain_sides, resolve_captains
from .progression import on_match_completed

logger = logging.getLogger(__name__)


@dataclass
class MatchUpdate:
    """Result of a consensus operation."""

    match: Match
    completed: bool = False
    tournament_completed: bool = False
    warnings: List[str] = field(default_factory=list)


def validate_scores(score_a: Any, score_b: Any) -> Tuple[int, int]:
    """Scores must be whole numbers >= 0."""
    for score in (score_a, score_b):
        if isinstance(score, bool) or not isinstance(score, int):
            raise InvalidScore()
        if score < 0:
            raise InvalidScore()
    return score_a, score_b


def get_match(db: Session, match_id: int) -> Match:
    match = db.get(Match, match_id)
    if not match:
        raise NotFound("Match", match_id)
    return match


def _require_teams(match: Match) -> None:
    if match.team_a_id is None or match.team_b_id is None:
        raise WrongState("Match teams are not set")


def _compare_and_set(db: Session, match_id: int, expected: list, values: Dict[str, Any]) -> Match:
    """Apply ``values`` only if the row still satisfies ``expected``."""
    values["updated_at"] = datetime.now(UTC)
    result = db.exec(
        update(Match)
        .where(Match.id == match_id, *expected)
        .values(**values)
    )

    if result.rowcount == 0:
        db.rollback()
        current = db.get(Match, match_id)
        if current is None:
            raise NotFound("Match", match_id)
        logger.info("Conditional update on match %s lost to a concurrent change", match_id)
        if current.finalized_by_admin:
            raise AlreadyFinalized("Match was finalized by an administrator")
        raise WrongState("Match changed while this action was in progress; reload and try again")

    db.commit()
    return get_match(db, match_id)


def _progress(db: Session, outcome: MatchUpdate) -> MatchUpdate:
    report = on_match_completed(db, outcome.match)
    outcome.tournament_completed = report.tournament_completed
    outcome.warnings.extend(report.warnings)
    return outcome


def submit_score(db: Session, match_id: int, actor_id: str, score_a: int, score_b: int) -> MatchUpdate:
    """
    Record a captain's score submission.

    The submitting side is confirmed and the other side must confirm again,
    even if it had confirmed an earlier submission. Status is unchanged.

    Raises:
        InvalidScore, NotFound, AlreadyFinalized, WrongState,
        CaptainsUnresolved, NotCaptain
    """
    score_a, score_b = validate_scores(score_a, score_b)
    match = get_match(db, match_id)

    if match.finalized_by_admin:
        raise AlreadyFinalized("Match was finalized by an administrator")
    if match.status != MatchStatus.IN_PLAY.value:
        raise WrongState("Scores can only be submitted while the match is in play")
    _require_teams(match)

    captains = resolve_captains(db, match.team_a_id, match.team_b_id)
    is_a, is_b = captain_sides(captains, actor_id)

    now = datetime.now(UTC)
    updated = _compare_and_set(
        db,
        match.id,
        expected=[
            Match.status == MatchStatus.IN_PLAY.value,
            Match.finalized_by_admin == False,  # noqa: E712
            Match.team_a_id == match.team_a_id,
            Match.team_b_id == match.team_b_id,
        ],
        values={
            "score_a": score_a,
            "score_b": score_b,
            "submitted_by": actor_id,
            "submitted_at": now,
            "confirmed_by_a": is_a,
            "confirmed_by_b": is_b,
            # Stale admin-final markers never survive a fresh submission
            "finalized_by_admin": False,
            "finalized_at": None,
            "admin_final_by": None,
            "admin_final_at": None,
        },
    )

    logger.info("Player %s submitted %s-%s for match %s", actor_id, score_a, score_b, match_id)
    return MatchUpdate(match=updated)


def confirm_score(db: Session, match_id: int, actor_id: str) -> MatchUpdate:
    """
    Confirm the opposing captain's submission.

    When both sides are confirmed the match completes, the higher score
    wins and the winner is propagated downstream.

    Raises:
        NotFound, AlreadyFinalized, NoScoreSubmitted, WrongState,
        CaptainsUnresolved, NotCaptain, SelfConfirmation, AlreadyConfirmed,
        TiedScoreNotAllowed
    """
    match = get_match(db, match_id)

    if match.finalized_by_admin:
        raise AlreadyFinalized("Match was finalized by an administrator")
    if match.score_a is None or match.score_b is None:
        raise NoScoreSubmitted()
    if not match.submitted_by:
        raise NoScoreSubmitted("Score has not been submitted by a captain")
    _require_teams(match)

    captains = resolve_captains(db, match.team_a_id, match.team_b_id)
    is_a, is_b = captain_sides(captains, actor_id)

    submitter = match.submitted_by
    if actor_id == submitter:
        raise SelfConfirmation()
    side = "a" if is_a else "b"
    if submitter == captains[0 if side == "a" else 1]:
        raise SelfConfirmation("The other captain must confirm")

    confirmed_a = match.confirmed_by_a
    confirmed_b = match.confirmed_by_b
    if (confirmed_a if side == "a" else confirmed_b):
        raise AlreadyConfirmed(f"Team {side.upper()} already confirmed")

    confirm_column = Match.confirmed_by_a if side == "a" else Match.confirmed_by_b
    expected = [
        Match.finalized_by_admin == False,  # noqa: E712
        Match.status == match.status,
        Match.submitted_by == submitter,
        Match.score_a == match.score_a,
        Match.score_b == match.score_b,
        confirm_column == False,  # noqa: E712
    ]
    values: Dict[str, Any] = {f"confirmed_by_{side}": True}

    completes = (side == "a" or confirmed_a) and (side == "b" or confirmed_b)
    if completes:
        if match.score_a == match.score_b:
            raise TiedScoreNotAllowed(
                "Scores are tied. A winner is required to finalise; resubmit or ask an administrator."
            )
        winner_id = match.team_a_id if match.score_a > match.score_b else match.team_b_id
        values.update(
            status=MatchStatus.COMPLETED.value,
            finalized_at=datetime.now(UTC),
            winner_team_id=winner_id,
        )
        expected.append(Match.winner_team_id.is_(None))

    updated = _compare_and_set(db, match.id, expected=expected, values=values)
    outcome = MatchUpdate(match=updated, completed=completes)

    if not completes:
        logger.info("Player %s confirmed side %s of match %s", actor_id, side, match_id)
        return outcome

    logger.info("Match %s completed by consensus, winner team %s", match_id, updated.winner_team_id)
    return _progress(db, outcome)


def admin_finalize(
    db: Session,
    match_id: int,
    admin_id: str,
    score_a: int,
    score_b: int,
    *,
    is_admin: bool
) -> MatchUpdate:
    """
    Force a match result, overriding any unconfirmed submission.

    ``is_admin`` is the caller's decision that ``admin_id`` administers
    this match's tournament.

    Raises:
        NotAdmin, InvalidScore, TiedScoreNotAllowed, NotFound,
        WrongState, AlreadyFinalized
    """
    if not is_admin:
        raise NotAdmin()
    score_a, score_b = validate_scores(score_a, score_b)
    if score_a == score_b:
        raise TiedScoreNotAllowed()

    match = get_match(db, match_id)
    _require_teams(match)
    if match.status in (MatchStatus.COMPLETED.value, MatchStatus.BYE.value) or match.winner_team_id is not None:
        raise AlreadyFinalized("Match already has a final result")

    winner_id = match.team_a_id if score_a > score_b else match.team_b_id
    now = datetime.now(UTC)
    updated = _compare_and_set(
        db,
        match.id,
        expected=[
            Match.status == match.status,
            Match.winner_team_id.is_(None),
            Match.team_a_id == match.team_a_id,
            Match.team_b_id == match.team_b_id,
        ],
        values={
            "score_a": score_a,
            "score_b": score_b,
            "confirmed_by_a": True,
            "confirmed_by_b": True,
            "finalized_by_admin": True,
            "finalized_at": now,
            "admin_final_by": admin_id,
            "admin_final_at": now,
            "status": MatchStatus.COMPLETED.value,
            "winner_team_id": winner_id,
        },
    )

    logger.info("Admin %s finalized match %s at %s-%s, winner team %s", admin_id, match_id, score_a, score_b, winner_id)
    return _progress(db, MatchUpdate(match=updated, completed=True))
