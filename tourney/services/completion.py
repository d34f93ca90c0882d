"""
Tournament completion detection.

Pure functions over match rows; nothing here reads or writes the database
and nothing is cached. Callers re-evaluate on every relevant event.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from ..models.match import Match, MatchStatus, SlotSourceType


@dataclass(frozen=True)
class CompletionState:
    completed: bool
    final_round: Optional[int]


def _round_of(match: Match) -> int:
    return match.round if match.round and match.round > 0 else 0


def is_bye(match: Match) -> bool:
    """A bye has no real opponent and never counts toward completion."""
    if match.status == MatchStatus.BYE.value:
        return True
    if match.slot_b_source_type == SlotSourceType.BYE.value:
        return True
    # Legacy encoding: no opponent and no recorded source
    return match.team_b_id is None and not match.slot_b_source_type


def is_playable(match: Match) -> bool:
    return _round_of(match) > 0 and not is_bye(match)


def is_done(match: Match) -> bool:
    return (
        match.status == MatchStatus.COMPLETED.value
        or match.finalized_by_admin is True
        or match.winner_team_id is not None
    )


def _is_whole(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def infer_winner_team_id(match: Match) -> Optional[int]:
    """Winner implied by the stored scores, or None when they don't decide one."""
    if match.team_a_id is None or match.team_b_id is None:
        return None
    if match.score_a is None or match.score_b is None:
        return None
    if not _is_whole(match.score_a) or not _is_whole(match.score_b):
        return None
    if match.score_a == match.score_b:
        return None
    return match.team_a_id if match.score_a > match.score_b else match.team_b_id


def has_inferable_winner(match: Match) -> bool:
    if match.winner_team_id is not None:
        return True
    return infer_winner_team_id(match) is not None


def derive_completion(matches: Iterable[Match]) -> CompletionState:
    """
    Decide whether the bracket has produced a champion.

    The final round is the highest round holding a playable match. The
    tournament is complete when every playable match is done and at least
    one final-round match has a winner (stored or implied by its scores).
    """
    playable = [m for m in matches if is_playable(m)]
    if not playable:
        return CompletionState(completed=False, final_round=None)

    final_round = max(_round_of(m) for m in playable)

    if any(not is_done(m) for m in playable):
        return CompletionState(completed=False, final_round=final_round)

    finals = [m for m in playable if _round_of(m) == final_round]
    return CompletionState(
        completed=any(has_inferable_winner(m) for m in finals),
        final_round=final_round
    )
