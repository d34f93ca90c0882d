from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..dependencies import Actor, require_admin, require_player
from ..errors import NotFound
from ..models.match import Match
from ..models.tournament import Tournament
from ..services import consensus
from ..services.consensus import MatchUpdate

router = APIRouter(prefix="/api/tournaments/matches")


class ScoreSubmit(BaseModel):
    """Schema for a captain's score submission."""
    match_id: int
    score_a: int
    score_b: int


class ScoreConfirm(BaseModel):
    match_id: int


class AdminFinal(BaseModel):
    """Schema for an administrator override."""
    match_id: int
    score_a: int
    score_b: int


class MatchResponse(BaseModel):
    """Schema for match response."""
    id: int
    tournament_id: int
    round: Optional[int]
    match_no: Optional[int]
    team_a_id: Optional[int]
    team_b_id: Optional[int]
    slot_a_source_type: Optional[str]
    slot_a_source_match_id: Optional[int]
    slot_b_source_type: Optional[str]
    slot_b_source_match_id: Optional[int]
    status: str
    score_a: Optional[int]
    score_b: Optional[int]
    submitted_by: Optional[str]
    submitted_at: Optional[datetime]
    confirmed_by_a: bool
    confirmed_by_b: bool
    winner_team_id: Optional[int]
    finalized_by_admin: bool
    finalized_at: Optional[datetime]
    admin_final_by: Optional[str]
    admin_final_at: Optional[datetime]


class MatchUpdateResponse(BaseModel):
    ok: bool = True
    match: MatchResponse
    completed: bool
    tournament_completed: bool
    warnings: List[str]


def build_update_response(outcome: MatchUpdate) -> MatchUpdateResponse:
    return MatchUpdateResponse(
        match=MatchResponse.model_validate(outcome.match, from_attributes=True),
        completed=outcome.completed,
        tournament_completed=outcome.tournament_completed,
        warnings=outcome.warnings
    )


@router.post("/submit-score", response_model=MatchUpdateResponse)
async def submit_score(
    payload: ScoreSubmit,
    db: Session = Depends(get_session),
    current_actor: Actor = Depends(require_player)
):
    """Submit a score as one of the two captains."""
    outcome = consensus.submit_score(
        db, payload.match_id, current_actor.player_id, payload.score_a, payload.score_b
    )
    return build_update_response(outcome)


@router.post("/confirm-score", response_model=MatchUpdateResponse)
async def confirm_score(
    payload: ScoreConfirm,
    db: Session = Depends(get_session),
    current_actor: Actor = Depends(require_player)
):
    """Confirm the other captain's submitted score."""
    outcome = consensus.confirm_score(db, payload.match_id, current_actor.player_id)
    return build_update_response(outcome)


@router.post("/admin-final", response_model=MatchUpdateResponse)
async def admin_final(
    payload: AdminFinal,
    db: Session = Depends(get_session),
    current_actor: Actor = Depends(require_admin)
):
    """Force a match result as an administrator."""
    match = db.get(Match, payload.match_id)
    if not match:
        raise NotFound("Match", payload.match_id)
    tournament = db.get(Tournament, match.tournament_id)
    if not tournament:
        raise NotFound("Tournament", match.tournament_id)

    outcome = consensus.admin_finalize(
        db,
        payload.match_id,
        current_actor.user_id,
        payload.score_a,
        payload.score_b,
        is_admin=current_actor.can_administer(tournament)
    )
    return build_update_response(outcome)
