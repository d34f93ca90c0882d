from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from ..database import get_session
from ..dependencies import Actor, require_actor, require_admin
from ..errors import NotAdmin, NotFound, WrongState
from ..models.match import Match
from ..models.tournament import Tournament, TournamentStatus
from ..services.cleanup import within_full_rounds
from ..services.completion import derive_completion
from ..services.progression import complete_tournament_if_done

router = APIRouter(prefix="/api/tournaments")


class TournamentComplete(BaseModel):
    tournament_id: int


class CompletionResponse(BaseModel):
    ok: bool = True
    completed: bool
    already_completed: bool
    final_round: Optional[int]
    completed_at: Optional[datetime]
    warnings: List[str]


class CompletionStatusResponse(BaseModel):
    tournament_id: int
    status: str
    completed: bool
    final_round: Optional[int]


def get_tournament(db: Session, tournament_id: int) -> Tournament:
    tournament = db.get(Tournament, tournament_id)
    if not tournament:
        raise NotFound("Tournament", tournament_id)
    return tournament


@router.post("/complete", response_model=CompletionResponse)
async def complete_tournament(
    payload: TournamentComplete,
    db: Session = Depends(get_session),
    current_actor: Actor = Depends(require_admin)
):
    """Close out a tournament whose final has a winner."""
    tournament = get_tournament(db, payload.tournament_id)
    if not current_actor.can_administer(tournament):
        raise NotAdmin()

    already_completed = tournament.status == TournamentStatus.COMPLETED.value
    attempt = complete_tournament_if_done(db, payload.tournament_id)

    if not attempt.completed and not already_completed:
        raise WrongState("Final is not complete yet (winner required before completing tournament).")

    db.refresh(tournament)
    return CompletionResponse(
        completed=True,
        already_completed=already_completed,
        final_round=attempt.final_round,
        completed_at=tournament.ends_at,
        warnings=attempt.warnings
    )


@router.get("/{tournament_id}/completion", response_model=CompletionStatusResponse)
async def get_completion(
    tournament_id: int,
    db: Session = Depends(get_session),
    current_actor: Actor = Depends(require_actor)
):
    """Report whether the bracket has produced a champion, without writing anything."""
    tournament = get_tournament(db, tournament_id)
    matches = db.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    state = derive_completion(within_full_rounds(matches))

    return CompletionStatusResponse(
        tournament_id=tournament_id,
        status=tournament.status,
        completed=state.completed,
        final_round=state.final_round
    )
