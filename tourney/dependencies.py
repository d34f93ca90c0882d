from dataclasses import dataclass
from typing import Optional
from fastapi import Request, Depends, HTTPException, status

from .config import USER_ID_HEADER, PLAYER_ID_HEADER, ROLE_HEADER, CLUB_ID_HEADER
from .models.tournament import Tournament, TournamentScope

SUPER_ADMIN_ROLE = "super_admin"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Actor:
    """Identity asserted by the upstream auth gateway."""

    user_id: str
    player_id: Optional[str] = None
    role: str = ""
    club_id: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role in (SUPER_ADMIN_ROLE, ADMIN_ROLE)

    def can_administer(self, tournament: Tournament) -> bool:
        """Super admins manage everything; club admins only their own club's tournaments."""
        if self.is_super_admin:
            return True
        if not self.is_admin or not self.club_id:
            return False
        return (
            tournament.scope == TournamentScope.CLUB.value
            and tournament.club_id == self.club_id
        )


async def get_current_actor(request: Request) -> Optional[Actor]:
    """Read the authenticated identity from gateway headers."""
    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id:
        return None

    return Actor(
        user_id=user_id,
        player_id=request.headers.get(PLAYER_ID_HEADER) or None,
        role=(request.headers.get(ROLE_HEADER) or "").lower(),
        club_id=request.headers.get(CLUB_ID_HEADER) or None
    )


async def require_actor(
    current_actor: Optional[Actor] = Depends(get_current_actor)
) -> Actor:
    """Require an authenticated caller."""
    if not current_actor:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return current_actor


async def require_player(
    current_actor: Actor = Depends(require_actor)
) -> Actor:
    """Require a caller with a player profile."""
    if not current_actor.player_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not resolve your player profile"
        )
    return current_actor


async def require_admin(
    current_actor: Actor = Depends(require_actor)
) -> Actor:
    """Require an admin caller; tournament scope is checked per request."""
    if not current_actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_actor
