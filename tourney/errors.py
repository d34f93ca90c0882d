"""
Structured failures for bracket operations.

Every error carries a stable machine-readable ``code``, a human-readable
``message`` and the HTTP status the API layer answers with. Services raise
these; ``main.py`` turns them into JSON responses of the form::

    {"success": false, "error": "WrongState", "code": "WRONG_STATE", "message": "..."}
"""

from typing import Any, Dict, Optional
from fastapi import status


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    NOT_FOUND = "NOT_FOUND"

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SCORE = "INVALID_SCORE"

    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_CAPTAIN = "NOT_CAPTAIN"
    NOT_ADMIN = "NOT_ADMIN"

    WRONG_STATE = "WRONG_STATE"
    ALREADY_FINALIZED = "ALREADY_FINALIZED"
    NO_SCORE_SUBMITTED = "NO_SCORE_SUBMITTED"
    SELF_CONFIRMATION = "SELF_CONFIRMATION"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"

    TIED_SCORE_NOT_ALLOWED = "TIED_SCORE_NOT_ALLOWED"
    CAPTAINS_UNRESOLVED = "CAPTAINS_UNRESOLVED"
    NO_CAPTAIN = "NO_CAPTAIN"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class BracketError(Exception):
    """Base exception for every failure a bracket operation can report."""

    code = ErrorCode.INVALID_INPUT
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Bracket operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": False,
            "error": self.kind,
            "code": self.code,
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFound(BracketError):
    code = ErrorCode.NOT_FOUND
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(message)


class InvalidInput(BracketError):
    code = ErrorCode.INVALID_INPUT
    default_message = "Invalid input"


class InvalidScore(InvalidInput):
    code = ErrorCode.INVALID_SCORE
    default_message = "Scores must be whole numbers >= 0"


class Unauthorized(BracketError):
    code = ErrorCode.UNAUTHORIZED
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotCaptain(Unauthorized):
    code = ErrorCode.NOT_CAPTAIN
    default_message = "Captain access required"


class NotAdmin(Unauthorized):
    code = ErrorCode.NOT_ADMIN
    default_message = "Admin access required for this tournament"


class WrongState(BracketError):
    code = ErrorCode.WRONG_STATE
    http_status = status.HTTP_409_CONFLICT
    default_message = "Match is not in a state that allows this action"


class AlreadyFinalized(WrongState):
    code = ErrorCode.ALREADY_FINALIZED
    default_message = "Match has already been finalized"


class NoScoreSubmitted(WrongState):
    code = ErrorCode.NO_SCORE_SUBMITTED
    default_message = "No score has been submitted yet"


class SelfConfirmation(WrongState):
    code = ErrorCode.SELF_CONFIRMATION
    default_message = "Submitting captain cannot confirm their own score"


class AlreadyConfirmed(WrongState):
    code = ErrorCode.ALREADY_CONFIRMED
    default_message = "Score already confirmed by this side"


class TiedScoreNotAllowed(BracketError):
    code = ErrorCode.TIED_SCORE_NOT_ALLOWED
    default_message = "Scores are tied. A winner is required to finalise."


class CaptainsUnresolved(BracketError):
    code = ErrorCode.CAPTAINS_UNRESOLVED
    default_message = "Could not resolve captains for both teams"


class NoCaptain(CaptainsUnresolved):
    code = ErrorCode.NO_CAPTAIN
    default_message = "Team has no members to act as captain"
