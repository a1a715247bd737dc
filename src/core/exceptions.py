"""
Exception hierarchy shared by all layers.

Every custom exception inherits from GameError so the API layer can catch a single type
and map the subclasses onto HTTP status codes.
"""

from typing import Any


class GameError(Exception):
    """Base exception for anything going wrong while handling a game request."""

    code: str = "game_error"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"code": self.code, "message": self.message, "context": self.context}


# --- DOMAIN ERRORS ---
class GameStateError(GameError):
    """Operation is not legal in the current state of the game (InvalidState)."""

    code = "invalid_state"


class IllegalMoveError(GameStateError):
    """The checker move is not allowed by the rules / the dice."""

    code = "illegal_move"


class UnauthorizedActionError(GameError):
    """The player is not the one allowed to act in the current state (Unauthorized)."""

    code = "unauthorized"


class NotYourTurnError(UnauthorizedActionError):
    code = "not_your_turn"


class NotAPlayerError(UnauthorizedActionError):
    """The requesting player is not registered to this game at all."""

    code = "not_a_player"


# --- SYNCHRONISATION ERRORS ---
class StaleStateError(GameError):
    """The caller's copy of the game is older than the stored one."""

    code = "stale_state"


class RemoteCallError(GameError):
    """Timeout or network failure: the outcome of the call is unknown."""

    code = "remote_call_failed"


class ActionInProgressError(GameError):
    """A mutation is already in flight for this session."""

    code = "action_in_progress"


# --- PERSISTENCE / REQUEST ERRORS ---
class RepositoryError(GameError):
    code = "repository_error"


class GameNotFoundError(RepositoryError):
    code = "not_found"


class InvalidRequestError(GameError):
    code = "invalid_request"
