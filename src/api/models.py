"""Requests and Response models"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Color, Status, TurnPhase

CheckerColor = str
PlayerName = str

MAX_TARGET_SCORE = 25


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    player_name: str
    color: Color
    target_score: Optional[int] = None
    is_rated: bool = False
    use_clock: bool = False
    use_video_chat: bool = False

    @field_validator("target_score")
    @classmethod
    def validate_target_score(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        if not 1 <= value <= MAX_TARGET_SCORE:
            raise InvalidRequestError(
                f"Target score must be between 1 and {MAX_TARGET_SCORE}, got {value}."
            )
        return value


class PlayerRequest(BaseModel):
    """Any request made by a player for a given game."""

    game_id: UUID
    player_name: str
    expected_version: Optional[int] = None


class JoinGameRequest(PlayerRequest):
    pass


class ReadyRequest(PlayerRequest):
    pass


class RollDiceRequest(PlayerRequest):
    pass


class MoveRequest(PlayerRequest):
    from_point: str
    to_point: str

    @field_validator("from_point")
    @classmethod
    def validate_from_point(cls, value: str) -> str:
        return _validate_location(value, allowed_word="bar")

    @field_validator("to_point")
    @classmethod
    def validate_to_point(cls, value: str) -> str:
        return _validate_location(value, allowed_word="off")

    @property
    def notation(self) -> str:
        return f"{self.from_point}/{self.to_point}"


class UndoMoveRequest(PlayerRequest):
    pass


class ConfirmTurnRequest(PlayerRequest):
    pass


class OfferDoubleRequest(PlayerRequest):
    pass


class RespondToDoubleRequest(PlayerRequest):
    accept: bool


class ResignRequest(PlayerRequest):
    pass


class ClaimTimeoutRequest(PlayerRequest):
    pass


class GetGameRequest(BaseModel):
    game_id: UUID


class DeleteGameRequest(BaseModel):
    game_id: UUID


def _validate_location(value: str, allowed_word: str) -> str:
    """A point number 1-24, or the one keyword allowed on this side of the move ('bar' to move from, 'off' to move to)."""
    cleaned = value.strip().lower()
    if cleaned == allowed_word:
        return cleaned
    if cleaned.isdigit() and 1 <= int(cleaned) <= 24:
        return cleaned
    raise InvalidRequestError(
        f"Cannot interpret {value!r} as a point (1-24) or {allowed_word!r}."
    )


# --- RESPONSE MODELS ---
class DieResponse(BaseModel):
    value: int
    used: bool


class ClockResponse(BaseModel):
    time_left: dict[CheckerColor, float]
    delay_seconds_remaining: float
    active: Optional[CheckerColor]


class GameResultResponse(BaseModel):
    game_number: int
    winner: CheckerColor
    result_type: str
    points: int


class GameResponse(BaseModel):
    game_id: UUID
    version: int
    players: dict[CheckerColor, PlayerName]
    status: Status
    phase: TurnPhase
    turn: Optional[Color]
    board: dict
    dice: list[DieResponse]
    moves: list[str]
    legal_moves: list[str]
    pip_counts: dict[CheckerColor, int]
    match: dict
    cube: dict
    clock: Optional[ClockResponse]
    history: list[GameResultResponse]
    opening_rolls: Optional[dict[CheckerColor, int]]
    undo_ready: bool
    end_turn_ready: bool
    can_offer_double: bool
    winner: Optional[PlayerName]


class ErrorResponse(BaseModel):
    code: str
    message: str
    context: dict
