"""
Type definitions used across layers
"""

from enum import StrEnum


class Status(StrEnum):
    WAITING_FOR_START = "waiting_for_start"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Color(StrEnum):
    TEAL = "teal"
    BONE = "bone"

    @property
    def opponent(self) -> "Color":
        return Color.BONE if self == Color.TEAL else Color.TEAL


class TurnPhase(StrEnum):
    AWAITING_ROLL = "awaiting_roll"
    ROLLED = "rolled"
    MOVES_PENDING = "moves_pending"
    DOUBLE_OFFERED = "double_offered"
    GAME_OVER = "game_over"


class CubeOwner(StrEnum):
    CENTER = "center"
    TEAL = "teal"
    BONE = "bone"


class ResultType(StrEnum):
    SINGLE = "single"
    GAMMON = "gammon"
    BACKGAMMON = "backgammon"
    DOUBLE_DECLINED = "double_declined"
    RESIGNATION = "resignation"
    TIMEOUT = "timeout"


# Points multiplier of a game won by bearing off (multiplied again by the cube value)
RESULT_MULTIPLIER: dict[ResultType, int] = {
    ResultType.SINGLE: 1,
    ResultType.GAMMON: 2,
    ResultType.BACKGAMMON: 3,
}
