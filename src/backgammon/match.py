"""
Match state and score keeping.

A match is played to `target_score` points. After every game the winner's points get added, and the
Crawford rule is applied: the first time either player is one point away from winning the match, the next
game is played without the doubling cube. This happens at most once per match.
"""

from dataclasses import dataclass, fields
from typing import Any, Optional, Self

from src.core.exceptions import GameStateError
from src.core.shared_types import Color


@dataclass
class MatchState:
    target_score: int = 7
    player_teal_score: int = 0
    player_bone_score: int = 0
    is_rated: bool = False
    use_clock: bool = False
    use_video_chat: bool = False
    is_crawford_game: bool = False
    crawford_game_played: bool = False
    player_teal_ready: bool = False
    player_bone_ready: bool = False
    game_number: int = 1
    winner: Optional[Color] = None

    def __post_init__(self) -> None:
        if self.target_score < 1:
            raise GameStateError(f"Target score must be at least 1, got {self.target_score}")

    @property
    def is_complete(self) -> bool:
        return self.winner is not None

    @property
    def both_ready(self) -> bool:
        return self.player_teal_ready and self.player_bone_ready

    def score(self, color: Color) -> int:
        return self.player_teal_score if color == Color.TEAL else self.player_bone_score

    def is_ready(self, color: Color) -> bool:
        return self.player_teal_ready if color == Color.TEAL else self.player_bone_ready

    def set_ready(self, color: Color) -> None:
        if color == Color.TEAL:
            self.player_teal_ready = True
        else:
            self.player_bone_ready = True

    def record_game_result(self, winner: Color, points: int) -> bool:
        """
        Add the points of a finished game and return True if this decided the match.
        ----

        1. add the points to the winner's score
        2. target reached? --> match over
        3. the game just played was the Crawford game? --> consume it, no more Crawford games this match
        4. otherwise, if either player now needs a single point --> next game is the Crawford game
        """
        if self.is_complete:
            raise GameStateError("Match is already decided.")
        if points < 1:
            raise GameStateError(f"A game is worth at least one point, got {points}")

        self._add_points(winner, points)
        if self.score(winner) >= self.target_score:
            self.winner = winner
            self.is_crawford_game = False
            return True

        if self.is_crawford_game:
            self.is_crawford_game = False
            self.crawford_game_played = True
        elif not self.crawford_game_played and self._anyone_at_match_point():
            self.is_crawford_game = True

        self.game_number += 1
        return False

    def award_match(self, winner: Color, points: int) -> None:
        """Match ends early (resignation): winner gets the points and the match regardless of the target."""
        if self.is_complete:
            raise GameStateError("Match is already decided.")
        self._add_points(winner, points)
        self.winner = winner
        self.is_crawford_game = False

    def _add_points(self, color: Color, points: int) -> None:
        if color == Color.TEAL:
            self.player_teal_score += points
        else:
            self.player_bone_score += points

    def _anyone_at_match_point(self) -> bool:
        return self.target_score - 1 in (self.player_teal_score, self.player_bone_score)

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["winner"] = self.winner.value if self.winner else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        if values.get("winner"):
            values["winner"] = Color(values["winner"])
        return cls(**values)
