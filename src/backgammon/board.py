"""The board holds the position: checkers on the 24 points, on the bar and borne off."""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.backgammon.moves import BAR, NUM_POINTS, OFF, Location, Move, pips_to_off
from src.core.exceptions import GameStateError, IllegalMoveError
from src.core.shared_types import Color

CHECKERS_PER_PLAYER = 15

HOME_BOARD: dict[Color, range] = {
    Color.TEAL: range(1, 7),
    Color.BONE: range(19, NUM_POINTS + 1),
}

STARTING_POSITION: dict[int, tuple[Color, int]] = {
    24: (Color.TEAL, 2),
    13: (Color.TEAL, 5),
    8: (Color.TEAL, 3),
    6: (Color.TEAL, 5),
    1: (Color.BONE, 2),
    12: (Color.BONE, 5),
    17: (Color.BONE, 3),
    19: (Color.BONE, 5),
}


@dataclass
class PointStack:
    color: Color
    count: int


def _per_color(value: int = 0) -> dict[Color, int]:
    return {color: value for color in Color}


@dataclass
class BoardPosition:
    points: dict[int, PointStack] = field(default_factory=dict)
    bar: dict[Color, int] = field(default_factory=_per_color)
    borne_off: dict[Color, int] = field(default_factory=_per_color)

    @classmethod
    def starting_position(cls) -> Self:
        return cls(
            points={
                point: PointStack(color, count)
                for point, (color, count) in STARTING_POSITION.items()
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Stored layout:
        {"points": {"24": {"color": "teal", "count": 2}, ...}, "bar": {"teal": 0, "bone": 0}, "borne_off": {...}}
        """
        points = {
            int(point): PointStack(Color(stack["color"]), int(stack["count"]))
            for point, stack in data.get("points", {}).items()
            if int(stack["count"]) > 0
        }
        bar = {color: int(data.get("bar", {}).get(color.value, 0)) for color in Color}
        borne_off = {
            color: int(data.get("borne_off", {}).get(color.value, 0)) for color in Color
        }
        board = cls(points, bar, borne_off)
        if not board.is_valid():
            raise GameStateError(
                f"Invalid board: every player must have {CHECKERS_PER_PLAYER} checkers.",
                context={color.value: board.count_checkers(color) for color in Color},
            )
        return board

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": {
                str(point): {"color": stack.color.value, "count": stack.count}
                for point, stack in sorted(self.points.items())
            },
            "bar": {color.value: count for color, count in self.bar.items()},
            "borne_off": {color.value: count for color, count in self.borne_off.items()},
        }

    # --- QUERIES ---
    def owner(self, point: int) -> Optional[Color]:
        stack = self.points.get(point)
        return stack.color if stack else None

    def checkers_on(self, point: int, color: Color) -> int:
        stack = self.points.get(point)
        if stack is None or stack.color != color:
            return 0
        return stack.count

    def occupied_points(self, color: Color) -> list[int]:
        return sorted(
            point for point, stack in self.points.items() if stack.color == color
        )

    def count_checkers(self, color: Color) -> int:
        on_points = sum(
            stack.count for stack in self.points.values() if stack.color == color
        )
        return on_points + self.bar[color] + self.borne_off[color]

    def is_valid(self) -> bool:
        return all(
            self.count_checkers(color) == CHECKERS_PER_PLAYER for color in Color
        )

    def all_home(self, color: Color) -> bool:
        """Can this player bear off? Only if nothing is on the bar or outside the home board."""
        if self.bar[color] > 0:
            return False
        return all(point in HOME_BOARD[color] for point in self.occupied_points(color))

    def has_checker_in_home_of(self, color: Color, home_owner: Color) -> bool:
        return any(
            point in HOME_BOARD[home_owner] for point in self.occupied_points(color)
        )

    def pip_count(self, color: Color) -> int:
        on_points = sum(
            pips_to_off(color, point) * self.checkers_on(point, color)
            for point in self.occupied_points(color)
        )
        return on_points + self.bar[color] * pips_to_off(color, BAR)

    def is_blocked(self, point: int, color: Color) -> bool:
        """A point with two or more opposing checkers cannot be landed on."""
        return self.checkers_on(point, color.opponent) >= 2

    def is_bearing_off_complete(self, color: Color) -> bool:
        return self.borne_off[color] == CHECKERS_PER_PLAYER

    # --- UPDATES ---
    def move_checker(self, color: Color, move: Move) -> bool:
        """
        Update the position and report whether an opposing blot got hit.

        No rules are checked here besides the physical ones: a checker must be there to be moved,
        and it cannot land on a point held by two or more opposing checkers.
        """
        if move.to_point != OFF:
            assert isinstance(move.to_point, int)
            if self.is_blocked(move.to_point, color):
                raise IllegalMoveError(f"Point {move.to_point} is blocked.")
        self._take_from(color, move.from_point)
        hit = False
        if move.to_point == OFF:
            self.borne_off[color] += 1
        else:
            assert isinstance(move.to_point, int)
            if self.checkers_on(move.to_point, color.opponent) == 1:
                self._remove(move.to_point)
                self.bar[color.opponent] += 1
                hit = True
            self._place(move.to_point, color)
        return hit

    def revert_checker(self, color: Color, move: Move, hit: bool) -> None:
        """Exact inverse of move_checker"""
        if move.to_point == OFF:
            if self.borne_off[color] == 0:
                raise GameStateError("No borne off checker to bring back.")
            self.borne_off[color] -= 1
        else:
            assert isinstance(move.to_point, int)
            self._take_from(color, move.to_point)
            if hit:
                self.bar[color.opponent] -= 1
                self._place(move.to_point, color.opponent)

        if move.from_point == BAR:
            self.bar[color] += 1
        else:
            assert isinstance(move.from_point, int)
            self._place(move.from_point, color)

    def _take_from(self, color: Color, location: Location) -> None:
        if location == BAR:
            if self.bar[color] == 0:
                raise IllegalMoveError(f"No {color} checker on the bar.")
            self.bar[color] -= 1
            return
        assert isinstance(location, int)
        if self.checkers_on(location, color) == 0:
            raise IllegalMoveError(f"No {color} checker on point {location}.")
        self._remove(location)

    def _remove(self, point: int) -> None:
        stack = self.points[point]
        stack.count -= 1
        if stack.count == 0:
            del self.points[point]

    def _place(self, point: int, color: Color) -> None:
        stack = self.points.get(point)
        if stack is None:
            self.points[point] = PointStack(color, 1)
        elif stack.color == color:
            stack.count += 1
        else:
            raise GameStateError(
                f"Point {point} is occupied by {stack.color}, cannot place a {color} checker."
            )
