"""
Move legality.

The Game only knows which dice are left and which moves were made. Whether a single checker move is allowed
is delegated to a RulesEngine so a stricter engine (forced plays, maximal dice usage) can be plugged in.
"""

from typing import Protocol

from src.backgammon.board import BoardPosition
from src.backgammon.moves import BAR, OFF, Location, Move, destination, pips_to_off
from src.core.shared_types import Color


class RulesEngine(Protocol):
    """What the Game needs from a rules engine"""

    def is_legal(self, board: BoardPosition, color: Color, move: Move, die: int) -> bool:
        """Can `color` play `move` using a die showing `die`?"""
        ...

    def has_legal_move(self, board: BoardPosition, color: Color, dice: list[int]) -> bool:
        """Is there at least one move playable with any of the given dice?"""
        ...

    def legal_moves(self, board: BoardPosition, color: Color, dice: list[int]) -> list[Move]: ...


class StandardRules:
    """
    Single checker moves under the standard rules
    ----

    * A checker on the bar must enter before anything else moves.
    * A point holding two or more opposing checkers is blocked. A single opposing checker (a blot) gets hit.
    * Bearing off requires all checkers in the home board. A die larger than needed may only bear off
      the checker that is farthest from home.

    NOTE: forced-play rules (use both dice if possible, otherwise the larger one) are not enforced.
    """

    def is_legal(self, board: BoardPosition, color: Color, move: Move, die: int) -> bool:
        if not self._can_move_from(board, color, move.from_point):
            return False

        if move.to_point == OFF:
            return self._can_bear_off(board, color, move.from_point, die)

        target = destination(color, move.from_point, die)
        if target != move.to_point:
            return False
        assert isinstance(target, int)
        return not board.is_blocked(target, color)

    def has_legal_move(self, board: BoardPosition, color: Color, dice: list[int]) -> bool:
        for die in set(dice):
            for source in self._sources(board, color):
                candidate = Move(source, destination(color, source, die))
                if self.is_legal(board, color, candidate, die):
                    return True
        return False

    def legal_moves(self, board: BoardPosition, color: Color, dice: list[int]) -> list[Move]:
        """Every single checker move available with the given dice (used to show hints to the player)."""
        moves: list[Move] = []
        for die in sorted(set(dice), reverse=True):
            for source in self._sources(board, color):
                candidate = Move(source, destination(color, source, die), die)
                if self.is_legal(board, color, candidate, die) and candidate not in moves:
                    moves.append(candidate)
        return moves

    # -- PRIVATE HELPERS ---
    def _sources(self, board: BoardPosition, color: Color) -> list[Location]:
        if board.bar[color] > 0:
            return [BAR]
        return list(board.occupied_points(color))

    def _can_move_from(self, board: BoardPosition, color: Color, source: Location) -> bool:
        if board.bar[color] > 0:
            return source == BAR
        if source == BAR:
            return False
        assert isinstance(source, int)
        return board.checkers_on(source, color) > 0

    def _can_bear_off(self, board: BoardPosition, color: Color, source: Location, die: int) -> bool:
        if source == BAR or not board.all_home(color):
            return False
        needed = pips_to_off(color, source)
        if die == needed:
            return True
        if die < needed:
            return False
        # overshooting: only allowed if no checker sits farther away from home
        return all(
            pips_to_off(color, point) <= needed for point in board.occupied_points(color)
        )
