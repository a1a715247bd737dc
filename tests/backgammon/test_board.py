"""Unit tests for src/backgammon/board.py"""

import pytest

from src.backgammon.board import CHECKERS_PER_PLAYER, BoardPosition, PointStack
from src.backgammon.moves import BAR, OFF, Move
from src.core.exceptions import GameStateError, IllegalMoveError
from src.core.shared_types import Color


@pytest.fixture
def blot_board() -> BoardPosition:
    """A teal checker on the 13-point, a lone bone checker on the 7-point and two on the 5-point."""
    return BoardPosition(
        points={
            13: PointStack(Color.TEAL, 1),
            7: PointStack(Color.BONE, 1),
            5: PointStack(Color.BONE, 2),
        }
    )


# -- CREATION / STORAGE --
def test_starting_position() -> None:
    board = BoardPosition.starting_position()
    assert board.is_valid()
    for color in Color:
        assert board.count_checkers(color) == CHECKERS_PER_PLAYER
        assert board.pip_count(color) == 167
    assert board.checkers_on(24, Color.TEAL) == 2
    assert board.checkers_on(19, Color.BONE) == 5
    assert board.owner(20) is None


def test_storage_round_trip() -> None:
    board = BoardPosition.starting_position()
    stored = board.to_dict()
    assert stored["points"]["13"] == {"color": "teal", "count": 5}
    assert stored["bar"] == {"teal": 0, "bone": 0}
    assert BoardPosition.from_dict(stored) == board


def test_from_dict_rejects_wrong_checker_count() -> None:
    stored = BoardPosition.starting_position().to_dict()
    stored["points"]["13"]["count"] = 4
    with pytest.raises(GameStateError):
        BoardPosition.from_dict(stored)


# -- QUERIES --
def test_all_home() -> None:
    assert not BoardPosition.starting_position().all_home(Color.TEAL)

    home = BoardPosition(points={6: PointStack(Color.TEAL, 10), 1: PointStack(Color.TEAL, 5)})
    assert home.all_home(Color.TEAL)

    home.bar[Color.TEAL] = 1
    assert not home.all_home(Color.TEAL)


def test_blocked_points(blot_board: BoardPosition) -> None:
    assert blot_board.is_blocked(5, Color.TEAL)
    assert not blot_board.is_blocked(7, Color.TEAL)
    assert not blot_board.is_blocked(13, Color.BONE)


def test_has_checker_in_home_of() -> None:
    board = BoardPosition(points={3: PointStack(Color.BONE, 1), 20: PointStack(Color.BONE, 14)})
    assert board.has_checker_in_home_of(Color.BONE, Color.TEAL)
    assert not board.has_checker_in_home_of(Color.TEAL, Color.BONE)


def test_pip_count_includes_bar() -> None:
    board = BoardPosition(points={6: PointStack(Color.TEAL, 2)}, bar={Color.TEAL: 1, Color.BONE: 0})
    assert board.pip_count(Color.TEAL) == 2 * 6 + 25


# -- UPDATES --
def test_move_checker() -> None:
    board = BoardPosition.starting_position()
    hit = board.move_checker(Color.TEAL, Move(13, 7))
    assert not hit
    assert board.checkers_on(13, Color.TEAL) == 4
    assert board.checkers_on(7, Color.TEAL) == 1


def test_hitting_a_blot_and_reverting(blot_board: BoardPosition) -> None:
    hit = blot_board.move_checker(Color.TEAL, Move(13, 7))
    assert hit
    assert blot_board.owner(7) == Color.TEAL
    assert blot_board.bar[Color.BONE] == 1
    assert blot_board.owner(13) is None

    blot_board.revert_checker(Color.TEAL, Move(13, 7), hit)
    assert blot_board.checkers_on(13, Color.TEAL) == 1
    assert blot_board.checkers_on(7, Color.BONE) == 1
    assert blot_board.bar[Color.BONE] == 0


def test_enter_and_bear_off_are_reverted() -> None:
    board = BoardPosition(
        points={3: PointStack(Color.TEAL, 1)}, bar={Color.TEAL: 1, Color.BONE: 0}
    )
    board.move_checker(Color.TEAL, Move(BAR, 22))
    board.move_checker(Color.TEAL, Move(3, OFF))
    assert board.bar[Color.TEAL] == 0
    assert board.borne_off[Color.TEAL] == 1

    board.revert_checker(Color.TEAL, Move(3, OFF), False)
    board.revert_checker(Color.TEAL, Move(BAR, 22), False)
    assert board == BoardPosition(
        points={3: PointStack(Color.TEAL, 1)}, bar={Color.TEAL: 1, Color.BONE: 0}
    )


def test_cannot_move_from_empty_point() -> None:
    board = BoardPosition.starting_position()
    with pytest.raises(IllegalMoveError):
        board.move_checker(Color.TEAL, Move(20, 18))
    with pytest.raises(IllegalMoveError):
        board.move_checker(Color.TEAL, Move(BAR, 20))


def test_cannot_land_on_blocked_point(blot_board: BoardPosition) -> None:
    """The board stays untouched when the destination is held by the opponent."""
    with pytest.raises(IllegalMoveError):
        blot_board.move_checker(Color.TEAL, Move(13, 5))
    assert blot_board.checkers_on(13, Color.TEAL) == 1
    assert blot_board.checkers_on(5, Color.BONE) == 2


def test_bearing_off_complete() -> None:
    board = BoardPosition(borne_off={Color.TEAL: 15, Color.BONE: 0})
    assert board.is_bearing_off_complete(Color.TEAL)
    assert not board.is_bearing_off_complete(Color.BONE)
