"""Unit tests for src/backgammon/moves.py"""

import pytest

from src.backgammon.moves import (
    BAR,
    OFF,
    LedgerEntry,
    Move,
    MoveLedger,
    destination,
    pips_to_off,
)
from src.core.exceptions import GameStateError, IllegalMoveError
from src.core.shared_types import Color


# -- GEOMETRY --
@pytest.mark.parametrize(
    "color, location, expected",
    [
        (Color.TEAL, 6, 6),
        (Color.TEAL, 24, 24),
        (Color.BONE, 19, 6),
        (Color.BONE, 1, 24),
        (Color.TEAL, BAR, 25),
        (Color.BONE, BAR, 25),
        (Color.TEAL, OFF, 0),
    ],
)
def test_pips_to_off(color: Color, location: int | str, expected: int) -> None:
    assert pips_to_off(color, location) == expected


@pytest.mark.parametrize(
    "color, source, die, expected",
    [
        (Color.TEAL, 13, 6, 7),
        (Color.BONE, 1, 6, 7),
        (Color.TEAL, BAR, 3, 22),
        (Color.BONE, BAR, 3, 3),
        (Color.TEAL, 3, 5, OFF),
        (Color.BONE, 22, 3, OFF),
    ],
)
def test_destination(color: Color, source: int | str, die: int, expected: int | str) -> None:
    """Teal runs down the board, bone runs up. Overshooting the last point bears off."""
    assert destination(color, source, die) == expected


# -- NOTATION --
@pytest.mark.parametrize(
    "notation, expected",
    [
        ("13/7", Move(13, 7)),
        ("bar/20", Move(BAR, 20)),
        ("BAR/3", Move(BAR, 3)),
        ("6/off", Move(6, OFF)),
        ("13/7*", Move(13, 7)),
        (" 8/5 ", Move(8, 5)),
    ],
)
def test_from_notation(notation: str, expected: Move) -> None:
    assert Move.from_notation(notation) == expected


@pytest.mark.parametrize(
    "notation", ["13-7", "25/3", "0/3", "off/3", "13/bar", "x/3", "13/7/1", ""]
)
def test_from_notation_rejects_garbage(notation: str) -> None:
    with pytest.raises(IllegalMoveError):
        Move.from_notation(notation)


def test_to_notation_round_trip() -> None:
    for notation in ("13/7", "bar/20", "6/off"):
        assert Move.from_notation(notation).to_notation() == notation


@pytest.mark.parametrize(
    "color, notation, expected",
    [
        (Color.TEAL, "13/7", 6),
        (Color.BONE, "1/7", 6),
        (Color.TEAL, "bar/20", 5),
        (Color.BONE, "bar/3", 3),
        (Color.TEAL, "3/off", 3),
        (Color.TEAL, "7/13", -6),
    ],
)
def test_distance(color: Color, notation: str, expected: int) -> None:
    """Distance is counted in the direction the player moves (negative = backwards)."""
    assert Move.from_notation(notation).distance(color) == expected


def test_with_die_keeps_the_squares() -> None:
    move = Move(13, 7).with_die(6)
    assert move == Move(13, 7, 6)


# -- LEDGER --
def test_ledger_entry_marks_hits() -> None:
    assert LedgerEntry(Move(13, 7, 6), hit=True).to_notation() == "13/7*"
    assert LedgerEntry(Move(13, 7, 6)).to_notation() == "13/7"


def test_ledger_is_last_in_first_out() -> None:
    ledger = MoveLedger()
    first = LedgerEntry(Move(13, 8, 5))
    second = LedgerEntry(Move(24, 21, 3), hit=True)
    ledger.push(first)
    ledger.push(second)

    assert len(ledger) == 2
    assert ledger.to_notation() == ["13/8", "24/21*"]
    assert ledger.pop() == second
    assert ledger.pop() == first
    assert len(ledger) == 0


def test_pop_empty_ledger() -> None:
    with pytest.raises(GameStateError):
        MoveLedger().pop()


def test_ledger_storage_format() -> None:
    ledger = MoveLedger([LedgerEntry(Move(BAR, 22, 3), hit=True), LedgerEntry(Move(3, OFF, 5))])
    stored = ledger.to_list()
    assert stored == [
        {"from": "bar", "to": 22, "die": 3, "hit": True},
        {"from": 3, "to": "off", "die": 5, "hit": False},
    ]
    assert MoveLedger.from_list(stored) == ledger
