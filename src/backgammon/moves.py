"""
Checker moves, board geometry and the per-turn Move Ledger.

Geometry:
* Teal moves from point 24 down to point 1 (home board 1-6) and bears off below point 1.
* Bone moves from point 1 up to point 24 (home board 19-24) and bears off above point 24.

Everything is expressed in "pips to bear off" so both colors share the same arithmetic:
the bar is 25 pips away from bearing off, a borne off checker is 0 pips away.

Legality is checked later by the rules engine / Game
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.core.exceptions import GameStateError, IllegalMoveError
from src.core.shared_types import Color

BAR = "bar"
OFF = "off"
NUM_POINTS = 24

Location = int | str


def pips_to_off(color: Color, location: Location) -> int:
    """Distance (in pips) from a location to bearing off, seen from the player with the `color` checkers."""
    if location == BAR:
        return NUM_POINTS + 1
    if location == OFF:
        return 0
    assert isinstance(location, int)
    return location if color == Color.TEAL else NUM_POINTS + 1 - location


def point_at(color: Color, pips: int) -> Location:
    """Inverse of pips_to_off (for locations on the board). Anything at or below zero pips is borne off."""
    if pips <= 0:
        return OFF
    return pips if color == Color.TEAL else NUM_POINTS + 1 - pips


def destination(color: Color, source: Location, die: int) -> Location:
    """Where a checker starting at `source` ends up after moving `die` pips. Overshooting the board counts as OFF."""
    return point_at(color, pips_to_off(color, source) - die)


def parse_location(raw: str) -> Location:
    """'bar', 'off', or a point number 1-24"""
    value = raw.strip().lower()
    if value in (BAR, OFF):
        return value
    if not value.isdigit() or not (1 <= int(value) <= NUM_POINTS):
        raise IllegalMoveError(f"Cannot interpret {raw!r} as a point on the board.")
    return int(value)


@dataclass(frozen=True)
class Move:
    """basic definition of a move to be made"""

    from_point: Location
    to_point: Location
    die_used: Optional[int] = None

    @classmethod
    def from_notation(cls, notation: str) -> Self:
        """
        Standard backgammon notation
        ---

        examples:
        * "13/7": move a checker from the 13-point to the 7-point
        * "bar/20": enter a checker from the bar onto the 20-point
        * "6/off": bear off a checker from the 6-point

        A trailing '*' (hit marker) is accepted and ignored: the board decides whether a blot gets hit.
        """
        parts = notation.strip().rstrip("*").split("/")
        if len(parts) != 2:
            raise IllegalMoveError(f"Cannot interpret {notation!r} as a move.")
        from_point = parse_location(parts[0])
        to_point = parse_location(parts[1])
        if from_point == OFF or to_point == BAR:
            raise IllegalMoveError(f"Checkers cannot move from 'off' or to the 'bar': {notation!r}")
        return cls(from_point, to_point)

    def to_notation(self) -> str:
        return f"{self.from_point}/{self.to_point}"

    def distance(self, color: Color) -> int:
        """Number of pips travelled (negative if moving backwards)."""
        return pips_to_off(color, self.from_point) - pips_to_off(color, self.to_point)

    def with_die(self, die: int) -> "Move":
        return Move(self.from_point, self.to_point, die)


@dataclass(frozen=True)
class LedgerEntry:
    """A move that got applied to the board, plus what is needed to revert it."""

    move: Move
    hit: bool = False

    def to_notation(self) -> str:
        return f"{self.move.to_notation()}{'*' if self.hit else ''}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.move.from_point,
            "to": self.move.to_point,
            "die": self.move.die_used,
            "hit": self.hit,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        move = Move(
            from_point=data["from"], to_point=data["to"], die_used=data["die"]
        )
        return cls(move=move, hit=data.get("hit", False))


@dataclass
class MoveLedger:
    """
    Tentative moves of the turn being played.

    Only supports LIFO access: moves get pushed as they are applied and undone by popping the most recent one.
    """

    entries: list[LedgerEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def push(self, entry: LedgerEntry) -> None:
        self.entries.append(entry)

    def pop(self) -> LedgerEntry:
        if not self.entries:
            raise GameStateError("No moves to undo this turn.")
        return self.entries.pop()

    def clear(self) -> None:
        self.entries.clear()

    def to_notation(self) -> list[str]:
        return [entry.to_notation() for entry in self.entries]

    def to_list(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self.entries]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> Self:
        return cls([LedgerEntry.from_dict(item) for item in data])
