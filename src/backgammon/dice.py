"""Dice: rolling, the opening roll, and tracking which dice of a roll have been used."""

import random
from dataclasses import dataclass, field
from typing import Any, Optional, Self

from src.core.exceptions import GameStateError
from src.core.shared_types import Color

DIE_FACES = 6


def roll_die(rng: random.Random) -> int:
    return rng.randint(1, DIE_FACES)


def opening_roll(rng: random.Random) -> dict[Color, int]:
    """Each player rolls a single die. Ties are rolled again, so the result always has a winner."""
    while True:
        teal, bone = roll_die(rng), roll_die(rng)
        if teal != bone:
            return {Color.TEAL: teal, Color.BONE: bone}


@dataclass
class Die:
    value: int
    used: bool = False


@dataclass
class DiceRoll:
    """
    The dice of the turn being played.

    Doubles are expanded into four dice of the same value, otherwise there are two.
    """

    owner: Color
    dice: list[Die] = field(default_factory=list)

    @classmethod
    def from_values(cls, owner: Color, first: int, second: int) -> Self:
        for value in (first, second):
            if not 1 <= value <= DIE_FACES:
                raise GameStateError(f"Invalid die value: {value}")
        values = [first] * 4 if first == second else [first, second]
        return cls(owner, [Die(value) for value in values])

    @classmethod
    def roll(cls, owner: Color, rng: random.Random) -> Self:
        return cls.from_values(owner, roll_die(rng), roll_die(rng))

    @property
    def faces(self) -> tuple[int, int]:
        """The two faces actually shown on the dice."""
        return (self.dice[0].value, self.dice[-1].value)

    @property
    def is_doubles(self) -> bool:
        return len(self.dice) == 4

    @property
    def all_used(self) -> bool:
        return all(die.used for die in self.dice)

    def unused_values(self) -> list[int]:
        return [die.value for die in self.dice if not die.used]

    def find_unused(self, value: int) -> Optional[Die]:
        return next((die for die in self.dice if die.value == value and not die.used), None)

    def use(self, value: int) -> None:
        die = self.find_unused(value)
        if die is None:
            raise GameStateError(f"No unused die showing {value}.")
        die.used = True

    def restore(self, value: int) -> None:
        """Mark the most recently used die with this value as unused again."""
        die = next(
            (die for die in reversed(self.dice) if die.value == value and die.used),
            None,
        )
        if die is None:
            raise GameStateError(f"No used die showing {value} to restore.")
        die.used = False

    def to_list(self) -> list[dict[str, Any]]:
        return [{"value": die.value, "used": die.used} for die in self.dice]

    @classmethod
    def from_list(cls, owner: Color, data: list[dict[str, Any]]) -> Optional[Self]:
        if not data:
            return None
        return cls(owner, [Die(int(item["value"]), bool(item["used"])) for item in data])
