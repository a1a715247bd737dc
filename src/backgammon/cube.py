"""
Doubling cube.

The cube starts in the center with value 1. A player may offer a double before rolling if the cube is centered
or they own it. Taking the double doubles the value and hands ownership to the player who took it.
Passing concedes the current game at the stake shown before the double.
"""

from dataclasses import dataclass
from typing import Any, Optional, Self

from src.core.exceptions import GameStateError
from src.core.shared_types import Color, CubeOwner

MAX_CUBE_VALUE = 64


@dataclass
class DoublingCube:
    value: int = 1
    owner: CubeOwner = CubeOwner.CENTER
    offered_by: Optional[Color] = None

    @property
    def is_offer_pending(self) -> bool:
        return self.offered_by is not None

    def may_use(self, color: Color) -> bool:
        """Centered cube: either player may double. Otherwise only the owner."""
        return self.owner == CubeOwner.CENTER or self.owner == CubeOwner(color.value)

    def offer_block_reason(
        self, color: Color, target_score: int, is_crawford_game: bool
    ) -> Optional[str]:
        """Why `color` may not offer a double right now (None if the offer is allowed)."""
        if is_crawford_game:
            return "No doubling during the Crawford game."
        if self.is_offer_pending:
            return "A double is already being offered."
        if self.value >= target_score or self.value >= MAX_CUBE_VALUE:
            return f"Cube value {self.value} already covers the match target of {target_score}."
        if not self.may_use(color):
            return "Only the owner of the cube can offer a redouble."
        return None

    def offer(self, color: Color, target_score: int, is_crawford_game: bool) -> None:
        reason = self.offer_block_reason(color, target_score, is_crawford_game)
        if reason:
            raise GameStateError(f"Cannot offer a double. {reason}")
        self.offered_by = color

    def accept(self) -> None:
        """The player who did not offer takes the cube at twice the value."""
        if self.offered_by is None:
            raise GameStateError("No double is being offered.")
        self.value *= 2
        self.owner = CubeOwner(self.offered_by.opponent.value)
        self.offered_by = None

    def decline(self) -> int:
        """Returns the stake conceded by passing (the value before the double)."""
        if self.offered_by is None:
            raise GameStateError("No double is being offered.")
        self.offered_by = None
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "owner": self.owner.value,
            "offered_by": self.offered_by.value if self.offered_by else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        if not data:
            return cls()
        offered_by = data.get("offered_by")
        return cls(
            value=int(data.get("value", 1)),
            owner=CubeOwner(data.get("owner") or CubeOwner.CENTER),
            offered_by=Color(offered_by) if offered_by else None,
        )
