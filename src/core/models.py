"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
Hence, both the API layer (higher) and domain/db layers (lower) will use model(s) defined here to send to/receive from the Service
(Decouples the data model specific to the DB layer, API layer, or domain layer from the information needed to send across boundaries)
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Type aliases to make GameModel easier to read
CheckerColor = str
PlayerName = str
JSONDict = dict[str, Any]


@dataclass
class GameModel:
    """Transport-safe representation of a backgammon match used between API, Service, DB, and Game layers.

    Nested structures are plain dicts/lists (JSON friendly). Board points use string keys ("1".."24").
    """

    registered_players: dict[CheckerColor, PlayerName]
    status: str
    phase: str
    turn: Optional[str]
    board: JSONDict
    dice: list[JSONDict]
    moves: list[JSONDict]
    match: JSONDict
    cube: JSONDict
    clock: JSONDict
    history: list[JSONDict] = field(default_factory=list)
    opening_rolls: Optional[dict[CheckerColor, int]] = None
    version: int = 0


@dataclass
class PlayerStatsModel:
    """Rating information of a single player."""

    player_name: PlayerName
    rating: int = 1500
    games_played: int = 0
    games_won: int = 0
