"""Protocol repository (implemented with SQLAlchemy, mocked with a dict in the service tests)"""

from typing import Protocol, Sequence
from uuid import UUID

from src.core.models import GameModel, PlayerStatsModel


class GameRepository(Protocol):
    """Persistence layer orchestration"""

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        ...

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        ...

    def update_game(
        self,
        game_id: UUID,
        game: GameModel,
        expected_version: int,
        player_stats: Sequence[PlayerStatsModel] = (),
    ) -> GameModel | None:
        """
        Overwrite an existing record, but only while its stored version is still `expected_version`.
        Player stats passed along are written in the same transaction.
        Raises StaleStateError if another write got there first.
        """
        ...

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...

    def get_player_stats(self, player_name: str) -> PlayerStatsModel | None:
        """Rating record of a player, if they ever finished a rated match."""
        ...

    def save_player_stats(self, stats: PlayerStatsModel) -> PlayerStatsModel:
        """Create or overwrite a player's rating record."""
        ...
