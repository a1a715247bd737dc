"""Implementation of (Game)Repository using SQLAlchemy"""

from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.core.exceptions import StaleStateError
from src.core.models import GameModel, PlayerStatsModel
from src.db.schema import DBGameSession, DBPlayerStats

# Columns that are copied one-to-one between GameModel and DBGameSession
GAME_FIELDS = (
    "registered_players",
    "status",
    "phase",
    "turn",
    "board",
    "dice",
    "moves",
    "match",
    "cube",
    "clock",
    "history",
    "opening_rolls",
    "version",
)


class SQLGameRepository:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        game_db = self._fetch_game(game_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""

        new_id = uuid4()
        game_db = DBGameSession(
            id=new_id, **{name: getattr(game, name) for name in GAME_FIELDS}
        )
        self.db.add(game_db)
        self.db.commit()
        self.db.refresh(game_db)
        return self._to_model(game_db), new_id

    def update_game(
        self,
        game_id: UUID,
        game: GameModel,
        expected_version: int,
        player_stats: Sequence[PlayerStatsModel] = (),
    ) -> GameModel | None:
        """
        Compare-and-set write of an existing record
        ----
        The UPDATE only matches while the stored version equals `expected_version`, so of two writers
        that read the same version only the first one commits. Player stats are committed with it.
        """
        query = (
            update(DBGameSession)
            .where(DBGameSession.id == game_id, DBGameSession.version == expected_version)
            .values(**{name: getattr(game, name) for name in GAME_FIELDS})
        )
        result = self.db.execute(query)
        if result.rowcount == 0:
            self.db.rollback()
            game_db = self._fetch_game(game_id)
            if not game_db:
                return None
            raise StaleStateError(
                "Game state changed while the request was processed. Refresh and try again.",
                context={
                    "expected_version": expected_version,
                    "current_version": game_db.version,
                },
            )

        for stats in player_stats:
            self._stage_player_stats(stats)
        self.db.commit()
        game_db = self._fetch_game(game_id)
        assert game_db is not None
        return self._to_model(game_db)

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        game_db = self._fetch_game(game_id)
        if not game_db:
            return None
        game_model = self._to_model(game_db)
        self.db.delete(game_db)
        self.db.commit()
        return game_model

    def get_player_stats(self, player_name: str) -> PlayerStatsModel | None:
        stats_db = self.db.get(DBPlayerStats, player_name)
        if stats_db is None:
            return None
        return PlayerStatsModel(
            player_name=stats_db.player_name,
            rating=stats_db.rating,
            games_played=stats_db.games_played,
            games_won=stats_db.games_won,
        )

    def save_player_stats(self, stats: PlayerStatsModel) -> PlayerStatsModel:
        self._stage_player_stats(stats)
        self.db.commit()
        return stats

    def _stage_player_stats(self, stats: PlayerStatsModel) -> None:
        """Add / overwrite the stats row in the session without committing."""
        stats_db = self.db.get(DBPlayerStats, stats.player_name)
        if stats_db is None:
            stats_db = DBPlayerStats(player_name=stats.player_name)
            self.db.add(stats_db)
        stats_db.rating = stats.rating
        stats_db.games_played = stats.games_played
        stats_db.games_won = stats.games_won

    def _fetch_game(self, game_id: UUID) -> DBGameSession | None:
        query = select(DBGameSession).where(DBGameSession.id == game_id)
        return self.db.scalar(query)

    def _to_model(self, game_db: DBGameSession) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(**{name: getattr(game_db, name) for name in GAME_FIELDS})
