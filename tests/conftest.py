"""
Pytest will auto-discover / import this file called 'conftest.py'. ]
This file defines fixtures/variables required for testing multiple layers.
"""

import random
from typing import Iterator, Sequence
from uuid import UUID, uuid4

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.exceptions import StaleStateError
from src.core.models import GameModel, PlayerStatsModel
from src.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


class ScriptedRandom(random.Random):
    """Dice that roll the values given, in order. Makes games reproducible in tests."""

    def __init__(self, values: list[int]) -> None:
        super().__init__(0)
        self.values = list(values)

    def randint(self, a: int, b: int) -> int:
        if not self.values:
            raise AssertionError("ScriptedRandom ran out of dice values")
        return self.values.pop(0)

    def add(self, *values: int) -> None:
        self.values.extend(values)


class MockRepository:
    """Mock the GameRepository using dictionaries of game models and player stats."""

    def __init__(self) -> None:
        self._games: dict[UUID, GameModel] = {}
        self._stats: dict[str, PlayerStatsModel] = {}

    def create_game(self, game: GameModel) -> tuple[GameModel, UUID]:
        """Store new game and return the stored data + newly created game ID."""
        game_id = uuid4()
        self._games[game_id] = game
        return game, game_id

    def get_game(self, game_id: UUID) -> GameModel | None:
        """Get game by ID, if record exists."""
        return self._games.get(game_id)

    def update_game(
        self,
        game_id: UUID,
        game: GameModel,
        expected_version: int,
        player_stats: Sequence[PlayerStatsModel] = (),
    ) -> GameModel | None:
        """Overwrite existing record, if nobody else wrote to it since `expected_version` was read."""
        stored = self._games.get(game_id)
        if stored is None:
            return None
        if stored.version != expected_version:
            raise StaleStateError(
                "Game state changed while the request was processed.",
                context={"expected_version": expected_version, "current_version": stored.version},
            )
        self._games[game_id] = game
        for stats in player_stats:
            self._stats[stats.player_name] = stats
        return game

    def delete_game(self, game_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        return self._games.pop(game_id, None)

    def get_player_stats(self, player_name: str) -> PlayerStatsModel | None:
        return self._stats.get(player_name)

    def save_player_stats(self, stats: PlayerStatsModel) -> PlayerStatsModel:
        self._stats[stats.player_name] = stats
        return stats

    def clear(self) -> None:
        """Clear the repository (useful in between tests)"""
        self._games.clear()
        self._stats.clear()


@pytest.fixture
def db_session_repo() -> Iterator[Session]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


@pytest.fixture
def mock_repository() -> Iterator[MockRepository]:
    """Ensures to clear the repository between tests"""
    repo = MockRepository()
    try:
        yield repo
    finally:
        repo.clear()


@pytest.fixture
def scripted_rng() -> ScriptedRandom:
    return ScriptedRandom([])
