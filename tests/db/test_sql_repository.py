"""Unit tests for src/db/sql_repository.py"""

from dataclasses import replace
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from src.backgammon.game import Game
from src.core.exceptions import StaleStateError
from src.core.models import GameModel, PlayerStatsModel
from src.core.shared_types import Color, Status
from src.db.sql_repository import SQLGameRepository


@pytest.fixture
def model() -> GameModel:
    """A freshly opened match with a clock."""
    return Game.new_game("player_teal", "teal", use_clock=True).to_model()


def test_create_game(db_session_repo: Session, model: GameModel) -> None:
    """Conversion from a GameModel to DBGameSession for a new entry to the database."""
    repo = SQLGameRepository(db_session_repo)
    record_in_db, game_id = repo.create_game(model)
    assert isinstance(record_in_db, GameModel)
    assert record_in_db == model
    assert game_id is not None


def test_get_game_by_id(db_session_repo: Session, model: GameModel) -> None:
    """Create a game, then fetch it from db."""
    repo = SQLGameRepository(db_session_repo)
    expected_game, game_id = repo.create_game(model)
    game_found = repo.get_game(game_id)
    assert isinstance(game_found, GameModel)
    assert game_found == expected_game


def test_get_unknown_game(db_session_repo: Session, model: GameModel) -> None:
    """
    Should return None if ID does not match anything in database.

    NOTE with an empty database, any id is a valid test case.
    """
    repo = SQLGameRepository(db_session_repo)
    assert repo.get_game(uuid4()) is None

    # Now do it with creating a game, but retrieving from the wrong ID
    repo.create_game(model)
    assert repo.get_game(uuid4()) is None


def test_update_game(db_session_repo: Session, model: GameModel) -> None:
    """Every column of the model is written back, nested JSON included."""
    repo = SQLGameRepository(db_session_repo)
    _, game_id = repo.create_game(model)

    game = Game.from_model(model)
    game.register_player("player_bone")
    game.match.set_ready(Color.TEAL)
    game.version = 1
    updated_model = game.to_model()
    updated_model.moves = [{"from": "bar", "to": 20, "die": 5, "hit": True}]

    updated = repo.update_game(game_id, updated_model, expected_version=0)
    assert updated == updated_model

    game_found = repo.get_game(game_id)
    assert game_found == updated_model
    assert game_found.registered_players == {"teal": "player_teal", "bone": "player_bone"}
    assert game_found.version == 1


def test_update_unknown_game(db_session_repo: Session, model: GameModel) -> None:
    repo = SQLGameRepository(db_session_repo)
    assert repo.update_game(uuid4(), model, expected_version=0) is None


def test_update_game_written_since_read(db_session_repo: Session, model: GameModel) -> None:
    """A write based on an older version is refused and leaves the record and ratings as they were."""
    repo = SQLGameRepository(db_session_repo)
    _, game_id = repo.create_game(model)
    first = replace(model, phase="rolled", version=1)
    repo.update_game(game_id, first, expected_version=0)

    second = replace(model, phase="moves_pending", version=1)
    stats = PlayerStatsModel(player_name="player_teal", rating=1516, games_played=1, games_won=1)
    with pytest.raises(StaleStateError) as exc_info:
        repo.update_game(game_id, second, expected_version=0, player_stats=[stats])
    assert exc_info.value.context == {"expected_version": 0, "current_version": 1}

    assert repo.get_game(game_id) == first
    assert repo.get_player_stats("player_teal") is None


def test_update_game_stores_player_stats(db_session_repo: Session, model: GameModel) -> None:
    repo = SQLGameRepository(db_session_repo)
    _, game_id = repo.create_game(model)
    stats = [
        PlayerStatsModel(player_name="player_teal", rating=1516, games_played=1, games_won=1),
        PlayerStatsModel(player_name="player_bone", rating=1484, games_played=1, games_won=0),
    ]

    repo.update_game(game_id, replace(model, version=1), expected_version=0, player_stats=stats)
    assert repo.get_game(game_id).version == 1
    assert repo.get_player_stats("player_teal") == stats[0]
    assert repo.get_player_stats("player_bone") == stats[1]


def test_delete_game(db_session_repo: Session, model: GameModel) -> None:
    repo = SQLGameRepository(db_session_repo)
    _, game_id = repo.create_game(model)

    deleted = repo.delete_game(game_id)
    assert deleted == model
    assert deleted.status == Status.WAITING_FOR_START
    assert repo.get_game(game_id) is None
    assert repo.delete_game(game_id) is None


# -- PLAYER STATS --
def test_player_stats(db_session_repo: Session) -> None:
    repo = SQLGameRepository(db_session_repo)
    assert repo.get_player_stats("newcomer") is None

    repo.save_player_stats(PlayerStatsModel(player_name="newcomer", rating=1516, games_played=1, games_won=1))
    assert repo.get_player_stats("newcomer") == PlayerStatsModel(
        player_name="newcomer", rating=1516, games_played=1, games_won=1
    )

    repo.save_player_stats(PlayerStatsModel(player_name="newcomer", rating=1500, games_played=2, games_won=1))
    stats = repo.get_player_stats("newcomer")
    assert stats is not None
    assert (stats.rating, stats.games_played) == (1500, 2)
