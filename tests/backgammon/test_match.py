"""Unit tests for src/backgammon/match.py"""

import pytest

from src.backgammon.match import MatchState
from src.core.exceptions import GameStateError
from src.core.shared_types import Color


def test_invalid_target_score() -> None:
    with pytest.raises(GameStateError):
        MatchState(target_score=0)


def test_readiness() -> None:
    match = MatchState()
    match.set_ready(Color.BONE)
    assert match.is_ready(Color.BONE)
    assert not match.both_ready
    match.set_ready(Color.TEAL)
    assert match.both_ready


def test_points_are_added_to_the_winner() -> None:
    match = MatchState(target_score=7)
    assert not match.record_game_result(Color.BONE, 2)
    assert match.score(Color.BONE) == 2
    assert match.score(Color.TEAL) == 0
    assert match.game_number == 2
    assert not match.is_complete


def test_reaching_the_target_ends_the_match() -> None:
    match = MatchState(target_score=5, player_teal_score=3)
    assert match.record_game_result(Color.TEAL, 4)
    assert match.winner == Color.TEAL
    assert match.is_complete
    assert match.player_teal_score == 7

    with pytest.raises(GameStateError):
        match.record_game_result(Color.BONE, 1)


def test_game_is_worth_at_least_a_point() -> None:
    with pytest.raises(GameStateError):
        MatchState().record_game_result(Color.TEAL, 0)


# -- CRAWFORD RULE --
def test_crawford_game_follows_reaching_match_point() -> None:
    match = MatchState(target_score=5, player_teal_score=2)
    match.record_game_result(Color.TEAL, 2)
    assert match.is_crawford_game


def test_crawford_game_is_played_only_once() -> None:
    """Teal leads 6-3 in a 7 point match: the next game is the Crawford game, and afterwards never again."""
    match = MatchState(target_score=7, player_teal_score=5, player_bone_score=3)
    match.record_game_result(Color.TEAL, 1)
    assert match.is_crawford_game

    # bone wins the Crawford game
    match.record_game_result(Color.BONE, 1)
    assert match.score(Color.BONE) == 4
    assert not match.is_crawford_game
    assert match.crawford_game_played

    # teal is still one point away, but the Crawford game has been used up
    match.record_game_result(Color.BONE, 1)
    assert not match.is_crawford_game
    assert not match.is_complete


def test_crawford_game_starts_once_a_player_is_at_match_point() -> None:
    """Teal leads 6-3 in a 7 point match and the Crawford game is still to come."""
    match = MatchState(target_score=7, player_teal_score=6, player_bone_score=3)
    assert not match.record_game_result(Color.BONE, 1)
    assert match.score(Color.BONE) == 4
    assert match.is_crawford_game
    assert not match.crawford_game_played


def test_trailer_reaching_match_point_after_crawford() -> None:
    match = MatchState(
        target_score=7, player_teal_score=6, player_bone_score=3, crawford_game_played=True
    )
    match.record_game_result(Color.BONE, 3)
    assert not match.is_crawford_game


def test_leader_wins_the_crawford_game() -> None:
    match = MatchState(target_score=7, player_teal_score=6, is_crawford_game=True)
    assert match.record_game_result(Color.TEAL, 1)
    assert match.winner == Color.TEAL
    assert not match.is_crawford_game


# -- RESIGNATION --
def test_award_match() -> None:
    match = MatchState(target_score=7, player_bone_score=1)
    match.award_match(Color.BONE, 2)
    assert match.winner == Color.BONE
    assert match.score(Color.BONE) == 3

    with pytest.raises(GameStateError):
        match.award_match(Color.TEAL, 1)


def test_storage_round_trip() -> None:
    match = MatchState(
        target_score=5,
        player_teal_score=4,
        is_rated=True,
        is_crawford_game=True,
        game_number=3,
    )
    stored = match.to_dict()
    assert stored["winner"] is None
    assert stored["is_crawford_game"] is True
    assert MatchState.from_dict(stored) == match

    match.award_match(Color.TEAL, 1)
    assert MatchState.from_dict(match.to_dict()).winner == Color.TEAL
