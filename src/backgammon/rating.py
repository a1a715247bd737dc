"""Elo rating update applied when a rated match is completed."""

import math

K_FACTOR = 32
DEFAULT_RATING = 1500


def expected_score(rating: int, opponent_rating: int) -> float:
    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def calculate_elo(rating: int, opponent_rating: int, score: float) -> int:
    """New rating after a match. `score` is 1 for a win, 0 for a loss. Rounds half up."""
    new_rating = rating + K_FACTOR * (score - expected_score(rating, opponent_rating))
    return math.floor(new_rating + 0.5)


def rate_match(winner_rating: int, loser_rating: int) -> tuple[int, int]:
    """(new winner rating, new loser rating)"""
    return (
        calculate_elo(winner_rating, loser_rating, 1),
        calculate_elo(loser_rating, winner_rating, 0),
    )
