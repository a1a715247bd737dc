"""Unit tests for src/backgammon/rating.py"""

import pytest

from src.backgammon.rating import DEFAULT_RATING, expected_score, rate_match


def test_expected_score() -> None:
    assert expected_score(1500, 1500) == 0.5
    assert expected_score(1600, 1400) == pytest.approx(0.7597, abs=1e-4)


def test_even_match() -> None:
    assert rate_match(DEFAULT_RATING, DEFAULT_RATING) == (1516, 1484)


def test_underdog_gains_more() -> None:
    assert rate_match(1400, 1600) == (1424, 1576)


def test_favourite_gains_less() -> None:
    assert rate_match(1600, 1400) == (1608, 1392)
