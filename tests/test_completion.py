"""Unit tests for the game completion oracle.

Test Strategy:
1. Final-looking status strings, any case
2. Date fallback: games scheduled before the end of yesterday are final
3. Games later than that with a non-final status are not
4. Missing dates and statuses
"""
from datetime import datetime, timedelta, timezone

import pytest

from propsettle.models import Game
from propsettle.services.settlement.completion import (
    CompletionOracle,
    end_of_yesterday,
    has_final_status,
)

NOW = datetime(2025, 10, 20, 15, 0, 0)


def _game(status=None, game_date=None):
    return Game(id="g1", sport="nhl", status=status, game_date=game_date)


@pytest.fixture
def oracle():
    return CompletionOracle(clock=lambda: NOW)


class TestFinalStatus:
    """Status-based completion."""

    @pytest.mark.parametrize("status", ["final", "Final", "COMPLETED", "F", "closed", "post", "ended", " final "])
    def test_final_statuses(self, status):
        assert has_final_status(status) is True

    @pytest.mark.parametrize("status", [None, "", "scheduled", "in_progress", "STATUS_IN_PROGRESS", "postponed"])
    def test_non_final_statuses(self, status):
        assert has_final_status(status) is False

    def test_final_status_wins_over_future_date(self, oracle):
        game = _game(status="final", game_date=NOW + timedelta(days=1))
        assert oracle.is_final(game) is True


class TestDateFallback:
    """Date-based completion for feeds that stop updating status."""

    def test_end_of_yesterday(self):
        assert end_of_yesterday(NOW) == datetime(2025, 10, 19, 23, 59, 59, 999999)

    def test_two_days_ago_in_progress_is_final(self, oracle):
        """A game two days old still marked in progress counts as final."""
        game = _game(status="in_progress", game_date=NOW - timedelta(days=2))
        assert oracle.is_final(game) is True

    def test_yesterday_evening_is_final(self, oracle):
        game = _game(status="scheduled", game_date=datetime(2025, 10, 19, 23, 0))
        assert oracle.is_final(game) is True

    def test_today_not_final(self, oracle):
        game = _game(status="scheduled", game_date=datetime(2025, 10, 20, 0, 30))
        assert oracle.is_final(game) is False

    def test_missing_date_not_final(self, oracle):
        assert oracle.is_final(_game(status="scheduled")) is False

    def test_explicit_now_overrides_clock(self, oracle):
        game = _game(status=None, game_date=datetime(2025, 10, 20, 1, 0))
        assert oracle.is_final(game, now=datetime(2025, 10, 22, 12, 0)) is True

    def test_aware_datetimes_are_compared_in_utc(self, oracle):
        game = _game(status=None, game_date=datetime(2025, 10, 19, 22, 0, tzinfo=timezone.utc))
        assert oracle.is_final(game) is True
