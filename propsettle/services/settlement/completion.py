"""
Game completion checks.

A game counts as final when its status says so, or when it was scheduled
before the end of yesterday (UTC). Many free feeds stop updating status
after tip-off, so the date rule catches games the status rule misses; it may
also call a postponed game final, which later surfaces as needs_review.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from propsettle.models import Game

FINAL_STATUSES = frozenset({"final", "completed", "f", "closed", "post", "ended"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def end_of_yesterday(now: datetime) -> datetime:
    """23:59:59.999999 on the day before ``now``."""
    yesterday = now - timedelta(days=1)
    return yesterday.replace(hour=23, minute=59, second=59, microsecond=999999)


def has_final_status(status: Optional[str]) -> bool:
    """Whether a free-text status means the game is over."""
    return bool(status) and status.strip().lower() in FINAL_STATUSES


class CompletionOracle:
    """
    Decide whether a game is over.

    Usage:
        oracle = CompletionOracle()
        if oracle.is_final(game):
            ...
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        """
        Args:
            clock: Returns the current naive UTC time
        """
        self.clock = clock

    def is_final(self, game: Game, now: Optional[datetime] = None) -> bool:
        if has_final_status(game.status):
            return True
        if game.game_date is None:
            return False
        now = _as_naive_utc(now or self.clock())
        return _as_naive_utc(game.game_date) < end_of_yesterday(now)
