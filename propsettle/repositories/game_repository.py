"""
Game Repository.

Implements the game query interface settlement relies on: lookup by
canonical id, by an external id column, and by external id plus sport.
"""
from typing import Optional

from propsettle.models import Game
from propsettle.repositories.base import BaseRepository

# Columns that may hold a provider-specific game id
EXTERNAL_ID_FIELDS = ("mlb_game_id", "espn_game_id", "odds_api_event_id")


class GameRepository(BaseRepository[Game]):
    """Repository for game lookups."""

    def __init__(self, db):
        super().__init__(Game, db)

    def find_by_external_id(self, field: str, value: str) -> Optional[Game]:
        """
        Find the game carrying ``value`` in external id column ``field``.

        Only an unambiguous match counts: if the id appears on several games
        (ids reused across sports), None is returned.
        """
        column = self._external_column(field)
        return self.where_unique(column == str(value))

    def find_by_external_id_and_sport(self, field: str, value: str, sport: str) -> Optional[Game]:
        """Find the game with ``value`` in ``field`` restricted to ``sport``."""
        column = self._external_column(field)
        return self.where_unique(column == str(value), Game.sport == sport.lower())

    def _external_column(self, field: str):
        if field not in EXTERNAL_ID_FIELDS:
            raise ValueError(f"Unknown external id field: {field}")
        return getattr(Game, field)
