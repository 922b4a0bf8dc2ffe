"""
Repository layer for data access.

Usage:
    from propsettle.repositories import GameRepository, PredictionRepository
    from propsettle.core.database import SessionLocal

    db = SessionLocal()
    game = GameRepository(db).find_by_external_id("espn_game_id", "401547417")
    db.close()
"""

from propsettle.repositories.base import BaseRepository
from propsettle.repositories.game_repository import GameRepository, EXTERNAL_ID_FIELDS
from propsettle.repositories.prediction_repository import PredictionRepository
from propsettle.repositories.parlay_repository import ParlayRepository

__all__ = [
    "BaseRepository",
    "GameRepository",
    "EXTERNAL_ID_FIELDS",
    "PredictionRepository",
    "ParlayRepository",
]
