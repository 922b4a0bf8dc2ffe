"""
Settlement models.

Usage:
    from propsettle.models import Game, Prediction, Parlay, ParlayLeg
"""

from propsettle.models.models import (
    Base,
    Game,
    Prediction,
    Parlay,
    ParlayLeg,
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_NEEDS_REVIEW,
    STATUS_MANUAL_CLOSED,
    PREDICTION_STATUSES,
    ALLOWED_TRANSITIONS,
    RESULT_CORRECT,
    RESULT_INCORRECT,
    RESULT_PUSH,
    OUTCOME_PENDING,
    OUTCOME_WON,
    OUTCOME_LOST,
)

__all__ = [
    "Base",
    "Game",
    "Prediction",
    "Parlay",
    "ParlayLeg",
    "STATUS_PENDING",
    "STATUS_COMPLETED",
    "STATUS_NEEDS_REVIEW",
    "STATUS_MANUAL_CLOSED",
    "PREDICTION_STATUSES",
    "ALLOWED_TRANSITIONS",
    "RESULT_CORRECT",
    "RESULT_INCORRECT",
    "RESULT_PUSH",
    "OUTCOME_PENDING",
    "OUTCOME_WON",
    "OUTCOME_LOST",
]
