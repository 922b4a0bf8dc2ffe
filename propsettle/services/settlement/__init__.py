"""Prediction and parlay settlement services."""
from propsettle.services.settlement.batch_service import ValidationCheckService
from propsettle.services.settlement.completion import CompletionOracle
from propsettle.services.settlement.game_resolver import GameResolver
from propsettle.services.settlement.outcome import evaluate
from propsettle.services.settlement.parlay_settlement import ParlaySettlementService
from propsettle.services.settlement.reconciliation import ReconciliationService
from propsettle.services.settlement.stats_service import ValidationStatsService

__all__ = [
    "ValidationCheckService",
    "CompletionOracle",
    "GameResolver",
    "evaluate",
    "ParlaySettlementService",
    "ReconciliationService",
    "ValidationStatsService",
]
