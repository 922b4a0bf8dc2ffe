"""
Parlay settlement.

Runs after the prediction sweep and rolls evaluated leg predictions up into
parlay outcomes:

- lost as soon as any resolved leg lost, even while other legs are pending
- won once every leg resolved and none lost
- otherwise pending, with nothing written

Only a ``correct`` prediction wins its leg; ``incorrect`` and ``push`` both
lose it.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from propsettle.core import metrics
from propsettle.core.logging import get_logger
from propsettle.models import (
    Parlay,
    ParlayLeg,
    Prediction,
    STATUS_COMPLETED,
    RESULT_CORRECT,
    OUTCOME_PENDING,
    OUTCOME_WON,
    OUTCOME_LOST,
)
from propsettle.repositories import ParlayRepository, PredictionRepository
from propsettle.services.settlement.outcome import format_value

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class LegResolution:
    """A leg with its matched prediction; ``won`` is None while unresolved."""
    leg: ParlayLeg
    prediction: Optional[Prediction] = None

    @property
    def won(self) -> Optional[bool]:
        if self.prediction is None:
            return None
        return self.prediction.result == RESULT_CORRECT


def aggregate_outcome(resolutions: List[LegResolution]) -> str:
    """Parlay outcome for a set of leg resolutions."""
    if any(r.won is False for r in resolutions):
        return OUTCOME_LOST
    if resolutions and all(r.won is True for r in resolutions):
        return OUTCOME_WON
    return OUTCOME_PENDING


class ParlaySettlementService:
    """
    Settle pending parlays from their legs' completed predictions.

    Usage:
        summary = ParlaySettlementService(db).settle_pending_parlays()
    """

    def __init__(self, db: Session, now: Callable[[], datetime] = _utcnow):
        self.db = db
        self.parlays = ParlayRepository(db)
        self.predictions = PredictionRepository(db)
        self.now = now

    def settle_pending_parlays(self) -> Dict[str, int]:
        """
        Settle every pending parlay that can be settled.

        Returns:
            {validated, won, lost, pending}
        """
        pending_parlays = self.parlays.find_pending()
        won = lost = 0

        for parlay in pending_parlays:
            parlay_id = parlay.id
            try:
                outcome = self.settle_parlay(parlay)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to settle parlay {parlay_id}: {e}", exc_info=True)
                continue

            if outcome == OUTCOME_WON:
                won += 1
            elif outcome == OUTCOME_LOST:
                lost += 1

        validated = won + lost
        summary = {
            "validated": validated,
            "won": won,
            "lost": lost,
            "pending": len(pending_parlays) - validated,
        }
        logger.info(f"Parlay settlement: {summary}")
        return summary

    def settle_parlay(self, parlay: Parlay) -> str:
        """Settle one parlay and commit; returns its (possibly unchanged) outcome."""
        legs = self.parlays.find_legs(parlay.id)
        if not legs:
            logger.warning(f"Parlay {parlay.id} has no legs; leaving pending")
            return OUTCOME_PENDING

        resolutions = [LegResolution(leg, self.match_prediction(parlay, leg)) for leg in legs]
        outcome = aggregate_outcome(resolutions)
        if outcome == OUTCOME_PENDING:
            return outcome

        now = self.now()
        for resolution in resolutions:
            if resolution.won is None:
                continue
            leg = resolution.leg
            leg.outcome = OUTCOME_WON if resolution.won else OUTCOME_LOST
            leg.actual_result = self._actual_note(resolution.prediction)
            leg.updated_at = now

        parlay.status = outcome
        parlay.outcome = outcome
        parlay.updated_at = now
        if outcome == OUTCOME_WON:
            parlay.actual_result = f"All {len(legs)} legs won"
        else:
            lost_legs = [str(r.leg.leg_order) for r in resolutions if r.won is False]
            parlay.actual_result = f"Lost on leg(s): {', '.join(lost_legs)}"

        self.db.commit()
        metrics.parlays_settled_total.labels(status=outcome).inc()
        logger.info(f"Parlay {parlay.id} settled {outcome}: {parlay.actual_result}")
        return outcome

    def match_prediction(self, parlay: Parlay, leg: ParlayLeg) -> Optional[Prediction]:
        """
        The completed prediction backing ``leg``, or None if unresolved.

        A leg's own prediction_id wins. Otherwise legs are joined on
        (parlay_id, player_name, prop_type, threshold); several matches that
        disagree on result leave the leg unresolved.
        """
        if leg.prediction_id:
            prediction = self.predictions.find_by_id(leg.prediction_id)
            if prediction is not None and prediction.status == STATUS_COMPLETED:
                return prediction
            return None

        matches = self.predictions.find_completed_for_leg(
            parlay.id, leg.player_name, leg.prop_type, leg.threshold
        )
        if not matches:
            return None

        results = {m.result for m in matches}
        if len(results) > 1:
            logger.warning(
                f"Parlay {parlay.id} leg {leg.leg_order} matches {len(matches)} predictions "
                f"with conflicting results {sorted(results)}; leaving unresolved"
            )
            return None
        return matches[0]

    @staticmethod
    def _actual_note(prediction: Prediction) -> str:
        if prediction.actual_value is None:
            return f"Result: {prediction.result}"
        return f"Actual: {format_value(prediction.actual_value)}"

    def get_parlay_stats(self) -> Dict[str, Any]:
        """Parlay counts: total, pending, won, lost."""
        counts = self.parlays.count_by_status()
        return {
            "total": sum(counts.values()),
            "pending": counts.get(OUTCOME_PENDING, 0),
            "won": counts.get(OUTCOME_WON, 0),
            "lost": counts.get(OUTCOME_LOST, 0),
        }
