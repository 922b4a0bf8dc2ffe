"""
Reconciliation of predictions stuck in needs_review.

Actions:
- requeue: back to pending when the game resolves and is final, so the
  next sweep retries the stat lookup
- close_missing: to manual_closed when the game reference resolves to nothing
- close_final_no_stats: to manual_closed when the game is final but the stat
  never appeared

Each move appends a timestamped marker to the notes and is committed on its
own. Rows whose current status does not allow the move are skipped, as are
rows that fail unexpectedly (rolled back and logged).
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from sqlalchemy.orm import Session

from propsettle.core import metrics
from propsettle.core.exceptions import InvalidTransition
from propsettle.core.logging import get_logger, log_event
from propsettle.models import (
    ALLOWED_TRANSITIONS,
    Prediction,
    STATUS_NEEDS_REVIEW,
    STATUS_PENDING,
    STATUS_MANUAL_CLOSED,
)
from propsettle.repositories import GameRepository, PredictionRepository
from propsettle.services.settlement.completion import CompletionOracle
from propsettle.services.settlement.game_resolver import GameResolver

logger = get_logger(__name__)

ACTION_REQUEUE = "requeue"
ACTION_CLOSE_MISSING = "close_missing"
ACTION_CLOSE_FINAL_NO_STATS = "close_final_no_stats"
ACTIONS = (ACTION_REQUEUE, ACTION_CLOSE_MISSING, ACTION_CLOSE_FINAL_NO_STATS)

DEFAULT_LIMIT = 200

# Note marker written by each action
ACTION_MARKERS = {
    ACTION_REQUEUE: "requeued",
    ACTION_CLOSE_MISSING: "closed_missing",
    ACTION_CLOSE_FINAL_NO_STATS: "manual_closed_final_no_stats",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ReconciliationService:
    """
    Move needs_review predictions forward or close them.

    Usage:
        summary = ReconciliationService(db).reconcile("requeue", sport="nhl")
    """

    def __init__(
        self,
        db: Session,
        resolver: Optional[GameResolver] = None,
        oracle: Optional[CompletionOracle] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.predictions = PredictionRepository(db)
        self.resolver = resolver or GameResolver(GameRepository(db))
        self.oracle = oracle or CompletionOracle(clock=now)
        self.now = now

    def reconcile(
        self,
        action: str,
        statuses: Optional[Sequence[str]] = None,
        sport: Optional[str] = None,
        after: Optional[datetime] = None,
        before: Optional[datetime] = None,
        limit: int = DEFAULT_LIMIT,
        dry_run: bool = False,
    ) -> Dict[str, int]:
        """
        Apply ``action`` to matching predictions, oldest first.

        Args:
            action: requeue, close_missing or close_final_no_stats
            statuses: Statuses to select (default: needs_review)
            sport: Optional sport filter
            after: Only records created at or after this time
            before: Only records created at or before this time
            limit: Maximum rows to examine
            dry_run: Count what would change without writing

        Returns:
            {processed, updated, skipped, missing_game, not_final}

        Raises:
            ValueError: for an unknown action
        """
        action = (action or "").strip().lower()
        if action not in ACTIONS:
            raise ValueError(f"Unknown reconciliation action '{action}'. Expected one of: {', '.join(ACTIONS)}")

        rows = self.predictions.find_for_reconciliation(
            statuses=list(statuses or [STATUS_NEEDS_REVIEW]),
            sport=sport,
            after=after,
            before=before,
            limit=limit,
        )
        logger.info(
            f"Reconciliation {action}: {len(rows)} candidates "
            f"(sport={sport or 'any'}, limit={limit}, dry_run={dry_run})"
        )

        summary = {"processed": 0, "updated": 0, "skipped": 0, "missing_game": 0, "not_final": 0}
        for prediction in rows:
            summary["processed"] += 1
            prediction_id = prediction.id
            try:
                outcome = self._apply(action, prediction, dry_run)
                if outcome == "updated" and not dry_run:
                    self.db.commit()
            except Exception as e:
                self.db.rollback()
                summary["skipped"] += 1
                log_event(
                    logger, logging.ERROR, "error",
                    f"Reconciliation {action} failed for prediction {prediction_id}: {e}",
                    exc_info=True, prediction_id=prediction_id,
                )
                continue
            summary[outcome] += 1

        if not dry_run:
            metrics.reconciliation_updates_total.labels(action=action).inc(summary["updated"])

        logger.info(f"Reconciliation {action} finished: {summary}")
        return summary

    def _apply(self, action: str, prediction: Prediction, dry_run: bool) -> str:
        """Apply one action to one row; returns the summary key to count."""
        game = self.resolver.resolve(prediction.game_id_ref, prediction.sport)

        if action == ACTION_CLOSE_MISSING:
            if game is not None:
                return "skipped"
            target = STATUS_MANUAL_CLOSED
        else:
            if game is None:
                return "missing_game"
            if not self.oracle.is_final(game):
                return "not_final"
            target = STATUS_PENDING if action == ACTION_REQUEUE else STATUS_MANUAL_CLOSED

        if dry_run:
            return "updated" if target in ALLOWED_TRANSITIONS.get(prediction.status, set()) else "skipped"

        try:
            prediction.transition_to(target)
        except InvalidTransition as e:
            logger.warning(f"Skipping prediction {prediction.id}: {e}")
            return "skipped"

        if target == STATUS_PENDING:
            prediction.completed_at = None
        prediction.append_note(f"{ACTION_MARKERS[action]} {self.now().isoformat()}Z")
        return "updated"

