"""
Time-boxed settlement sweep over pending predictions.

One batch is a page of pending predictions, oldest first. Each one goes
through game resolution, a completion check, a stat lookup and outcome
evaluation, and is committed on its own. Before every item the elapsed time
is checked against the budget; once it runs out the rest of the page is left
for the next invocation.

Per-item outcomes:
- game not found, external id missing, sport unsupported or stat
  unavailable -> needs_review (counted as updated)
- game not final -> untouched (counted as neither updated nor error)
- evaluated -> completed (counted as updated)
- anything unexpected -> rolled back, logged, counted as error

Re-running a batch is safe: only pending records are ever selected.

Operators can also settle a single record by hand with ``update_result``.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from propsettle.core import metrics
from propsettle.core.config import settings
from propsettle.core.exceptions import (
    ExternalIdMissing,
    GameNotFinal,
    GameNotResolved,
    SettlementError,
    StatUnavailable,
    UnsupportedSport,
)
from propsettle.core.logging import get_logger, log_event
from propsettle.models import (
    Prediction,
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_NEEDS_REVIEW,
    STATUS_MANUAL_CLOSED,
    RESULT_CORRECT,
    RESULT_INCORRECT,
    RESULT_PUSH,
)
from propsettle.repositories import GameRepository, PredictionRepository
from propsettle.services.settlement.completion import CompletionOracle
from propsettle.services.settlement.game_resolver import GameResolver
from propsettle.services.settlement.outcome import evaluate, completion_note
from propsettle.services.stats import StatProviderRegistry, get_sport_config

logger = get_logger(__name__)

DEFAULT_SPORT = "mlb"

OUTCOME_NOT_FINAL = "not_final"
OUTCOME_NEEDS_REVIEW = "needs_review"

MANUAL_CHECK = "Manual verification needed."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ValidationCheckService:
    """
    Settle pending predictions in resumable batches.

    Usage:
        service = ValidationCheckService(db)
        result = service.run_batch(batch_number=0)
        if result["has_more_batches"]:
            service.run_batch(batch_number=result["next_batch"])
    """

    def __init__(
        self,
        db: Session,
        providers: Optional[StatProviderRegistry] = None,
        resolver: Optional[GameResolver] = None,
        oracle: Optional[CompletionOracle] = None,
        monotonic: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            db: Database session
            providers: Stat adapters by sport (built on demand if omitted)
            resolver: Game resolver (defaults to one over this session)
            oracle: Completion oracle
            monotonic: Clock for the time budget, in seconds
            now: Current naive UTC time for completed_at stamps
        """
        self.db = db
        self.predictions = PredictionRepository(db)
        self.games = GameRepository(db)
        self.resolver = resolver or GameResolver(self.games)
        self.oracle = oracle or CompletionOracle(clock=now)
        self._owns_providers = providers is None
        self.providers = providers or StatProviderRegistry()
        self.monotonic = monotonic
        self.now = now

    def close(self) -> None:
        """Release provider HTTP clients this service created."""
        if self._owns_providers:
            self.providers.close()

    # ========================================================================
    # Batch Sweep
    # ========================================================================

    def run_batch(
        self,
        batch_number: int = 0,
        page_size: Optional[int] = None,
        time_budget_ms: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Process one page of pending predictions.

        Args:
            batch_number: Zero-based page index
            page_size: Predictions per page
            time_budget_ms: Wall-clock budget for the whole batch
            offset: Row offset into the pending set; defaults to
                batch_number * page_size

        Returns:
            Summary with updated, errors, not_final, skipped, remaining,
            total_pending, batch_size, current_batch, has_more_batches,
            next_batch and runtime_ms
        """
        page_size = page_size or settings.SETTLEMENT_BATCH_SIZE
        time_budget_ms = time_budget_ms or settings.SETTLEMENT_TIME_BUDGET_MS
        if batch_number < 0:
            raise ValueError("batch_number must be >= 0")
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        if offset is None:
            offset = batch_number * page_size
        elif offset < 0:
            raise ValueError("offset must be >= 0")

        started = self.monotonic()

        total_pending = self.predictions.count_pending()
        page = self.predictions.find_pending_page(offset=offset, limit=page_size)

        logger.info(
            f"Settlement batch {batch_number}: {len(page)} of {total_pending} pending "
            f"(offset {offset}, budget {time_budget_ms}ms)"
        )

        updated = errors = not_final = skipped = visited = 0
        budget_exhausted = False

        for index, prediction in enumerate(page):
            elapsed_ms = (self.monotonic() - started) * 1000
            if elapsed_ms > time_budget_ms:
                skipped = len(page) - index
                budget_exhausted = True
                logger.warning(
                    f"Time budget exhausted after {elapsed_ms:.0f}ms; "
                    f"leaving {skipped} predictions for the next run"
                )
                break

            visited += 1
            prediction_id = prediction.id
            sport = (prediction.sport or DEFAULT_SPORT).lower()
            try:
                outcome = self.settle_prediction(prediction)
            except Exception as e:
                self.db.rollback()
                errors += 1
                metrics.settlement_predictions_total.labels(sport=sport, outcome="error").inc()
                log_event(
                    logger, logging.ERROR, "error",
                    f"Unexpected failure settling prediction {prediction_id}: {e}",
                    exc_info=True, prediction_id=prediction_id,
                )
                continue

            metrics.settlement_predictions_total.labels(sport=sport, outcome=outcome).inc()
            if outcome == OUTCOME_NOT_FINAL:
                not_final += 1
            else:
                updated += 1

        runtime_ms = int((self.monotonic() - started) * 1000)
        has_more = offset + page_size < total_pending

        metrics.settlement_batch_duration_seconds.observe(runtime_ms / 1000)
        metrics.settlement_batches_total.labels(budget_exhausted=str(budget_exhausted).lower()).inc()

        message = f"Processed {visited} predictions: {updated} updated, {errors} errors"
        if skipped:
            message += f", {skipped} skipped (time budget)"
        logger.info(f"Settlement batch {batch_number} done in {runtime_ms}ms. {message}")

        return {
            "success": True,
            "message": message,
            "updated": updated,
            "errors": errors,
            "not_final": not_final,
            "skipped": skipped,
            "remaining": max(total_pending - (offset + visited), 0),
            "total_pending": total_pending,
            "batch_size": page_size,
            "current_batch": batch_number,
            "has_more_batches": has_more,
            "next_batch": batch_number + 1 if has_more else None,
            "runtime_ms": runtime_ms,
        }

    def run_sweep(
        self,
        max_batches: Optional[int] = None,
        page_size: Optional[int] = None,
        time_budget_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Run consecutive batches until the pending set is exhausted.

        Settled and needs_review rows leave the pending set, so the sweep
        keeps its own offset and advances it only past rows that stayed
        pending. Stops on a short page, when a batch runs out of time, or at
        ``max_batches``.

        Returns:
            Cumulative updated/errors/not_final/skipped, the number of
            batches run and the last batch's summary
        """
        max_batches = max_batches or settings.SETTLEMENT_MAX_BATCHES
        totals = {"updated": 0, "errors": 0, "not_final": 0, "skipped": 0}
        batch_number = 0
        offset = 0
        batches_run = 0
        last: Dict[str, Any] = {}

        while batches_run < max_batches:
            last = self.run_batch(
                batch_number, page_size=page_size, time_budget_ms=time_budget_ms, offset=offset
            )
            batches_run += 1
            for key in totals:
                totals[key] += last[key]

            stayed_pending = last["not_final"] + last["errors"] + last["skipped"]
            if last["updated"] + stayed_pending < last["batch_size"] or last["skipped"]:
                break
            offset += stayed_pending
            batch_number += 1
        else:
            if last.get("has_more_batches"):
                logger.warning(f"Sweep stopped at the {max_batches}-batch limit with work remaining")

        return {
            **totals,
            "batches_run": batches_run,
            "last_batch": last,
        }

    # ========================================================================
    # Single Prediction
    # ========================================================================

    def settle_prediction(self, prediction: Prediction) -> str:
        """
        Settle one prediction and commit.

        Returns:
            The outcome label: correct, incorrect, push, needs_review or
            not_final
        """
        context = {"prediction_id": prediction.id, "game_ref": prediction.game_id_ref}
        try:
            actual = self._fetch_actual(prediction)
        except GameNotFinal as e:
            log_event(logger, logging.DEBUG, "not_final", str(e), **context)
            return OUTCOME_NOT_FINAL
        except SettlementError as e:
            prediction.transition_to(STATUS_NEEDS_REVIEW)
            prediction.notes = e.note
            prediction.completed_at = self.now()
            self.db.commit()
            log_event(logger, logging.WARNING, "needs_review", str(e), reason=type(e).__name__, **context)
            return OUTCOME_NEEDS_REVIEW

        result = evaluate(prediction.prediction, prediction.threshold, actual)
        prediction.transition_to(STATUS_COMPLETED)
        prediction.actual_value = actual
        prediction.result = result
        prediction.completed_at = self.now()
        prediction.notes = completion_note(prediction.prediction, prediction.threshold, actual)
        self.db.commit()

        log_event(
            logger, logging.INFO, "completed",
            f"{prediction.player_name} {prediction.prop_type}: {prediction.notes} ({result})",
            result=result, actual_value=actual, **context,
        )
        return result

    def _fetch_actual(self, prediction: Prediction) -> float:
        """
        Resolve the game and read the actual stat value.

        Raises:
            GameNotResolved, GameNotFinal, UnsupportedSport,
            ExternalIdMissing, StatUnavailable
        """
        game = self.resolver.resolve(prediction.game_id_ref, prediction.sport)
        if game is None:
            raise GameNotResolved(
                f"Game {prediction.game_id_ref} not found",
                note=f"Game {prediction.game_id_ref} not found in database. {MANUAL_CHECK}",
            )

        if not self.oracle.is_final(game):
            raise GameNotFinal(f"Game {game.id} not final (status: {game.status})")

        sport = (prediction.sport or game.sport or DEFAULT_SPORT).lower()
        config = get_sport_config(sport)
        adapter = self.providers.get(sport) if config else None
        if config is None or adapter is None:
            raise UnsupportedSport(
                f"No stat provider for sport '{sport}'",
                note=f"Game finished but no stat provider for {sport.upper()}. {MANUAL_CHECK}",
            )

        external_id = getattr(game, config.external_id_field)
        if not external_id:
            raise ExternalIdMissing(
                f"Game {game.id} has no {config.external_id_field}",
                note=f"Game finished but no {config.external_id_field} available. {MANUAL_CHECK}",
            )

        actual = adapter.get_stat(str(external_id), prediction.player_name, prediction.prop_type)
        if actual is None:
            raise StatUnavailable(
                f"{prediction.prop_type} unavailable for {prediction.player_name} in game {external_id}",
                note=f"Game finished but stat not available from API. {MANUAL_CHECK}",
            )
        return actual

    # ========================================================================
    # Manual Result Entry
    # ========================================================================

    def update_result(self, prop_ref: str, actual_value: float) -> Optional[Prediction]:
        """
        Settle a prediction from an operator-supplied actual value.

        A needs_review record is requeued first, so the move to completed
        follows the lifecycle. Completed and manual_closed records are
        rejected.

        Args:
            prop_ref: Record id or upstream prop id
            actual_value: The value the player posted

        Returns:
            The settled prediction, or None when no record matches

        Raises:
            InvalidTransition: if the record is already completed or closed
            ValueError: if the stored direction is not over/under
        """
        prediction = self.predictions.find_by_prop_ref(prop_ref)
        if prediction is None:
            return None

        result = evaluate(prediction.prediction, prediction.threshold, actual_value)
        if prediction.status == STATUS_NEEDS_REVIEW:
            prediction.transition_to(STATUS_PENDING)
        prediction.transition_to(STATUS_COMPLETED)
        prediction.actual_value = actual_value
        prediction.result = result
        prediction.completed_at = self.now()
        prediction.notes = completion_note(
            prediction.prediction, prediction.threshold, actual_value, prefix="Manually validated"
        )
        self.db.commit()

        log_event(
            logger, logging.INFO, "manual_result",
            f"{prediction.player_name} {prediction.prop_type}: {prediction.notes} ({result})",
            prediction_id=prediction.id, result=result, actual_value=actual_value,
        )
        return prediction

    # ========================================================================
    # Read-only Stats
    # ========================================================================

    def get_stats(self) -> Dict[str, Any]:
        """Current counts by status and result, with accuracy = correct / completed."""
        by_status = self.predictions.count_by_status()
        by_result = self.predictions.count_by_result()

        completed = by_status.get(STATUS_COMPLETED, 0)
        correct = by_result.get(RESULT_CORRECT, 0)

        return {
            "pending": by_status.get(STATUS_PENDING, 0),
            "completed": completed,
            "correct": correct,
            "accuracy": round(correct / completed, 4) if completed else 0.0,
            "incorrect": by_result.get(RESULT_INCORRECT, 0),
            "push": by_result.get(RESULT_PUSH, 0),
            "needs_review": by_status.get(STATUS_NEEDS_REVIEW, 0),
            "manual_closed": by_status.get(STATUS_MANUAL_CLOSED, 0),
        }
