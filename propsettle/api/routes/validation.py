"""
Validation routes.

Trigger and inspect the prediction settlement sweep, read accuracy stats,
enter results by hand and run operator reconciliation.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from propsettle.core.database import get_db
from propsettle.core.exceptions import InvalidTransition
from propsettle.core.logging import get_logger
from propsettle.core.rate_limit import limiter, TRIGGER_LIMIT, GENERAL_LIMIT
from propsettle.models import Prediction, STATUS_NEEDS_REVIEW
from propsettle.services.settlement import (
    ReconciliationService,
    ValidationCheckService,
    ValidationStatsService,
)
from propsettle.services.settlement.reconciliation import ACTIONS, DEFAULT_LIMIT
from propsettle.services.settlement.stats_service import MIN_RANKING_SAMPLES

logger = get_logger(__name__)

router = APIRouter(prefix="/validation", tags=["validation"])


class ValidationCheckRequest(BaseModel):
    """Body for a settlement batch trigger."""
    batch: int = Field(0, ge=0, description="Zero-based batch number")
    page_size: Optional[int] = Field(None, ge=1, le=500, description="Predictions per batch")
    time_budget_ms: Optional[int] = Field(None, ge=1000, description="Wall-clock budget in milliseconds")


class ReconcileRequest(BaseModel):
    """Body for an operator reconciliation run."""
    action: str = Field(..., description=f"One of: {', '.join(ACTIONS)}")
    statuses: List[str] = Field(default_factory=lambda: [STATUS_NEEDS_REVIEW])
    sport: Optional[str] = None
    after: Optional[datetime] = None
    before: Optional[datetime] = None
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=5000)
    dry_run: bool = False


class UpdateResultRequest(BaseModel):
    """Body for a manual result entry."""
    prop_id: str = Field(..., min_length=1, description="Prediction id or upstream prop id")
    actual_value: float = Field(..., description="The value the player posted")


@router.post("/check")
@limiter.limit(TRIGGER_LIMIT)
def run_validation_check(
    request: Request,
    payload: Optional[ValidationCheckRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Run one settlement batch.

    Returns the batch summary; when ``has_more_batches`` is true, call again
    with ``batch = next_batch``.
    """
    payload = payload or ValidationCheckRequest()
    service = ValidationCheckService(db)
    try:
        return service.run_batch(
            batch_number=payload.batch,
            page_size=payload.page_size,
            time_budget_ms=payload.time_budget_ms,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error running validation batch {payload.batch}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        service.close()


@router.get("/check")
@limiter.limit(GENERAL_LIMIT)
def get_validation_status(request: Request, db: Session = Depends(get_db)):
    """Counts by status and result, with overall accuracy."""
    service = ValidationCheckService(db)
    try:
        return {"success": True, **service.get_stats()}
    except Exception as e:
        logger.error(f"Error reading validation status: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        service.close()


@router.get("/stats")
@limiter.limit(GENERAL_LIMIT)
def get_validation_stats(
    request: Request,
    sport: Optional[str] = Query(None, description="Filter by sport (nfl, nhl, mlb)"),
    prop_type: Optional[str] = Query(None, description="Filter by prop type"),
    db: Session = Depends(get_db),
):
    """
    Accuracy metrics over completed predictions.

    Returns:
        - total, correct, incorrect, pushes
        - accuracy: correct / (correct + incorrect)
        - avg_edge
        - roi: flat stakes at -110
        - by_prop_type: the same counts keyed "NHL - goals"
    """
    try:
        return ValidationStatsService(db).get_validation_stats(sport=sport, prop_type=prop_type)
    except Exception as e:
        logger.error(f"Error calculating validation stats: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/reconcile")
@limiter.limit(TRIGGER_LIMIT)
def reconcile_validations(
    request: Request,
    payload: ReconcileRequest,
    db: Session = Depends(get_db),
):
    """
    Requeue or close predictions stuck in review.

    Actions:
        - requeue: back to pending when the game is final
        - close_missing: manual_closed when the game cannot be found
        - close_final_no_stats: manual_closed when the game is final
    """
    try:
        return ReconciliationService(db).reconcile(
            action=payload.action,
            statuses=payload.statuses,
            sport=payload.sport,
            after=payload.after,
            before=payload.before,
            limit=payload.limit,
            dry_run=payload.dry_run,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error reconciling validations ({payload.action}): {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Manual Result Entry
# ============================================================================

def _prediction_summary(prediction: Prediction) -> Dict[str, Any]:
    """Fields an operator needs to settle a prediction by hand."""
    return {
        "id": prediction.id,
        "prop_id": prediction.prop_id,
        "game_id_ref": prediction.game_id_ref,
        "sport": prediction.sport,
        "player_name": prediction.player_name,
        "prop_type": prediction.prop_type,
        "prediction": prediction.prediction,
        "threshold": prediction.threshold,
        "projected_value": prediction.projected_value,
        "confidence": prediction.confidence,
        "edge": prediction.edge,
        "status": prediction.status,
        "actual_value": prediction.actual_value,
        "result": prediction.result,
        "notes": prediction.notes,
        "created_at": prediction.created_at,
        "completed_at": prediction.completed_at,
    }


@router.post("/update-result")
@limiter.limit(TRIGGER_LIMIT)
def update_prop_result(
    request: Request,
    payload: UpdateResultRequest,
    db: Session = Depends(get_db),
):
    """
    Settle one prediction with an actual value entered by an operator.

    Accepts pending and needs_review records; completed and closed records
    return 409.
    """
    service = ValidationCheckService(db)
    try:
        prediction = service.update_result(payload.prop_id, payload.actual_value)
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating result for {payload.prop_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        service.close()

    if prediction is None:
        raise HTTPException(status_code=404, detail=f"Prediction {payload.prop_id} not found")

    return {
        "success": True,
        "message": "Result updated successfully",
        "data": _prediction_summary(prediction),
    }


@router.get("/update-result")
@limiter.limit(GENERAL_LIMIT)
def get_pending_props_for_game(
    request: Request,
    game_id: Optional[str] = Query(None, description="Game reference the predictions were filed against"),
    db: Session = Depends(get_db),
):
    """Pending predictions for one game, ready for manual result entry."""
    if not game_id:
        raise HTTPException(status_code=400, detail="game_id is required")

    try:
        props = ValidationStatsService(db).get_pending_for_game(game_id)
    except Exception as e:
        logger.error(f"Error listing pending props for game {game_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "count": len(props),
        "props": [_prediction_summary(p) for p in props],
    }


# ============================================================================
# Listings and Breakdowns
# ============================================================================

@router.get("/records")
@limiter.limit(GENERAL_LIMIT)
def list_validation_records(
    request: Request,
    status: Optional[str] = Query(None, description="pending, completed, needs_review or manual_closed"),
    sport: Optional[str] = Query(None, description="Filter by sport (nfl, nhl, mlb)"),
    prop_type: Optional[str] = Query(None, description="Filter by prop type"),
    result: Optional[str] = Query(None, description="correct, incorrect or push"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records"),
    db: Session = Depends(get_db),
):
    """Prediction records, newest first."""
    try:
        records = ValidationStatsService(db).get_validation_records(
            status=status, sport=sport, prop_type=prop_type, result=result, limit=limit,
        )
    except Exception as e:
        logger.error(f"Error listing validation records: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "count": len(records),
        "records": [_prediction_summary(p) for p in records],
    }


@router.get("/stats/by-edge")
@limiter.limit(GENERAL_LIMIT)
def get_accuracy_by_edge(request: Request, db: Session = Depends(get_db)):
    """Accuracy of completed predictions per absolute-edge bucket (0-1% ... 5%+)."""
    try:
        return ValidationStatsService(db).get_accuracy_by_edge()
    except Exception as e:
        logger.error(f"Error calculating accuracy by edge: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats/top-prop-types")
@limiter.limit(GENERAL_LIMIT)
def get_top_prop_types(
    request: Request,
    rank_by: Literal["accuracy", "roi"] = Query("accuracy", description="Ranking metric"),
    limit: int = Query(5, ge=1, le=50),
    min_samples: int = Query(MIN_RANKING_SAMPLES, ge=1, description="Minimum settled results per prop type"),
    db: Session = Depends(get_db),
):
    """Best prop types by accuracy or by ROI at -110."""
    service = ValidationStatsService(db)
    try:
        if rank_by == "roi":
            ranked = service.get_most_profitable_prop_types(limit=limit, min_samples=min_samples)
        else:
            ranked = service.get_most_accurate_prop_types(limit=limit, min_samples=min_samples)
    except Exception as e:
        logger.error(f"Error ranking prop types by {rank_by}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"rank_by": rank_by, "prop_types": ranked}
