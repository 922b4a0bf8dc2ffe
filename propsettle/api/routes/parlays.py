"""
Parlay settlement routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from propsettle.core.database import get_db
from propsettle.core.logging import get_logger
from propsettle.core.rate_limit import limiter, TRIGGER_LIMIT, GENERAL_LIMIT
from propsettle.services.settlement import ParlaySettlementService

logger = get_logger(__name__)

router = APIRouter(prefix="/parlays", tags=["parlays"])


@router.post("/validate")
@limiter.limit(TRIGGER_LIMIT)
def validate_parlays(request: Request, db: Session = Depends(get_db)):
    """
    Settle pending parlays from their legs' completed predictions.

    A parlay is lost as soon as one leg loses and won once every leg won;
    anything else stays pending.
    """
    try:
        summary = ParlaySettlementService(db).settle_pending_parlays()
        return {
            "success": True,
            **summary,
            "message": f"Validated {summary['validated']} parlays "
                       f"({summary['won']} won, {summary['lost']} lost, {summary['pending']} pending)",
        }
    except Exception as e:
        logger.error(f"Error validating parlays: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/validate")
@limiter.limit(GENERAL_LIMIT)
def get_parlay_validation_stats(request: Request, db: Session = Depends(get_db)):
    """Parlay counts by status."""
    try:
        return {"success": True, "stats": ParlaySettlementService(db).get_parlay_stats()}
    except Exception as e:
        logger.error(f"Error reading parlay stats: {e}")
        raise HTTPException(status_code=500, detail=str(e))
