"""
Prediction Repository for settlement data access.

Usage:
    repo = PredictionRepository(db)
    page = repo.find_pending_page(offset=0, limit=50)
    total = repo.count_pending()
"""
from typing import Optional, List, Dict, Sequence
from datetime import datetime

from propsettle.models import (
    Prediction,
    STATUS_PENDING,
    STATUS_COMPLETED,
)
from propsettle.repositories.base import BaseRepository


class PredictionRepository(BaseRepository[Prediction]):
    """Repository for prediction records."""

    def __init__(self, db):
        super().__init__(Prediction, db)

    # ========================================================================
    # Settlement Sweep
    # ========================================================================

    def find_pending_page(self, offset: int, limit: int) -> List[Prediction]:
        """Pending predictions, oldest first, paged by offset/limit."""
        return (
            self.db.query(Prediction)
            .filter(Prediction.status == STATUS_PENDING)
            .order_by(Prediction.created_at.asc(), Prediction.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_pending(self) -> int:
        """Total number of pending predictions."""
        return self.count(Prediction.status == STATUS_PENDING)

    def count_by_status(self) -> Dict[str, int]:
        """Prediction counts keyed by status."""
        return self.group_by_and_count("status")

    def count_by_result(self) -> Dict[str, int]:
        """Completed prediction counts keyed by result."""
        return self.group_by_and_count("result", Prediction.status == STATUS_COMPLETED)

    # ========================================================================
    # Reconciliation
    # ========================================================================

    def find_for_reconciliation(
        self,
        statuses: Sequence[str],
        sport: Optional[str] = None,
        after: Optional[datetime] = None,
        before: Optional[datetime] = None,
        limit: int = 200,
    ) -> List[Prediction]:
        """
        Predictions in any of ``statuses``, oldest first.

        Args:
            statuses: Status values to include
            sport: Optional sport filter
            after: Only records created at or after this time
            before: Only records created at or before this time
            limit: Maximum number of records
        """
        query = self.db.query(Prediction).filter(Prediction.status.in_(list(statuses)))
        if sport:
            query = query.filter(Prediction.sport == sport.lower())
        if after:
            query = query.filter(Prediction.created_at >= after)
        if before:
            query = query.filter(Prediction.created_at <= before)
        return query.order_by(Prediction.created_at.asc()).limit(limit).all()

    # ========================================================================
    # Parlay Join
    # ========================================================================

    def find_completed_for_leg(
        self,
        parlay_id: str,
        player_name: str,
        prop_type: str,
        threshold: Optional[float],
    ) -> List[Prediction]:
        """Completed predictions matching a parlay leg's join key."""
        query = self.db.query(Prediction).filter(
            Prediction.parlay_id == parlay_id,
            Prediction.player_name == player_name,
            Prediction.prop_type == prop_type,
            Prediction.status == STATUS_COMPLETED,
        )
        if threshold is None:
            query = query.filter(Prediction.threshold.is_(None))
        else:
            query = query.filter(Prediction.threshold == threshold)
        return query.order_by(Prediction.completed_at.asc()).all()

    # ========================================================================
    # Accuracy Stats
    # ========================================================================

    def find_completed(
        self,
        sport: Optional[str] = None,
        prop_type: Optional[str] = None,
    ) -> List[Prediction]:
        """Completed predictions with optional sport/prop type filters."""
        query = self.db.query(Prediction).filter(Prediction.status == STATUS_COMPLETED)
        if sport:
            query = query.filter(Prediction.sport == sport.lower())
        if prop_type:
            query = query.filter(Prediction.prop_type == prop_type)
        return query.all()

    # ========================================================================
    # Manual Results and Listings
    # ========================================================================

    def find_by_prop_ref(self, prop_ref: str) -> Optional[Prediction]:
        """
        Find a prediction by record id, falling back to the upstream prop id.

        Several records can share a prop id; the most recent one wins.
        """
        prediction = self.find_by_id(prop_ref)
        if prediction is not None:
            return prediction
        return (
            self.db.query(Prediction)
            .filter(Prediction.prop_id == prop_ref)
            .order_by(Prediction.created_at.desc())
            .first()
        )

    def find_records(
        self,
        status: Optional[str] = None,
        sport: Optional[str] = None,
        prop_type: Optional[str] = None,
        result: Optional[str] = None,
        game_id_ref: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Prediction]:
        """Predictions matching every given filter, newest first."""
        query = self.db.query(Prediction)
        if status:
            query = query.filter(Prediction.status == status)
        if sport:
            query = query.filter(Prediction.sport == sport.lower())
        if prop_type:
            query = query.filter(Prediction.prop_type == prop_type)
        if result:
            query = query.filter(Prediction.result == result)
        if game_id_ref:
            query = query.filter(Prediction.game_id_ref == game_id_ref)
        query = query.order_by(Prediction.created_at.desc(), Prediction.id.asc())
        if limit:
            query = query.limit(limit)
        return query.all()
