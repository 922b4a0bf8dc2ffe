"""
Parlay Repository.
"""
from typing import List, Dict

from propsettle.models import Parlay, ParlayLeg, OUTCOME_PENDING
from propsettle.repositories.base import BaseRepository


class ParlayRepository(BaseRepository[Parlay]):
    """Repository for parlays and their legs."""

    def __init__(self, db):
        super().__init__(Parlay, db)

    def find_pending(self) -> List[Parlay]:
        """Pending parlays, oldest first."""
        return (
            self.db.query(Parlay)
            .filter(Parlay.status == OUTCOME_PENDING)
            .order_by(Parlay.created_at.asc())
            .all()
        )

    def find_legs(self, parlay_id: str) -> List[ParlayLeg]:
        """Legs of a parlay ordered by leg index."""
        return (
            self.db.query(ParlayLeg)
            .filter(ParlayLeg.parlay_id == parlay_id)
            .order_by(ParlayLeg.leg_order.asc())
            .all()
        )

    def count_by_status(self) -> Dict[str, int]:
        """Parlay counts keyed by status."""
        return self.group_by_and_count("status")
