"""
Validation Stats Service

Read-only accuracy metrics over completed predictions:
- Accuracy: correct / (correct + incorrect); pushes are excluded
- ROI: flat stakes at -110, (0.91 * correct - incorrect) / (correct + incorrect)
- Average edge of the settled picks
- Breakdown by sport and prop type, with rankings by accuracy and ROI
- Accuracy by edge bucket

Also lists prediction records for dashboards and manual result entry.
"""
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from propsettle.core.logging import get_logger
from propsettle.models import (
    Prediction,
    STATUS_PENDING,
    RESULT_CORRECT,
    RESULT_INCORRECT,
    RESULT_PUSH,
)
from propsettle.repositories import PredictionRepository

logger = get_logger(__name__)

# Net win per unit staked at -110
PAYOUT_AT_MINUS_110 = 0.91

# (label, exclusive upper bound on |edge|); edges are fractions, 0.03 = 3%
EDGE_BUCKETS = (
    ("0-1%", 0.01),
    ("1-2%", 0.02),
    ("2-3%", 0.03),
    ("3-4%", 0.04),
    ("4-5%", 0.05),
)
TOP_EDGE_BUCKET = "5%+"

# Fewer settled results than this are too noisy to rank
MIN_RANKING_SAMPLES = 10


def edge_bucket(edge: Optional[float]) -> str:
    """Bucket label for an edge; a missing edge counts as zero."""
    magnitude = abs(edge or 0.0)
    for label, upper in EDGE_BUCKETS:
        if magnitude < upper:
            return label
    return TOP_EDGE_BUCKET


def _tally(predictions: Iterable[Prediction]) -> Dict[str, Any]:
    correct = incorrect = pushes = total = 0
    edges = []
    for p in predictions:
        total += 1
        if p.result == RESULT_CORRECT:
            correct += 1
        elif p.result == RESULT_INCORRECT:
            incorrect += 1
        elif p.result == RESULT_PUSH:
            pushes += 1
        if p.edge is not None:
            edges.append(p.edge)

    decided = correct + incorrect
    return {
        "total": total,
        "correct": correct,
        "incorrect": incorrect,
        "pushes": pushes,
        "accuracy": round(correct / decided, 4) if decided else 0.0,
        "avg_edge": round(sum(edges) / len(edges), 4) if edges else 0.0,
        "roi": round((PAYOUT_AT_MINUS_110 * correct - incorrect) / decided, 4) if decided else 0.0,
    }


def breakdown_key(prediction: Prediction) -> str:
    """'NHL - goals', or just the prop type when the sport is unknown."""
    if prediction.sport:
        return f"{prediction.sport.upper()} - {prediction.prop_type}"
    return prediction.prop_type


class ValidationStatsService:
    """Accuracy metrics over completed predictions."""

    def __init__(self, db: Session):
        self.db = db
        self.predictions = PredictionRepository(db)

    def get_validation_stats(
        self,
        sport: Optional[str] = None,
        prop_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Calculate accuracy metrics.

        Args:
            sport: Filter by sport (None = all)
            prop_type: Filter by prop type (None = all)

        Returns:
            Dictionary with total, correct, incorrect, pushes, accuracy,
            avg_edge, roi and by_prop_type (same counts per key)
        """
        completed = self.predictions.find_completed(sport=sport, prop_type=prop_type)

        groups: Dict[str, list] = {}
        for p in completed:
            groups.setdefault(breakdown_key(p), []).append(p)

        stats = _tally(completed)
        stats["by_prop_type"] = {key: _tally(rows) for key, rows in sorted(groups.items())}

        logger.debug(
            f"Validation stats (sport={sport or 'all'}, prop_type={prop_type or 'all'}): "
            f"{stats['total']} completed, accuracy {stats['accuracy']}"
        )
        return stats

    # ========================================================================
    # Listings
    # ========================================================================

    def get_validation_records(
        self,
        status: Optional[str] = None,
        sport: Optional[str] = None,
        prop_type: Optional[str] = None,
        result: Optional[str] = None,
        game_id_ref: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Prediction]:
        """Prediction records matching the filters, newest first."""
        return self.predictions.find_records(
            status=status,
            sport=sport,
            prop_type=prop_type,
            result=result,
            game_id_ref=game_id_ref,
            limit=limit,
        )

    def get_pending_for_game(self, game_id_ref: str) -> List[Prediction]:
        """Pending predictions filed against one game reference."""
        return self.get_validation_records(status=STATUS_PENDING, game_id_ref=game_id_ref)

    # ========================================================================
    # Breakdowns
    # ========================================================================

    def get_accuracy_by_edge(self) -> Dict[str, Dict[str, Any]]:
        """
        Completed predictions bucketed by absolute edge.

        Unlike the headline accuracy, pushes count towards each bucket's
        total, so accuracy here is correct / total.
        """
        buckets = {label: {"correct": 0, "total": 0} for label, _ in EDGE_BUCKETS}
        buckets[TOP_EDGE_BUCKET] = {"correct": 0, "total": 0}

        for p in self.predictions.find_completed():
            bucket = buckets[edge_bucket(p.edge)]
            bucket["total"] += 1
            if p.result == RESULT_CORRECT:
                bucket["correct"] += 1

        for bucket in buckets.values():
            bucket["accuracy"] = round(bucket["correct"] / bucket["total"], 4) if bucket["total"] else 0.0
        return buckets

    def get_most_accurate_prop_types(self, limit: int = 5, min_samples: int = MIN_RANKING_SAMPLES) -> List[Dict[str, Any]]:
        """Prop type breakdowns with at least ``min_samples`` results, best accuracy first."""
        return self._rank_prop_types("accuracy", limit, min_samples)

    def get_most_profitable_prop_types(self, limit: int = 5, min_samples: int = MIN_RANKING_SAMPLES) -> List[Dict[str, Any]]:
        """Prop type breakdowns with at least ``min_samples`` results, best ROI first."""
        return self._rank_prop_types("roi", limit, min_samples)

    def _rank_prop_types(self, metric: str, limit: int, min_samples: int) -> List[Dict[str, Any]]:
        by_prop_type = self.get_validation_stats()["by_prop_type"]
        ranked = [
            {"type": key, **stats}
            for key, stats in by_prop_type.items()
            if stats["total"] >= min_samples
        ]
        ranked.sort(key=lambda row: row[metric], reverse=True)
        return ranked[:limit]
