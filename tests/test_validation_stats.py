"""Tests for validation accuracy stats.

Test Strategy:
1. Accuracy excludes pushes; ROI at -110 flat stakes
2. Average edge ignores predictions without an edge
3. Breakdown keys by sport and prop type
4. Sport and prop type filters
5. Only completed predictions count
6. Accuracy by edge bucket (pushes count towards the total)
7. Prop type rankings by accuracy and ROI, with a sample floor
8. Record listings: filters, newest first, pending per game
"""
import pytest

from propsettle.services.settlement import ValidationStatsService
from propsettle.services.settlement.stats_service import breakdown_key, edge_bucket
from propsettle.models import Prediction


@pytest.fixture
def service(db_session):
    return ValidationStatsService(db_session)


@pytest.fixture
def settled(make_prediction):
    def _make(result, **kwargs):
        return make_prediction(status="completed", result=result, actual_value=1.0, **kwargs)

    return _make


class TestValidationStats:
    """Test suite for ValidationStatsService.get_validation_stats()."""

    def test_accuracy_and_roi(self, service, settled):
        for _ in range(3):
            settled("correct")
        settled("incorrect")
        settled("push")

        stats = service.get_validation_stats()

        assert stats["total"] == 5
        assert stats["correct"] == 3
        assert stats["incorrect"] == 1
        assert stats["pushes"] == 1
        assert stats["accuracy"] == 0.75
        # (0.91 * 3 - 1) / 4
        assert stats["roi"] == pytest.approx(0.4325)

    def test_losing_record_has_negative_roi(self, service, settled):
        settled("correct")
        settled("incorrect")
        settled("incorrect")

        stats = service.get_validation_stats()

        assert stats["accuracy"] == pytest.approx(0.3333)
        assert stats["roi"] == pytest.approx(-0.3633)

    def test_avg_edge(self, service, settled):
        settled("correct", edge=0.1)
        settled("incorrect", edge=0.2)
        settled("correct")

        assert service.get_validation_stats()["avg_edge"] == pytest.approx(0.15)

    def test_only_pushes(self, service, settled):
        settled("push")

        stats = service.get_validation_stats()

        assert stats["accuracy"] == 0.0
        assert stats["roi"] == 0.0

    def test_ignores_unsettled(self, service, make_prediction):
        make_prediction()
        make_prediction(status="needs_review")
        make_prediction(status="manual_closed")

        stats = service.get_validation_stats()

        assert stats["total"] == 0
        assert stats["by_prop_type"] == {}

    def test_breakdown(self, service, settled):
        settled("correct", sport="nhl", prop_type="goals")
        settled("incorrect", sport="nhl", prop_type="goals")
        settled("correct", sport="mlb", prop_type="hits")

        breakdown = service.get_validation_stats()["by_prop_type"]

        assert list(breakdown) == ["MLB - hits", "NHL - goals"]
        assert breakdown["NHL - goals"]["total"] == 2
        assert breakdown["NHL - goals"]["accuracy"] == 0.5
        assert breakdown["MLB - hits"]["accuracy"] == 1.0

    def test_filters(self, service, settled):
        settled("correct", sport="nhl", prop_type="goals")
        settled("incorrect", sport="nhl", prop_type="shots")
        settled("correct", sport="mlb", prop_type="hits")

        assert service.get_validation_stats(sport="NHL")["total"] == 2
        assert service.get_validation_stats(sport="nhl", prop_type="shots")["correct"] == 0
        assert service.get_validation_stats(prop_type="hits")["total"] == 1


class TestBreakdownKey:

    def test_with_sport(self):
        assert breakdown_key(Prediction(sport="nhl", prop_type="goals")) == "NHL - goals"

    def test_without_sport(self):
        assert breakdown_key(Prediction(sport=None, prop_type="goals")) == "goals"


class TestEdgeBucket:

    @pytest.mark.parametrize("edge,label", [
        (None, "0-1%"),
        (0.005, "0-1%"),
        (-0.015, "1-2%"),
        (0.025, "2-3%"),
        (0.035, "3-4%"),
        (0.045, "4-5%"),
        (0.05, "5%+"),
        (0.12, "5%+"),
    ])
    def test_labels(self, edge, label):
        assert edge_bucket(edge) == label


class TestAccuracyByEdge:
    """Test suite for ValidationStatsService.get_accuracy_by_edge()."""

    def test_buckets_count_pushes_in_total(self, service, settled):
        settled("correct", edge=0.005)
        settled("push", edge=0.008)
        settled("correct", edge=0.07)
        settled("incorrect", edge=-0.06)
        settled("correct", edge=0.09)

        buckets = service.get_accuracy_by_edge()

        assert list(buckets) == ["0-1%", "1-2%", "2-3%", "3-4%", "4-5%", "5%+"]
        assert buckets["0-1%"] == {"correct": 1, "total": 2, "accuracy": 0.5}
        assert buckets["5%+"] == {"correct": 2, "total": 3, "accuracy": 0.6667}
        assert buckets["2-3%"] == {"correct": 0, "total": 0, "accuracy": 0.0}

    def test_unsettled_ignored(self, service, make_prediction):
        make_prediction(edge=0.03)
        make_prediction(status="needs_review", edge=0.03)

        assert service.get_accuracy_by_edge()["3-4%"]["total"] == 0


class TestTopPropTypes:
    """Test suite for most accurate / most profitable prop types."""

    @pytest.fixture
    def history(self, settled):
        # NHL goals: 8-2, MLB hits: 6-4, NFL passing yards: 9-3, NHL shots: 3-0 (too few)
        for prop_type, sport, wins, losses in [
            ("goals", "nhl", 8, 2),
            ("hits", "mlb", 6, 4),
            ("passing_yards", "nfl", 9, 3),
            ("shots", "nhl", 3, 0),
        ]:
            for _ in range(wins):
                settled("correct", sport=sport, prop_type=prop_type)
            for _ in range(losses):
                settled("incorrect", sport=sport, prop_type=prop_type)

    def test_most_accurate(self, service, history):
        ranked = service.get_most_accurate_prop_types()

        assert [row["type"] for row in ranked] == ["NHL - goals", "NFL - passing_yards", "MLB - hits"]
        assert ranked[0]["accuracy"] == 0.8
        assert ranked[0]["total"] == 10

    def test_most_profitable(self, service, history):
        ranked = service.get_most_profitable_prop_types(limit=2)

        assert [row["type"] for row in ranked] == ["NHL - goals", "NFL - passing_yards"]
        # (0.91 * 8 - 2) / 10
        assert ranked[0]["roi"] == pytest.approx(0.528)

    def test_min_samples(self, service, history):
        ranked = service.get_most_accurate_prop_types(min_samples=3)
        assert ranked[0]["type"] == "NHL - shots"

    def test_nothing_qualifies(self, service, settled):
        settled("correct")
        assert service.get_most_accurate_prop_types() == []


class TestValidationRecords:
    """Test suite for record listings."""

    def test_filters_and_newest_first(self, service, make_prediction, settled):
        older = settled("correct", sport="nhl")
        newer = settled("correct", sport="nhl")
        settled("incorrect", sport="nhl")
        settled("correct", sport="mlb", prop_type="hits")
        make_prediction()

        records = service.get_validation_records(status="completed", sport="NHL", result="correct")

        assert [r.id for r in records] == [newer.id, older.id]

    def test_limit(self, service, make_prediction):
        for _ in range(4):
            make_prediction()
        assert len(service.get_validation_records(limit=3)) == 3

    def test_pending_for_game(self, service, make_prediction):
        wanted = make_prediction(game_id_ref="game-1")
        make_prediction(game_id_ref="game-1", status="needs_review")
        make_prediction(game_id_ref="game-2")

        assert [p.id for p in service.get_pending_for_game("game-1")] == [wanted.id]
