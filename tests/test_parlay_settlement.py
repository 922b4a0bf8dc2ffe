"""Tests for parlay settlement.

Test Strategy:
1. All legs won settles the parlay won, with per-leg actual results
2. Any lost leg settles lost, even while other legs are still pending
3. Pushes lose their leg
4. Pending legs with no loss leave the parlay untouched
5. Leg matching: prediction_id precedence, join on (parlay, player, prop, line),
   conflicting matches left unresolved
6. Per-parlay failures roll back and do not stop the run
7. Status counts
"""
from datetime import datetime

import pytest

from propsettle.models import Parlay, ParlayLeg
from propsettle.services.settlement import ParlaySettlementService
from propsettle.services.settlement.parlay_settlement import LegResolution, aggregate_outcome

NOW = datetime(2025, 10, 20, 15, 0, 0)

LEGS = [
    {"player_name": "Auston Matthews", "prop_type": "goals", "threshold": 0.5, "selection": "over"},
    {"player_name": "Mitch Marner", "prop_type": "assists", "threshold": 0.5, "selection": "over"},
    {"player_name": "William Nylander", "prop_type": "shots", "threshold": 3.5, "selection": "over"},
]


@pytest.fixture
def service(db_session):
    return ParlaySettlementService(db_session, now=lambda: NOW)


@pytest.fixture
def settle_leg(make_prediction):
    """Create the completed prediction backing a leg of ``parlay``."""
    def _settle(parlay, leg, result, actual_value=1.0, **kwargs):
        return make_prediction(
            parlay_id=parlay.id,
            player_name=leg["player_name"],
            prop_type=leg["prop_type"],
            threshold=leg["threshold"],
            status="completed",
            result=result,
            actual_value=actual_value,
            **kwargs,
        )

    return _settle


def reload_parlay(db_session, parlay_id):
    db_session.expire_all()
    return db_session.get(Parlay, parlay_id)


def legs_of(db_session, parlay_id):
    return (
        db_session.query(ParlayLeg)
        .filter(ParlayLeg.parlay_id == parlay_id)
        .order_by(ParlayLeg.leg_order)
        .all()
    )


class TestAggregateOutcome:
    """Outcome rules over leg resolutions."""

    def test_empty_is_pending(self):
        assert aggregate_outcome([]) == "pending"

    def test_unresolved_is_pending(self):
        assert aggregate_outcome([LegResolution(leg=ParlayLeg())]) == "pending"


class TestSettleWon:
    """Every leg resolved and won."""

    def test_all_legs_won(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS)
        settle_leg(parlay, LEGS[0], "correct", actual_value=1.0)
        settle_leg(parlay, LEGS[1], "correct", actual_value=2.0)
        settle_leg(parlay, LEGS[2], "correct", actual_value=5.0)

        summary = service.settle_pending_parlays()

        assert summary == {"validated": 1, "won": 1, "lost": 0, "pending": 0}
        settled = reload_parlay(db_session, parlay.id)
        assert settled.status == "won"
        assert settled.outcome == "won"
        assert settled.actual_result == "All 3 legs won"
        assert settled.updated_at == NOW

        legs = legs_of(db_session, parlay.id)
        assert [leg.outcome for leg in legs] == ["won", "won", "won"]
        assert [leg.actual_result for leg in legs] == ["Actual: 1", "Actual: 2", "Actual: 5"]

    def test_settled_parlay_not_revisited(self, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:1])
        settle_leg(parlay, LEGS[0], "correct")

        service.settle_pending_parlays()
        second = service.settle_pending_parlays()

        assert second == {"validated": 0, "won": 0, "lost": 0, "pending": 0}


class TestSettleLost:
    """Any lost leg loses the parlay."""

    def test_lost_leg_short_circuits_pending_legs(self, db_session, service, make_parlay, settle_leg):
        """Leg 1 won, leg 2 lost, leg 3 still pending: the parlay is lost."""
        parlay = make_parlay(LEGS)
        settle_leg(parlay, LEGS[0], "correct")
        settle_leg(parlay, LEGS[1], "incorrect", actual_value=0.0)

        summary = service.settle_pending_parlays()

        assert summary["lost"] == 1
        settled = reload_parlay(db_session, parlay.id)
        assert settled.status == "lost"
        assert settled.actual_result == "Lost on leg(s): 2"

        legs = legs_of(db_session, parlay.id)
        assert [leg.outcome for leg in legs] == ["won", "lost", "pending"]
        assert legs[1].actual_result == "Actual: 0"
        assert legs[2].actual_result is None

    def test_push_loses_leg(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:2])
        settle_leg(parlay, LEGS[0], "correct")
        settle_leg(parlay, LEGS[1], "push", actual_value=0.5)

        service.settle_pending_parlays()

        settled = reload_parlay(db_session, parlay.id)
        assert settled.status == "lost"
        assert settled.actual_result == "Lost on leg(s): 2"
        assert legs_of(db_session, parlay.id)[1].outcome == "lost"

    def test_multiple_lost_legs_listed(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS)
        settle_leg(parlay, LEGS[0], "incorrect")
        settle_leg(parlay, LEGS[1], "correct")
        settle_leg(parlay, LEGS[2], "incorrect")

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).actual_result == "Lost on leg(s): 1, 3"


class TestStillPending:
    """Nothing is written while the outcome is undecided."""

    def test_pending_leg_without_loss(self, db_session, service, make_parlay, settle_leg, make_prediction):
        parlay = make_parlay(LEGS)
        settle_leg(parlay, LEGS[0], "correct")
        settle_leg(parlay, LEGS[1], "correct")
        # Third leg's prediction exists but has not settled
        make_prediction(parlay_id=parlay.id, player_name="William Nylander", prop_type="shots", threshold=3.5)

        summary = service.settle_pending_parlays()

        assert summary == {"validated": 0, "won": 0, "lost": 0, "pending": 1}
        settled = reload_parlay(db_session, parlay.id)
        assert settled.status == "pending"
        assert settled.outcome is None
        assert settled.actual_result is None
        assert [leg.outcome for leg in legs_of(db_session, parlay.id)] == ["pending"] * 3

    def test_no_legs(self, db_session, service, make_parlay):
        parlay = make_parlay([])

        summary = service.settle_pending_parlays()

        assert summary["pending"] == 1
        assert reload_parlay(db_session, parlay.id).status == "pending"


class TestLegMatching:
    """How a leg finds its prediction."""

    def test_prediction_id_takes_precedence(self, db_session, service, make_parlay, make_prediction):
        """A linked prediction wins over a conflicting join match."""
        linked = make_prediction(status="completed", result="correct", actual_value=1.0)
        parlay = make_parlay([dict(LEGS[0], prediction_id=linked.id)])
        make_prediction(parlay_id=parlay.id, player_name="Auston Matthews", prop_type="goals",
                        threshold=0.5, status="completed", result="incorrect", actual_value=0.0)

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "won"

    def test_linked_prediction_not_completed(self, db_session, service, make_parlay, make_prediction):
        linked = make_prediction(status="needs_review")
        parlay = make_parlay([dict(LEGS[0], prediction_id=linked.id)])

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "pending"

    def test_join_requires_same_parlay(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:1])
        other = make_parlay(LEGS[:1])
        settle_leg(other, LEGS[0], "correct")

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "pending"
        assert reload_parlay(db_session, other.id).status == "won"

    def test_join_requires_same_line(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:1])
        settle_leg(parlay, dict(LEGS[0], threshold=1.5), "incorrect")

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "pending"

    def test_conflicting_matches_unresolved(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:1])
        settle_leg(parlay, LEGS[0], "correct")
        settle_leg(parlay, LEGS[0], "incorrect")

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "pending"

    def test_agreeing_duplicates_resolve(self, db_session, service, make_parlay, settle_leg):
        parlay = make_parlay(LEGS[:1])
        settle_leg(parlay, LEGS[0], "correct")
        settle_leg(parlay, LEGS[0], "correct")

        service.settle_pending_parlays()

        assert reload_parlay(db_session, parlay.id).status == "won"


class TestErrorIsolation:
    """One failing parlay does not stop the run."""

    def test_failure_rolls_back_and_continues(self, db_session, service, make_parlay, settle_leg, monkeypatch):
        bad = make_parlay(LEGS[:1], id="bad-parlay")
        good = make_parlay(LEGS[:1], id="good-parlay")
        settle_leg(bad, LEGS[0], "correct")
        settle_leg(good, LEGS[0], "correct")

        original = service.match_prediction

        def flaky(parlay, leg):
            if parlay.id == "bad-parlay":
                raise RuntimeError("boom")
            return original(parlay, leg)

        monkeypatch.setattr(service, "match_prediction", flaky)

        summary = service.settle_pending_parlays()

        assert summary == {"validated": 1, "won": 1, "lost": 0, "pending": 1}
        assert reload_parlay(db_session, bad.id).status == "pending"
        assert reload_parlay(db_session, good.id).status == "won"


class TestParlayStats:
    """Status counts."""

    def test_counts(self, service, make_parlay):
        make_parlay(LEGS[:1])
        make_parlay(LEGS[:1], status="won", outcome="won")
        make_parlay(LEGS[:1], status="lost", outcome="lost")
        make_parlay(LEGS[:1], status="lost", outcome="lost")

        assert service.get_parlay_stats() == {"total": 4, "pending": 1, "won": 1, "lost": 2}

    def test_empty(self, service):
        assert service.get_parlay_stats() == {"total": 0, "pending": 0, "won": 0, "lost": 0}
