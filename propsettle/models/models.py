"""
Database models for the settlement service.

Games are owned by the schedule-ingestion pipeline and only read here.
Predictions, parlays and parlay legs are created upstream in ``pending``
state and mutated only by settlement and reconciliation.
"""
from datetime import datetime
from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Text, Index
from sqlalchemy.orm import relationship, declarative_base

from propsettle.core.exceptions import InvalidTransition

Base = declarative_base()


# Prediction lifecycle
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_NEEDS_REVIEW = "needs_review"
STATUS_MANUAL_CLOSED = "manual_closed"

PREDICTION_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_NEEDS_REVIEW, STATUS_MANUAL_CLOSED)

ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_COMPLETED, STATUS_NEEDS_REVIEW},
    STATUS_NEEDS_REVIEW: {STATUS_PENDING, STATUS_MANUAL_CLOSED},
    STATUS_COMPLETED: set(),
    STATUS_MANUAL_CLOSED: set(),
}

# Prediction results
RESULT_CORRECT = "correct"
RESULT_INCORRECT = "incorrect"
RESULT_PUSH = "push"

# Parlay / leg outcomes
OUTCOME_PENDING = "pending"
OUTCOME_WON = "won"
OUTCOME_LOST = "lost"


class Game(Base):
    """
    One scheduled or played contest, keyed by a canonical id plus any
    provider-specific external ids.

    External id conventions:
    - mlb_game_id: MLB Stats API gamePk
    - espn_game_id: ESPN event id (NFL, NHL box scores)
    - odds_api_event_id: The Odds API event id
    """
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)
    sport = Column(String(10), nullable=False, index=True)

    mlb_game_id = Column(String(50), nullable=True, index=True)
    espn_game_id = Column(String(50), nullable=True, index=True)
    odds_api_event_id = Column(String(100), nullable=True, index=True)

    game_date = Column(DateTime, nullable=True, index=True)  # naive UTC
    home_team = Column(String(50), nullable=True)
    away_team = Column(String(50), nullable=True)
    status = Column(String(50), nullable=True)  # free text from upstream feeds
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Game {self.id} {self.sport} {self.away_team}@{self.home_team} status={self.status}>"


class Prediction(Base):
    """A player-prop validation record awaiting or holding its settlement."""
    __tablename__ = "predictions"

    id = Column(String(36), primary_key=True)
    prop_id = Column(String(100), nullable=True)
    game_id_ref = Column(String(100), nullable=False, index=True)  # any external form of a game id
    sport = Column(String(10), nullable=True, index=True)
    player_name = Column(String(255), nullable=False)
    prop_type = Column(String(50), nullable=False)
    threshold = Column(Float, nullable=False)
    prediction = Column(String(10), nullable=False)  # over, under

    # Upstream context, carried through untouched
    projected_value = Column(Float, nullable=True)
    confidence = Column(Float, nullable=True)
    edge = Column(Float, nullable=True)
    odds = Column(Integer, nullable=True)
    probability = Column(Float, nullable=True)
    quality_score = Column(Float, nullable=True)
    source = Column(String(30), nullable=True)  # user_saved, parlay_leg, system_generated
    parlay_id = Column(String(36), ForeignKey("parlays.id", ondelete="SET NULL"), nullable=True, index=True)

    # Settlement
    status = Column(String(20), nullable=False, default=STATUS_PENDING, index=True)
    actual_value = Column(Float, nullable=True)
    result = Column(String(10), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('ix_predictions_status_created', 'status', 'created_at'),
        Index('ix_predictions_parlay_join', 'parlay_id', 'player_name', 'prop_type', 'threshold'),
    )

    def transition_to(self, target: str) -> None:
        """
        Move to ``target`` status, enforcing the lifecycle.

        Leaving ``completed`` is never allowed, and ``result``/``actual_value``
        are cleared whenever the record ends up outside ``completed``.

        Raises:
            InvalidTransition: if the lifecycle forbids the move
        """
        current = self.status or STATUS_PENDING
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current, target)
        self.status = target
        if target != STATUS_COMPLETED:
            self.result = None
            self.actual_value = None

    def append_note(self, note: str) -> None:
        """Append to the free-text notes, pipe-separated."""
        self.notes = f"{self.notes} | {note}" if self.notes else note

    def __repr__(self) -> str:
        return f"<Prediction {self.id} {self.player_name} {self.prediction} {self.threshold} {self.prop_type} status={self.status}>"


class Parlay(Base):
    """A multi-leg bet; status mirrors outcome once settled."""
    __tablename__ = "parlays"

    id = Column(String(36), primary_key=True)
    sport = Column(String(10), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=OUTCOME_PENDING, index=True)
    outcome = Column(String(20), nullable=True)
    actual_result = Column(Text, nullable=True)
    total_legs = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    legs = relationship(
        "ParlayLeg",
        back_populates="parlay",
        cascade="all, delete-orphan",
        order_by="ParlayLeg.leg_order",
    )

    def __repr__(self) -> str:
        return f"<Parlay {self.id} legs={self.total_legs} status={self.status}>"


class ParlayLeg(Base):
    """
    Individual leg within a parlay.

    ``prediction_id`` is optional; legs saved without it are joined to their
    prediction by (parlay_id, player_name, prop_type, threshold).
    """
    __tablename__ = "parlay_legs"

    id = Column(String(36), primary_key=True)
    parlay_id = Column(String(36), ForeignKey("parlays.id", ondelete="CASCADE"), nullable=False, index=True)
    prediction_id = Column(String(36), ForeignKey("predictions.id", ondelete="SET NULL"), nullable=True, index=True)

    leg_order = Column(Integer, nullable=False)
    player_name = Column(String(255), nullable=False)  # player or team selection
    prop_type = Column(String(50), nullable=False)  # prop or bet type
    selection = Column(String(20), nullable=True)  # over, under, side
    threshold = Column(Float, nullable=True)
    outcome = Column(String(20), nullable=False, default=OUTCOME_PENDING)
    actual_result = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    parlay = relationship("Parlay", back_populates="legs")
    prediction = relationship("Prediction")

    def __repr__(self) -> str:
        return f"<ParlayLeg {self.parlay_id}#{self.leg_order} {self.player_name} {self.prop_type} outcome={self.outcome}>"
