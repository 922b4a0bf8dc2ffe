"""
Base repository class for data access layer.

Services depend on repositories rather than on the session directly, so the
settlement core can be exercised against an in-memory database or a mock.

Example:
    class GameRepository(BaseRepository[Game]):
        def find_by_espn_id(self, espn_id: str) -> Optional[Game]:
            return self.query().filter(Game.espn_game_id == espn_id).first()
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, Any, Dict
from sqlalchemy import func
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Lookups
    # ========================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        return self.query().filter(self.model_type.id == id).first()

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where_unique(self, *criterion) -> Optional[T]:
        """
        Return the only record matching the criterion.

        Returns None when nothing matches or when more than one record does.
        """
        matches = self.query().filter(*criterion).limit(2).all()
        if len(matches) == 1:
            return matches[0]
        return None

    # ========================================================================
    # Aggregates
    # ========================================================================

    def count(self, *criterion) -> int:
        """Count records matching optional criterion."""
        query = self.db.query(func.count(self.model_type.id))
        if criterion:
            query = query.filter(*criterion)
        return query.scalar() or 0

    def group_by_and_count(self, group_field: str, *additional_criterion) -> Dict[Any, int]:
        """Group by a field and count records in each group."""
        column = getattr(self.model_type, group_field)
        query = self.db.query(column, func.count(self.model_type.id))
        if additional_criterion:
            query = query.filter(*additional_criterion)
        return {value: count for value, count in query.group_by(column).all()}
