"""
Game resolution from loosely-typed game references.

Predictions reference games by whatever id the upstream feed had at hand:
the canonical id, an MLB gamePk, an ESPN event id or an Odds API event id.
The resolver tries an ordered list of strategies and the first hit wins.

Default order:
1. canonical id
2. sport-specific external ids (the hinted sport's own column first)
3. odds market event id
4. with a sport hint: the sport's external id constrained by sport, which
   disambiguates ids that several sports reuse
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from propsettle.core.logging import get_logger, log_event
from propsettle.models import Game
from propsettle.repositories import GameRepository
from propsettle.services.stats import get_sport_config

logger = get_logger(__name__)

SPORT_EXTERNAL_ID_FIELDS = ("mlb_game_id", "espn_game_id")
MARKET_ID_FIELD = "odds_api_event_id"


class ResolverStrategy(ABC):
    """One way of turning a game reference into a Game."""

    name: str = ""

    @abstractmethod
    def find(self, games: GameRepository, game_ref: str, sport_hint: Optional[str]) -> Optional[Game]:
        """Return the matching game or None."""


class CanonicalIdStrategy(ResolverStrategy):
    name = "canonical_id"

    def find(self, games, game_ref, sport_hint):
        return games.find_by_id(game_ref)


class ExternalIdStrategy(ResolverStrategy):
    """Match on one external id column; ambiguous ids do not match."""

    def __init__(self, field: str):
        self.field = field
        self.name = f"external_id:{field}"

    def find(self, games, game_ref, sport_hint):
        return games.find_by_external_id(self.field, game_ref)


class SportScopedStrategy(ResolverStrategy):
    """Match the hinted sport's external id column within that sport only."""

    name = "sport_scoped"

    def find(self, games, game_ref, sport_hint):
        config = get_sport_config(sport_hint)
        if config is None:
            return None
        return games.find_by_external_id_and_sport(config.external_id_field, game_ref, config.sport_id)


def default_strategies(sport_hint: Optional[str] = None) -> List[ResolverStrategy]:
    """Strategy list for a reference, honouring the sport hint's column order."""
    fields = list(SPORT_EXTERNAL_ID_FIELDS)
    config = get_sport_config(sport_hint)
    if config is not None and config.external_id_field in fields:
        fields.remove(config.external_id_field)
        fields.insert(0, config.external_id_field)

    strategies: List[ResolverStrategy] = [CanonicalIdStrategy()]
    strategies.extend(ExternalIdStrategy(field) for field in fields)
    strategies.append(ExternalIdStrategy(MARKET_ID_FIELD))
    if config is not None:
        strategies.append(SportScopedStrategy())
    return strategies


class GameResolver:
    """
    Resolve a game reference to a Game.

    Usage:
        resolver = GameResolver(GameRepository(db))
        game = resolver.resolve("745612", sport_hint="mlb")
    """

    def __init__(self, games: GameRepository, strategies: Optional[List[ResolverStrategy]] = None):
        """
        Args:
            games: Game repository
            strategies: Fixed strategy list; defaults to ``default_strategies``
                for each call's sport hint
        """
        self.games = games
        self.strategies = strategies

    def resolve(self, game_ref: Optional[str], sport_hint: Optional[str] = None) -> Optional[Game]:
        """
        Find the game ``game_ref`` refers to.

        Returns:
            The Game, or None when every strategy misses. None means
            "cannot resolve yet", not an error.
        """
        if game_ref is None or str(game_ref).strip() == "":
            return None
        game_ref = str(game_ref).strip()

        for strategy in self.strategies or default_strategies(sport_hint):
            game = strategy.find(self.games, game_ref, sport_hint)
            if game is not None:
                log_event(
                    logger, logging.DEBUG, "resolved",
                    f"Resolved game ref {game_ref} via {strategy.name}",
                    game_ref=game_ref, game_id=game.id, strategy=strategy.name,
                )
                return game

        return None
