"""
Stat provider adapters and the per-sport registry.

Each supported sport names the Game column holding the id its provider
expects and the adapter class that talks to that provider.

Usage:
    registry = StatProviderRegistry()
    config = get_sport_config("nhl")
    adapter = registry.get("nhl")
    value = adapter.get_stat(getattr(game, config.external_id_field), "Auston Matthews", "goals")
    registry.close()
"""
from dataclasses import dataclass
from typing import Dict, Optional, Type

from propsettle.services.stats.base import BaseStatAdapter, PlayerLine
from propsettle.services.stats.mlb_adapter import MLBStatAdapter
from propsettle.services.stats.nfl_adapter import NFLStatAdapter
from propsettle.services.stats.nhl_adapter import NHLStatAdapter


@dataclass(frozen=True)
class SportConfig:
    """Settlement configuration for one sport."""
    sport_id: str
    name: str
    external_id_field: str  # Game column holding the provider's game id
    adapter_class: Type[BaseStatAdapter]


SPORT_CONFIGS: Dict[str, SportConfig] = {
    "mlb": SportConfig("mlb", "MLB", "mlb_game_id", MLBStatAdapter),
    "nfl": SportConfig("nfl", "NFL", "espn_game_id", NFLStatAdapter),
    "nhl": SportConfig("nhl", "NHL", "espn_game_id", NHLStatAdapter),
}


def get_sport_config(sport: Optional[str]) -> Optional[SportConfig]:
    """Config for ``sport`` (case-insensitive), or None if unsupported."""
    if not sport:
        return None
    return SPORT_CONFIGS.get(sport.lower())


class StatProviderRegistry:
    """
    Lazily builds one adapter per sport and reuses it.

    Adapters may be injected (tests pass mocks); anything not injected is
    built from SPORT_CONFIGS on first use.
    """

    def __init__(self, adapters: Optional[Dict[str, BaseStatAdapter]] = None):
        self._adapters: Dict[str, BaseStatAdapter] = dict(adapters or {})
        self._built: Dict[str, BaseStatAdapter] = {}

    def get(self, sport: str) -> Optional[BaseStatAdapter]:
        """Adapter for ``sport``, or None if the sport has no provider."""
        key = (sport or "").lower()
        if key in self._adapters:
            return self._adapters[key]
        config = SPORT_CONFIGS.get(key)
        if config is None:
            return None
        adapter = config.adapter_class()
        self._adapters[key] = adapter
        self._built[key] = adapter
        return adapter

    def close(self) -> None:
        """Close adapters this registry built itself."""
        for key, adapter in self._built.items():
            adapter.close()
            self._adapters.pop(key, None)
        self._built.clear()


__all__ = [
    "BaseStatAdapter",
    "PlayerLine",
    "MLBStatAdapter",
    "NFLStatAdapter",
    "NHLStatAdapter",
    "SportConfig",
    "SPORT_CONFIGS",
    "get_sport_config",
    "StatProviderRegistry",
]
