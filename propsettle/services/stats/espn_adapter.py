"""
Shared plumbing for ESPN summary endpoints.

Endpoint: {ESPN_BASE_URL}/{sport_path}/summary?event={eventId}

Summary payload shape (abridged):
    header.competitions[0].status.type.{name, completed}
    boxscore.players[]:
        team.abbreviation
        statistics[]:
            name            category ("passing", "forwards", ...)
            keys / labels   column names, when present
            athletes[]:
                athlete.displayName
                stats[]     string values, or {name, abbreviation, value} objects
"""
from abc import abstractmethod
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pybreaker import CircuitBreaker

from propsettle.core.config import settings
from propsettle.services.core.circuit_breaker import espn_api_breaker
from propsettle.services.stats.base import BaseStatAdapter, PlayerLine

FINAL_STATUS_NAMES = {"STATUS_FINAL", "STATUS_FINAL_OT", "STATUS_FINAL_SO"}


class ESPNSummaryAdapter(BaseStatAdapter):
    """Base for ESPN-backed adapters; subclasses set ``sport_path``."""

    sport_path: str = ""
    provider = "espn"

    def default_breaker(self) -> CircuitBreaker:
        return espn_api_breaker

    def build_url(self, external_game_id: str) -> str:
        return f"{settings.ESPN_BASE_URL}/{self.sport_path}/summary"

    def build_params(self, external_game_id: str) -> Dict[str, Any]:
        return {"event": external_game_id}

    def is_final(self, payload: Dict[str, Any]) -> bool:
        competitions = (payload.get("header") or {}).get("competitions") or []
        if not competitions:
            return False
        status_type = ((competitions[0].get("status") or {}).get("type")) or {}
        return status_type.get("name") in FINAL_STATUS_NAMES or status_type.get("completed") is True

    def extract_players(self, payload: Dict[str, Any]) -> List[PlayerLine]:
        """Merge every category a player appears in into one PlayerLine."""
        lines: Dict[Tuple[Optional[str], str], PlayerLine] = {}
        for team_abbr, category, athlete in self.iter_athletes(payload):
            info = athlete.get("athlete") or {}
            name = info.get("displayName") or info.get("fullName")
            if not name:
                continue
            line = lines.setdefault((team_abbr, name), PlayerLine(name=name, team=team_abbr))
            self.read_category(category, athlete, line.stats)
        return list(lines.values())

    @staticmethod
    def iter_athletes(payload: Dict[str, Any]) -> Iterator[Tuple[Optional[str], Dict[str, Any], Dict[str, Any]]]:
        """Yield (team abbreviation, stat category, athlete entry) triples."""
        boxscore = payload.get("boxscore") or {}
        for team in boxscore.get("players") or []:
            team_abbr = (team.get("team") or {}).get("abbreviation")
            for category in team.get("statistics") or []:
                for athlete in category.get("athletes") or []:
                    yield team_abbr, category, athlete

    @abstractmethod
    def read_category(self, category: Dict[str, Any], athlete: Dict[str, Any], out: Dict[str, float]) -> None:
        """Copy one category's values for one athlete into ``out``."""
