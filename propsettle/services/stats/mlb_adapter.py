"""
MLB stat provider backed by the public MLB Stats API.

Endpoint: {MLB_API_BASE_URL}/v1.1/game/{gamePk}/feed/live

The live feed carries both the game status (gameData.status) and the full
box score (liveData.boxscore), so one request answers both questions.
"""
from typing import Any, Dict, List, Optional

from pybreaker import CircuitBreaker

from propsettle.core.config import settings
from propsettle.core.exceptions import StatUnavailable
from propsettle.services.core.circuit_breaker import mlb_api_breaker
from propsettle.services.stats.base import BaseStatAdapter, PlayerLine, to_number
from propsettle.services.stats.stat_aliases import MLB_STAT_ALIASES, resolve_alias

# Box score batting field -> canonical field
BATTING_FIELDS = {
    "hits": "hits",
    "runs": "runs",
    "rbi": "rbi",
    "homeRuns": "homeRuns",
    "strikeOuts": "batterStrikeouts",
    "baseOnBalls": "walks",
    "stolenBases": "stolenBases",
    "doubles": "doubles",
    "triples": "triples",
    "atBats": "atBats",
}

# Box score pitching field -> canonical field
PITCHING_FIELDS = {
    "strikeOuts": "pitcherStrikeouts",
    "hits": "hitsAllowed",
    "earnedRuns": "earnedRuns",
    "baseOnBalls": "walksAllowed",
    "outs": "outs",
    "inningsPitched": "inningsPitched",
    "numberOfPitches": "pitchesThrown",
}


class MLBStatAdapter(BaseStatAdapter):
    """Player stats for finished MLB games, keyed by gamePk."""

    sport = "mlb"
    provider = "mlb_stats_api"

    def default_breaker(self) -> CircuitBreaker:
        return mlb_api_breaker

    def build_url(self, external_game_id: str) -> str:
        return f"{settings.MLB_API_BASE_URL}/v1.1/game/{external_game_id}/feed/live"

    def is_final(self, payload: Dict[str, Any]) -> bool:
        status = (payload.get("gameData") or {}).get("status") or {}
        return status.get("abstractGameState") == "Final" or status.get("codedGameState") == "F"

    def extract_players(self, payload: Dict[str, Any]) -> List[PlayerLine]:
        game_teams = (payload.get("gameData") or {}).get("teams") or {}
        box_teams = ((payload.get("liveData") or {}).get("boxscore") or {}).get("teams") or {}

        players: List[PlayerLine] = []
        for side in ("home", "away"):
            team = box_teams.get(side) or {}
            abbreviation = (
                (game_teams.get(side) or {}).get("abbreviation")
                or (team.get("team") or {}).get("abbreviation")
            )
            for entry in (team.get("players") or {}).values():
                name = (entry.get("person") or {}).get("fullName")
                if not name:
                    continue
                stats = entry.get("stats") or {}
                line = PlayerLine(name=name, team=abbreviation)
                self._read_fields(stats.get("batting"), BATTING_FIELDS, line.stats)
                self._read_fields(stats.get("pitching"), PITCHING_FIELDS, line.stats)
                players.append(line)
        return players

    @staticmethod
    def _read_fields(section: Optional[Dict[str, Any]], mapping: Dict[str, str], out: Dict[str, float]) -> None:
        # An empty section means the player did not bat (or pitch)
        if not section:
            return
        for raw, canonical in mapping.items():
            value = to_number(section.get(raw))
            if value is not None:
                out[canonical] = value

    def resolve_stat(self, player: PlayerLine, stat_key: str) -> Optional[float]:
        field = resolve_alias(MLB_STAT_ALIASES, stat_key)
        if field is None:
            raise StatUnavailable(f"Unknown MLB prop type: {stat_key}")

        stats = player.stats
        if field == "strikeouts":
            # Pitching strikeouts take precedence for two-way lines
            if "pitcherStrikeouts" in stats:
                return stats["pitcherStrikeouts"]
            return stats.get("batterStrikeouts")
        if field == "totalBases":
            return self._total_bases(stats)
        if field == "singles":
            if "hits" not in stats:
                return None
            return stats["hits"] - stats.get("doubles", 0) - stats.get("triples", 0) - stats.get("homeRuns", 0)
        if field == "hitsRunsRbis":
            parts = [stats.get("hits"), stats.get("runs"), stats.get("rbi")]
            if any(p is None for p in parts):
                return None
            return sum(parts)
        return stats.get(field)

    @staticmethod
    def _total_bases(stats: Dict[str, float]) -> Optional[float]:
        """hits + 2B + 2*3B + 3*HR (equals 1B + 2*2B + 3*3B + 4*HR)."""
        if "hits" not in stats:
            return None
        return (
            stats["hits"]
            + stats.get("doubles", 0)
            + 2 * stats.get("triples", 0)
            + 3 * stats.get("homeRuns", 0)
        )

