"""
NFL stat provider backed by the ESPN football summary endpoint.

ESPN reports each box score category as positional string columns, e.g.
passing is ``C/ATT, YDS, AVG, TD, INT, SACKS, QBR, RTG``. The column table
below names the positions we read; ``None`` marks a skipped column.
"""
from typing import Any, Dict, Optional

from propsettle.core.exceptions import StatUnavailable
from propsettle.services.stats.base import PlayerLine, to_number
from propsettle.services.stats.espn_adapter import ESPNSummaryAdapter
from propsettle.services.stats.stat_aliases import NFL_STAT_ALIASES, resolve_alias

NFL_CATEGORY_COLUMNS = {
    # C/ATT, YDS, AVG, TD, INT, ...
    "passing": ("passingCompletions/passingAttempts", "passingYards", None, "passingTouchdowns", "interceptions"),
    # CAR, YDS, AVG, TD, LONG
    "rushing": ("rushingAttempts", "rushingYards", None, "rushingTouchdowns"),
    # REC, YDS, AVG, TD, LONG, TGTS
    "receiving": ("receptions", "receivingYards", None, "receivingTouchdowns", None, "targets"),
    # TOT, SOLO, SACKS, TFL, PD, QB HTS, TD
    "defensive": ("tackles", None, "sacks"),
    # INT, YDS, TD
    "interceptions": ("defensiveInterceptions",),
    # NO, YDS, AVG, LONG, TD
    "kickReturns": (None, "kickReturnYards", None, None, "kickReturnTouchdowns"),
    "puntReturns": (None, "puntReturnYards", None, None, "puntReturnTouchdowns"),
}


class NFLStatAdapter(ESPNSummaryAdapter):
    """Player stats for finished NFL games, keyed by ESPN event id."""

    sport = "nfl"
    sport_path = "football/nfl"

    def read_category(self, category: Dict[str, Any], athlete: Dict[str, Any], out: Dict[str, float]) -> None:
        columns = NFL_CATEGORY_COLUMNS.get(category.get("name"))
        if not columns:
            return
        values = athlete.get("stats") or []
        for index, field in enumerate(columns):
            if field is None or index >= len(values):
                continue
            raw = values[index]
            if "/" in field:
                # "22/31" -> completions and attempts
                made_field, attempts_field = field.split("/")
                parts = str(raw).split("/")
                if len(parts) == 2:
                    made, attempts = to_number(parts[0]), to_number(parts[1])
                    if made is not None:
                        out[made_field] = made
                    if attempts is not None:
                        out[attempts_field] = attempts
                continue
            value = to_number(raw)
            if value is not None:
                out[field] = value

    def resolve_stat(self, player: PlayerLine, stat_key: str) -> Optional[float]:
        field = resolve_alias(NFL_STAT_ALIASES, stat_key)
        if field is None:
            raise StatUnavailable(f"Unknown NFL prop type: {stat_key}")

        stats = player.stats
        if field == "rushReceptionYards":
            rushing, receiving = stats.get("rushingYards"), stats.get("receivingYards")
            if rushing is None and receiving is None:
                return None
            # Absent from one category means no yards there
            return (rushing or 0) + (receiving or 0)
        return stats.get(field)
