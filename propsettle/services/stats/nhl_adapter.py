"""
NHL stat provider backed by the ESPN hockey summary endpoint.

Skater and goalie groups carry column ``keys`` and ``labels``; every value
is stored under both, lower-cased, so a canonical stat can be found by any
of the names ESPN has used for it.
"""
from typing import Any, Dict, Optional

from propsettle.core.exceptions import StatUnavailable
from propsettle.services.stats.base import PlayerLine, first_present, to_number
from propsettle.services.stats.espn_adapter import ESPNSummaryAdapter
from propsettle.services.stats.stat_aliases import NHL_STAT_ALIASES, resolve_alias

# Canonical stat -> ESPN names it may appear under (lower-case)
NHL_FIELD_NAMES = {
    "goals": ("goals", "g"),
    "assists": ("assists", "a"),
    "points": ("points", "pts"),
    "shots": ("shotstotal", "shots", "sog", "shotsongoal", "s"),
    "powerPlayPoints": ("powerplaypoints", "ppp"),
    "powerPlayGoals": ("powerplaygoals", "ppg"),
    "powerPlayAssists": ("powerplayassists", "ppa"),
    "blockedShots": ("blockedshots", "bs", "blk"),
    "saves": ("saves", "sv"),
    "hits": ("hits", "ht"),
}


class NHLStatAdapter(ESPNSummaryAdapter):
    """Player stats for finished NHL games, keyed by ESPN event id."""

    sport = "nhl"
    sport_path = "hockey/nhl"

    def read_category(self, category: Dict[str, Any], athlete: Dict[str, Any], out: Dict[str, float]) -> None:
        values = athlete.get("stats") or []

        if values and isinstance(values[0], dict):
            for stat in values:
                value = to_number(stat.get("value", stat.get("displayValue")))
                if value is None:
                    continue
                for name_field in ("name", "label", "abbreviation"):
                    name = stat.get(name_field)
                    if name:
                        out[str(name).lower()] = value
            return

        keys = category.get("keys") or []
        labels = category.get("labels") or []
        for index, raw in enumerate(values):
            value = to_number(raw)
            if value is None:
                continue
            if index < len(keys) and keys[index]:
                out[keys[index].lower()] = value
            if index < len(labels) and labels[index]:
                out.setdefault(labels[index].lower(), value)

    def resolve_stat(self, player: PlayerLine, stat_key: str) -> Optional[float]:
        field = resolve_alias(NHL_STAT_ALIASES, stat_key)
        if field is None:
            raise StatUnavailable(f"Unknown NHL prop type: {stat_key}")

        stats = player.stats
        value = first_present(stats, NHL_FIELD_NAMES[field])
        if value is not None:
            return value

        goals = first_present(stats, NHL_FIELD_NAMES["goals"])
        assists = first_present(stats, NHL_FIELD_NAMES["assists"])

        if field == "points":
            if goals is not None and assists is not None:
                return goals + assists
            return None

        if field == "powerPlayPoints":
            pp_goals = first_present(stats, NHL_FIELD_NAMES["powerPlayGoals"])
            pp_assists = first_present(stats, NHL_FIELD_NAMES["powerPlayAssists"])
            if pp_goals is not None and pp_assists is not None:
                return pp_goals + pp_assists
            # No points at all means no power-play points; anything else is a guess
            if goals == 0 and assists == 0:
                return 0.0
            return None

        return None
