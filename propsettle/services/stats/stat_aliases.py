"""
Per-sport prop type alias tables.

Prop feeds and upstream pick generators have used several names for the same
statistic over time ("hits" and "batter_hits"). Each table maps every known
alias to the adapter's canonical field name. Lookups are case-insensitive.
"""
from typing import Dict, Optional


MLB_STAT_ALIASES: Dict[str, str] = {
    # Batting
    "hits": "hits",
    "batter_hits": "hits",
    "runs": "runs",
    "batter_runs_scored": "runs",
    "rbis": "rbi",
    "rbi": "rbi",
    "batter_rbis": "rbi",
    "home_runs": "homeRuns",
    "batter_home_runs": "homeRuns",
    "batter_strikeouts": "batterStrikeouts",
    "walks": "walks",
    "batter_walks": "walks",
    "stolen_bases": "stolenBases",
    "batter_stolen_bases": "stolenBases",
    "total_bases": "totalBases",
    "batter_total_bases": "totalBases",
    "doubles": "doubles",
    "batter_doubles": "doubles",
    "triples": "triples",
    "batter_triples": "triples",
    "singles": "singles",
    "batter_singles": "singles",
    "hits_runs_rbis": "hitsRunsRbis",
    "batter_hits_runs_rbis": "hitsRunsRbis",
    # Pitching, or batting when the player did not pitch
    "strikeouts": "strikeouts",
    # Pitching
    "pitcher_strikeouts": "pitcherStrikeouts",
    "pitcher_hits_allowed": "hitsAllowed",
    "hits_allowed": "hitsAllowed",
    "pitcher_earned_runs": "earnedRuns",
    "earned_runs": "earnedRuns",
    "pitcher_walks": "walksAllowed",
    "pitcher_outs": "outs",
    "outs": "outs",
    "innings_pitched": "inningsPitched",
    "pitches_thrown": "pitchesThrown",
}


NFL_STAT_ALIASES: Dict[str, str] = {
    "passing_yards": "passingYards",
    "player_passing_yards": "passingYards",
    "player_pass_yds": "passingYards",
    "passing_touchdowns": "passingTouchdowns",
    "player_passing_touchdowns": "passingTouchdowns",
    "player_pass_tds": "passingTouchdowns",
    "passing_completions": "passingCompletions",
    "player_passing_completions": "passingCompletions",
    "player_pass_completions": "passingCompletions",
    "passing_attempts": "passingAttempts",
    "player_passing_attempts": "passingAttempts",
    "player_pass_attempts": "passingAttempts",
    "interceptions": "interceptions",
    "player_interceptions": "interceptions",
    "player_pass_interceptions": "interceptions",
    "rushing_yards": "rushingYards",
    "player_rushing_yards": "rushingYards",
    "player_rush_yds": "rushingYards",
    "rushing_touchdowns": "rushingTouchdowns",
    "player_rushing_touchdowns": "rushingTouchdowns",
    "player_rush_tds": "rushingTouchdowns",
    "rushing_attempts": "rushingAttempts",
    "player_rushing_attempts": "rushingAttempts",
    "player_rush_attempts": "rushingAttempts",
    "receiving_yards": "receivingYards",
    "player_receiving_yards": "receivingYards",
    "player_reception_yds": "receivingYards",
    "receiving_touchdowns": "receivingTouchdowns",
    "player_receiving_touchdowns": "receivingTouchdowns",
    "player_reception_tds": "receivingTouchdowns",
    "receptions": "receptions",
    "player_receptions": "receptions",
    "targets": "targets",
    "player_targets": "targets",
    "rush_reception_yards": "rushReceptionYards",
    "player_rush_reception_yds": "rushReceptionYards",
    "tackles": "tackles",
    "player_tackles": "tackles",
    "sacks": "sacks",
    "player_sacks": "sacks",
    "defensive_interceptions": "defensiveInterceptions",
    "player_defensive_interceptions": "defensiveInterceptions",
    "kick_return_yards": "kickReturnYards",
    "punt_return_yards": "puntReturnYards",
}


NHL_STAT_ALIASES: Dict[str, str] = {
    "goals": "goals",
    "player_goals": "goals",
    "assists": "assists",
    "player_assists": "assists",
    "points": "points",
    "player_points": "points",
    "shots": "shots",
    "shots_on_goal": "shots",
    "player_shots_on_goal": "shots",
    "powerplay_points": "powerPlayPoints",
    "power_play_points": "powerPlayPoints",
    "player_power_play_points": "powerPlayPoints",
    "blocked_shots": "blockedShots",
    "player_blocked_shots": "blockedShots",
    "saves": "saves",
    "goalie_saves": "saves",
    "player_total_saves": "saves",
    "hits": "hits",
    "player_hits": "hits",
}


def resolve_alias(table: Dict[str, str], stat_key: str) -> Optional[str]:
    """Canonical field for ``stat_key`` in ``table``, or None if unknown."""
    if not stat_key:
        return None
    return table.get(stat_key.strip().lower())
