"""Settlement service for player-prop predictions and parlays."""

__version__ = "1.0.0"
