"""
Circuit breakers for stat provider calls.

Uses pybreaker. After ``fail_max`` consecutive failed calls a breaker opens
and further calls fail immediately until ``reset_timeout`` elapses; then one
trial call is let through (half-open).

Circuit Breakers:
- espn_api_breaker: ESPN summary endpoints (NFL, NHL)
- mlb_api_breaker: MLB Stats API
"""
from pybreaker import CircuitBreaker

from propsettle.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5  # Number of failures before opening circuit
DEFAULT_RESET_TIMEOUT = 60  # Seconds before attempting to close circuit


espn_api_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="espn_api",
)


mlb_api_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="mlb_api",
)


def new_breaker(name: str, fail_max: int = DEFAULT_FAIL_MAX, reset_timeout: int = DEFAULT_RESET_TIMEOUT) -> CircuitBreaker:
    """Create a standalone breaker (used for isolated adapters in scripts and tests)."""
    return CircuitBreaker(fail_max=fail_max, reset_timeout=reset_timeout, name=name)


def get_breaker_state(breaker: CircuitBreaker) -> str:
    """Current state: 'closed', 'open', or 'half-open'."""
    return breaker.current_state


def get_all_breaker_states() -> dict[str, str]:
    """Current state of every provider breaker, keyed by name."""
    return {
        "espn_api": get_breaker_state(espn_api_breaker),
        "mlb_api": get_breaker_state(mlb_api_breaker),
    }
