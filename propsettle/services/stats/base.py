"""
Base stat provider adapter.

Every sport adapter answers one question: what value did this player post for
this statistic in this finished game? The shared flow is:

1. fetch the provider payload (httpx with tenacity retries behind a pybreaker
   circuit breaker)
2. confirm the provider reports the game final
3. flatten the payload into ``PlayerLine`` records
4. match the player by name (optionally narrowed by team)
5. translate the prop type through the sport's alias table and read or
   derive the value

Failures inside the flow raise the settlement exceptions; ``get_stat``
absorbs all of them and returns None, so nothing escapes the adapter.

Usage:
    adapter = NHLStatAdapter()
    goals = adapter.get_stat("401559500", "Auston Matthews", "player_goals")
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from propsettle.core.config import settings
from propsettle.core.exceptions import (
    GameNotFinal,
    NameMatchFailure,
    ProviderTransportError,
    SettlementError,
    StatUnavailable,
)
from propsettle.core.logging import get_logger, log_event
from propsettle.core import metrics
from propsettle.utils.name_normalizer import match_player, closest_name

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class PlayerLine:
    """One player's stat line flattened out of a provider payload."""
    name: str
    team: Optional[str] = None
    stats: Dict[str, float] = field(default_factory=dict)


class BaseStatAdapter(ABC):
    """
    Template for per-sport stat providers.

    Subclasses set ``sport`` and ``provider`` and implement ``build_url``,
    ``is_final``, ``extract_players`` and ``resolve_stat``.
    """

    sport: str = ""
    provider: str = ""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        breaker: Optional[CircuitBreaker] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            client: HTTP client to use; one is created (and owned) if omitted
            breaker: Circuit breaker guarding this provider
            max_attempts: Attempts per request, including the first
            timeout: Request timeout in seconds
        """
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout or settings.STAT_API_TIMEOUT)
        self.breaker = breaker or self.default_breaker()
        self.max_attempts = max_attempts

    # ========================================================================
    # Public API
    # ========================================================================

    def get_stat(
        self,
        external_game_id: str,
        player_name: str,
        stat_key: str,
        extra_hint: Optional[str] = None,
    ) -> Optional[float]:
        """
        Actual value of ``stat_key`` for ``player_name`` in a finished game.

        Args:
            external_game_id: The provider's game id
            player_name: Player name as written on the prediction
            stat_key: Prop type, under any known alias
            extra_hint: Optional team abbreviation to narrow the player search

        Returns:
            The value as a float, or None when it is not available
        """
        context = {
            "sport": self.sport,
            "external_game_id": external_game_id,
            "player_name": player_name,
            "stat_key": stat_key,
        }
        try:
            return self._lookup(external_game_id, player_name, stat_key, extra_hint)
        except GameNotFinal as e:
            log_event(logger, logging.INFO, "not_final", str(e), **context)
        except ProviderTransportError as e:
            log_event(logger, logging.WARNING, "provider_error", str(e), status_code=e.status_code, **context)
        except SettlementError as e:
            log_event(logger, logging.WARNING, "stat_unavailable", str(e), **context)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log_event(
                logger, logging.WARNING, "stat_unavailable",
                f"Unexpected {self.provider} payload shape: {e}", exc_info=True, **context
            )
        return None

    def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            self.client.close()

    # ========================================================================
    # Lookup Flow
    # ========================================================================

    def _lookup(
        self,
        external_game_id: str,
        player_name: str,
        stat_key: str,
        extra_hint: Optional[str],
    ) -> float:
        payload = self.fetch_json(self.build_url(external_game_id), self.build_params(external_game_id))

        if not self.is_final(payload):
            raise GameNotFinal(f"{self.provider} does not report game {external_game_id} as final")

        players = self.extract_players(payload)
        player = self.find_player(player_name, players, extra_hint)

        value = self.resolve_stat(player, stat_key)
        if value is None:
            raise StatUnavailable(f"{stat_key} not available for {player.name} in game {external_game_id}")
        return float(value)

    def find_player(
        self,
        player_name: str,
        players: List[PlayerLine],
        team_hint: Optional[str] = None,
    ) -> PlayerLine:
        """
        Match ``player_name`` against the payload's players.

        A team hint narrows the candidates only when it leaves at least one.

        Raises:
            NameMatchFailure: if no candidate matches
        """
        candidates = players
        if team_hint:
            on_team = [p for p in players if p.team and p.team.upper() == team_hint.upper()]
            if on_team:
                candidates = on_team

        player = match_player(player_name, candidates, key=lambda p: p.name)
        if player is None:
            suggestion = closest_name(player_name, [p.name for p in candidates])
            hint = f" (closest: {suggestion[0]}, score {suggestion[1]:.0f})" if suggestion else ""
            raise NameMatchFailure(f"No player matching '{player_name}' in {self.provider} box score{hint}")
        return player

    # ========================================================================
    # HTTP
    # ========================================================================

    def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET ``url`` and decode the JSON body.

        Transport errors and 5xx responses are retried with exponential
        backoff; the whole retried call counts once against the breaker.

        Raises:
            ProviderTransportError: on transport failure, non-200 status,
                open circuit or an undecodable body
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
            reraise=True,
        )
        try:
            response = self.breaker.call(retrying, self._get, url, params)
        except CircuitBreakerError as e:
            metrics.stat_provider_requests_total.labels(provider=self.provider, result="circuit_open").inc()
            raise ProviderTransportError(f"Circuit '{self.breaker.name}' open: {e}") from e
        except httpx.HTTPStatusError as e:
            metrics.stat_provider_requests_total.labels(provider=self.provider, result="http_error").inc()
            raise ProviderTransportError(
                f"{self.provider} returned {e.response.status_code} for {url}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            metrics.stat_provider_requests_total.labels(provider=self.provider, result="transport_error").inc()
            raise ProviderTransportError(f"{self.provider} request failed for {url}: {e}") from e

        if response.status_code != 200:
            metrics.stat_provider_requests_total.labels(provider=self.provider, result="http_error").inc()
            raise ProviderTransportError(
                f"{self.provider} returned {response.status_code} for {url}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            metrics.stat_provider_requests_total.labels(provider=self.provider, result="http_error").inc()
            raise ProviderTransportError(f"{self.provider} returned invalid JSON for {url}") from e

        metrics.stat_provider_requests_total.labels(provider=self.provider, result="success").inc()
        return payload

    def _get(self, url: str, params: Optional[Dict[str, Any]]) -> httpx.Response:
        response = self.client.get(url, params=params)
        # Only server errors are worth retrying; 4xx is returned as-is
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    # ========================================================================
    # Provider Specifics
    # ========================================================================

    @abstractmethod
    def default_breaker(self) -> CircuitBreaker:
        """Shared breaker for this provider."""

    @abstractmethod
    def build_url(self, external_game_id: str) -> str:
        """Payload URL for a game."""

    def build_params(self, external_game_id: str) -> Optional[Dict[str, Any]]:
        """Query parameters for the payload request."""
        return None

    @abstractmethod
    def is_final(self, payload: Dict[str, Any]) -> bool:
        """Whether the provider reports the game final."""

    @abstractmethod
    def extract_players(self, payload: Dict[str, Any]) -> List[PlayerLine]:
        """Flatten the payload into player stat lines."""

    @abstractmethod
    def resolve_stat(self, player: PlayerLine, stat_key: str) -> Optional[float]:
        """
        Value of ``stat_key`` for ``player``.

        Raises:
            StatUnavailable: if the prop type is unknown for this sport
        """


def to_number(value: Any) -> Optional[float]:
    """Parse a provider stat value ("27", 27, "--") into a float or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def first_present(stats: Dict[str, float], names: Iterable[str]) -> Optional[float]:
    """First value found in ``stats`` under any of ``names``."""
    for name in names:
        value = stats.get(name)
        if value is not None:
            return value
    return None
