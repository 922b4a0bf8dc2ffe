"""
Settlement failure taxonomy.

Every kind here is absorbed inside the processing of a single prediction:
either turned into a ``needs_review`` transition or into a no-op that leaves
the record ``pending``. None of them escape the batch loop.
"""
from typing import Optional


class SettlementError(Exception):
    """Base class for anticipated per-item settlement failures."""

    def __init__(self, message: str, note: Optional[str] = None):
        super().__init__(message)
        self.note = note or message


class GameNotResolved(SettlementError):
    """The game reference matched no Game record."""


class GameNotFinal(SettlementError):
    """The game has not concluded yet. Not an error; the record stays pending."""


class ExternalIdMissing(SettlementError):
    """The game lacks the external id the sport's stat provider needs."""


class StatUnavailable(SettlementError):
    """The provider has no usable value for this player and statistic."""


class UnsupportedSport(SettlementError):
    """No stat provider is registered for the prediction's sport."""


class ProviderTransportError(SettlementError):
    """Network failure, non-2xx response or open circuit breaker."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NameMatchFailure(SettlementError):
    """No player in the provider payload matched the requested name."""


class InvalidTransition(Exception):
    """A prediction status change that the lifecycle does not allow."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Illegal status transition {current} -> {target}")
        self.current = current
        self.target = target
