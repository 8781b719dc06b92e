"""Exception hierarchy for the trade matching engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MatchResult


class TradeMatcherError(Exception):
    """Base class for all errors raised by the engine."""


class NoMatchesFoundError(TradeMatcherError):
    """Raised when a non-empty input produced no summary rows at all."""

    def __init__(self, message: str, result: "MatchResult | None" = None) -> None:
        super().__init__(message)
        self.result = result


class MatchingEngineError(TradeMatcherError):
    """Wraps an unexpected failure during a matching pass."""

    def __init__(self, strategy: str, message: str | None = None) -> None:
        self.strategy = strategy
        super().__init__(message or f"Error processing transactions ({strategy}).")


class MatchCancelledError(TradeMatcherError):
    """Raised when a cancellation token is triggered between assets."""


class HeaderNotFoundError(TradeMatcherError):
    """Raised when an uploaded sheet has no recognisable header row."""


__all__ = [
    "TradeMatcherError",
    "NoMatchesFoundError",
    "MatchingEngineError",
    "MatchCancelledError",
    "HeaderNotFoundError",
]
