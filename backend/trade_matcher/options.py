"""Caller-facing knobs for a matching pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from .errors import MatchCancelledError
from .models import BuyWindow, MatchDirection, MatchingStrategy
from .stablecoins import DEFAULT_STABLECOINS, normalize_stablecoin_set

if TYPE_CHECKING:
    from .config import MatcherSettings


@dataclass(frozen=True)
class MatchOptions:
    """Behavioural switches shared by all strategies.

    ``per_match_output`` left as ``None`` means the strategy default: one row
    per match for chronological FIFO, one row per asset per day otherwise.
    """

    buy_window: BuyWindow = BuyWindow.CUMULATIVE
    track_skipped: bool = False
    track_unmatched_remainder: bool = False
    per_match_output: Optional[bool] = None
    stablecoins: frozenset[str] = field(default=DEFAULT_STABLECOINS)
    direction: MatchDirection = MatchDirection.INR_BUY_USDT_SELL
    yield_every: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "stablecoins", normalize_stablecoin_set(self.stablecoins))
        object.__setattr__(self, "buy_window", BuyWindow(self.buy_window))
        object.__setattr__(self, "direction", MatchDirection(self.direction))
        if self.yield_every < 1:
            raise ValueError("yield_every must be at least 1")

    def emits_per_match(self, strategy: MatchingStrategy) -> bool:
        if self.per_match_output is not None:
            return self.per_match_output
        return strategy is MatchingStrategy.CHRONOLOGICAL_FIFO

    def with_stablecoins(self, symbols: Iterable[str]) -> "MatchOptions":
        return MatchOptions(
            buy_window=self.buy_window,
            track_skipped=self.track_skipped,
            track_unmatched_remainder=self.track_unmatched_remainder,
            per_match_output=self.per_match_output,
            stablecoins=frozenset(symbols),
            direction=self.direction,
            yield_every=self.yield_every,
        )

    @classmethod
    def from_settings(cls, settings: "MatcherSettings", **overrides) -> "MatchOptions":  # noqa: ANN003
        values = {
            "buy_window": settings.buy_window,
            "track_skipped": settings.track_skipped,
            "track_unmatched_remainder": settings.track_unmatched_remainder,
            "stablecoins": frozenset(settings.stablecoins),
            "yield_every": settings.yield_every,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


@dataclass(frozen=True)
class ProgressUpdate:
    phase: str
    current: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.current / self.total * 100)


ProgressCallback = Callable[[ProgressUpdate], None]


class CancellationToken:
    """Cooperative abort flag checked by the engine between assets."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise MatchCancelledError("Matching pass was cancelled")


__all__ = ["MatchOptions", "ProgressUpdate", "ProgressCallback", "CancellationToken"]
