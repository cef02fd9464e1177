"""Ordered fallback strategies.

A strategy is a named attempt that either yields a value or ``None``.
``first_success`` evaluates a list of them in order and stops at the
first one that produces something.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

from vidscribe.util.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    """A single named attempt.

    Attributes:
        name: Human-readable label used in logs.
        attempt: Callable returning a value on success, ``None`` otherwise.
        applies: Optional predicate; the strategy is skipped when it is False.
    """

    name: str
    attempt: Callable[[], T | None]
    applies: Callable[[], bool] | None = None

    def run(self) -> T | None:
        if self.applies is not None and not self.applies():
            logger.debug("Skipping strategy %s (not applicable)", self.name)
            return None
        return self.attempt()


@dataclass(frozen=True)
class StrategyOutcome(Generic[T]):
    """Result of evaluating a strategy list."""

    value: T | None
    strategy: str | None
    tried: tuple[str, ...]

    @property
    def ok(self) -> bool:
        return self.value is not None


def first_success(strategies: Iterable[Strategy[T]]) -> StrategyOutcome[T]:
    """Run *strategies* in order until one returns a non-None value.

    Args:
        strategies: Ordered strategies; may be a lazy iterable.

    Returns:
        Outcome holding the winning value and strategy name, or an empty
        outcome listing every strategy that was tried.
    """
    tried: list[str] = []
    for strategy in strategies:
        tried.append(strategy.name)
        value = strategy.run()
        if value is not None:
            logger.debug("Strategy %s succeeded", strategy.name)
            return StrategyOutcome(value, strategy.name, tuple(tried))
        logger.debug("Strategy %s failed", strategy.name)
    return StrategyOutcome(None, None, tuple(tried))
