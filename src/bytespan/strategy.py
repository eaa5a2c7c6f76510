"""Context truncation strategies used when building model inputs."""

import logging
from abc import ABC, abstractmethod
from typing import Final, Literal, overload, override

from .errors import StrategyError

log = logging.getLogger(__name__)

# =========================================================================================

# context truncation strategies


class TruncationStrategy(ABC):
    """Base strategy deciding which context tokens each model input covers."""

    name: str = "base"

    @abstractmethod
    def windows(self, n_tokens: int, window_size: int) -> list[tuple[int, int]]:
        """
        Return half-open ``(start, stop)`` context token ranges, one per model input.

        Always returns at least one range; an empty context yields ``[(0, 0)]``.
        """


class TruncateStrategy(TruncationStrategy):
    """Strategy that keeps the first window of context and drops the rest."""

    name = "truncate"

    @override
    def windows(self, n_tokens: int, window_size: int) -> list[tuple[int, int]]:
        """Return a single window over the leading context tokens."""
        stop = min(n_tokens, max(0, window_size))
        if stop < n_tokens:
            log.info(f"context truncated to {stop} of {n_tokens} tokens")
        return [(0, stop)]


class SlidingWindowStrategy(TruncationStrategy):
    """Strategy that splits long contexts into overlapping windows."""

    name = "sliding-window"

    def __init__(self, stride: int = 32) -> None:
        """
        :param stride: Number of tokens shared by consecutive windows.
        :raises StrategyError: If ``stride`` is negative.
        """
        super().__init__()
        if stride < 0:
            raise StrategyError(f"stride must be non-negative, got {stride}")
        self.stride = stride

    @override
    def windows(self, n_tokens: int, window_size: int) -> list[tuple[int, int]]:
        """Return overlapping windows until the last context token is covered."""
        if n_tokens == 0 or window_size <= 0:
            return [(0, 0)]

        # windows always advance by at least half their size
        overlap = min(self.stride, window_size // 2)
        step = window_size - overlap

        spans: list[tuple[int, int]] = []
        start = 0
        while True:
            stop = min(start + window_size, n_tokens)
            spans.append((start, stop))
            if stop >= n_tokens:
                break
            start += step

        if len(spans) > 1:
            log.debug(
                f"context of {n_tokens} tokens split into {len(spans)} windows "
                f"(size {window_size}, overlap {overlap})"
            )
        return spans

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(stride={self.stride})"


StrategyName = Literal["truncate", "sliding-window"]

_TRUNCATION_STRATEGIES: Final[dict[str, type[TruncationStrategy]]] = {
    "truncate": TruncateStrategy,
    "sliding-window": SlidingWindowStrategy,
}


def list_strategies() -> list[str]:
    """Return available truncation strategy names."""
    return list(_TRUNCATION_STRATEGIES.keys())


@overload
def get_strategy(name: Literal["truncate"]) -> TruncateStrategy:
    """Return the single-window strategy."""
    ...


@overload
def get_strategy(
    name: Literal["sliding-window"], stride: int | None = None
) -> SlidingWindowStrategy:
    """Return a sliding-window strategy sharing ``stride`` tokens between windows."""
    ...


def get_strategy(
    name: StrategyName = "truncate", stride: int | None = None
) -> TruncationStrategy:
    """
    Create a truncation strategy by name.

    :param name: Strategy identifier, "truncate" or "sliding-window".
    :param stride: Overlap between windows; only used by "sliding-window".
    :raises StrategyError: If name is unknown.
    """
    if name not in _TRUNCATION_STRATEGIES:
        raise StrategyError(
            "unknown strategy name",
            invalid_name=name,
            available=list(_TRUNCATION_STRATEGIES.keys()),
        )

    if name == "sliding-window":
        if stride is None:
            return SlidingWindowStrategy()
        return SlidingWindowStrategy(stride)

    if stride is not None:
        log.warning(f"stride is ignored by the {name!r} strategy")
    return _TRUNCATION_STRATEGIES[name]()


__all__ = [
    "StrategyName",
    "TruncationStrategy",
    "TruncateStrategy",
    "SlidingWindowStrategy",
    "list_strategies",
    "get_strategy",
]
