"""
Boundary to the neural scorer: token ids in, start and end logits out.

The scorer itself is opaque. Implementations may wrap a local model, a
remote inference service or a test stub; the tokenizer and decoder never
see the difference.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import override

import numpy as np
import numpy.typing as npt

from .errors import ScoringError
from .sequence import ModelInput

type LogitArray = npt.NDArray[np.floating]
type ScoreFn = Callable[
    [npt.NDArray[np.int64], npt.NDArray[np.int64]], tuple[npt.ArrayLike, npt.ArrayLike]
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScorePair:
    """Start and end logits for every position of one model input."""

    start_logits: LogitArray
    end_logits: LogitArray

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_logits", np.asarray(self.start_logits, dtype=np.float64))
        object.__setattr__(self, "end_logits", np.asarray(self.end_logits, dtype=np.float64))
        if self.start_logits.ndim != 1:
            raise ScoringError("logits must be one vector per input", got_shape=self.start_logits.shape)
        if self.start_logits.shape != self.end_logits.shape:
            raise ScoringError(
                "start and end logits differ in shape",
                expected_shape=self.start_logits.shape,
                got_shape=self.end_logits.shape,
            )

    def __len__(self) -> int:
        return len(self.start_logits)


class ScoringAdapter(ABC):
    """
    Abstract base class for span scorers.

    Subclasses implement :meth:`_score_impl` on stacked arrays; shape checks
    and error wrapping live here.
    """

    def score(self, inputs: Sequence[ModelInput]) -> list[ScorePair]:
        """
        Score a batch of model inputs.

        :param inputs: Model inputs of equal length.
        :returns: One score pair per input, in input order.
        :raises ScoringError: If the scorer fails or returns logits of the wrong shape.
        """
        if not inputs:
            return []

        lengths = {len(model_input) for model_input in inputs}
        if len(lengths) != 1:
            raise ScoringError(f"batch mixes input lengths {sorted(lengths)}")

        input_ids = np.asarray([model_input.input_ids for model_input in inputs], dtype=np.int64)
        attention_mask = np.asarray([model_input.attention_mask for model_input in inputs], dtype=np.int64)

        try:
            start, end = self._score_impl(input_ids, attention_mask)
        except ScoringError:
            raise
        except Exception as e:
            raise ScoringError(f"scorer failed: {e}") from e

        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        for logits in (start, end):
            if logits.shape != input_ids.shape:
                raise ScoringError(
                    "scorer returned logits of unexpected shape",
                    expected_shape=input_ids.shape,
                    got_shape=logits.shape,
                )

        return [ScorePair(start[row], end[row]) for row in range(len(inputs))]

    @abstractmethod
    def _score_impl(
        self,
        input_ids: npt.NDArray[np.int64],
        attention_mask: npt.NDArray[np.int64],
    ) -> tuple[npt.ArrayLike, npt.ArrayLike]:
        """Return ``(start_logits, end_logits)``, each shaped like ``input_ids``."""
        ...


class CallableScoringAdapter(ScoringAdapter):
    """Adapter around a plain function with the :meth:`ScoringAdapter._score_impl` signature."""

    def __init__(self, fn: ScoreFn) -> None:
        super().__init__()
        self.fn = fn

    @override
    def _score_impl(
        self,
        input_ids: npt.NDArray[np.int64],
        attention_mask: npt.NDArray[np.int64],
    ) -> tuple[npt.ArrayLike, npt.ArrayLike]:
        return self.fn(input_ids, attention_mask)


def score_batches(
    adapter: ScoringAdapter,
    inputs: Sequence[ModelInput],
    batch_size: int = 8,
    num_workers: int | None = None,
) -> list[list[ScorePair] | ScoringError]:
    """
    Split inputs into batches and score them concurrently.

    A failing batch does not stop the others; its slot holds the
    :class:`ScoringError` instead of score pairs. Nothing is retried.

    :param adapter: Scorer to call once per batch.
    :param inputs: Model inputs to score.
    :param batch_size: Maximum inputs per scorer call.
    :param num_workers: Thread count, defaults to the CPU count.
    :returns: One entry per batch, in batch order.
    """
    batch_size = max(1, batch_size)
    batches = [inputs[idx : idx + batch_size] for idx in range(0, len(inputs), batch_size)]

    if num_workers is None:
        workers = os.cpu_count() or 1
    else:
        workers = max(1, num_workers)

    def score_one(batch: Sequence[ModelInput]) -> list[ScorePair] | ScoringError:
        try:
            return adapter.score(batch)
        except ScoringError as e:
            log.error(f"scoring failed for a batch of {len(batch)} inputs: {e}")
            return e

    if workers == 1 or len(batches) <= 1:
        return [score_one(batch) for batch in batches]

    with ThreadPoolExecutor(max_workers=min(workers, len(batches))) as pool:
        return list(pool.map(score_one, batches))
