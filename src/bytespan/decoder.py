"""Decoding of start/end logits into a validated answer span."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .errors import ConfigurationError, DecodingError, ScoringError
from .scoring import ScorePair
from .sequence import ModelInput

log = logging.getLogger(__name__)


class NoAnswerReason(str, Enum):
    """Why a request produced no answer span."""

    EMPTY_CONTEXT = "empty-context"
    CONTEXT_TRUNCATED = "context-truncated"
    NO_VALID_SPAN = "no-valid-span"
    BELOW_CONFIDENCE_FLOOR = "below-confidence-floor"


# when no window has a span, the most specific reason is reported
_REASON_PRIORITY = (
    NoAnswerReason.NO_VALID_SPAN,
    NoAnswerReason.CONTEXT_TRUNCATED,
    NoAnswerReason.EMPTY_CONTEXT,
)


@dataclass(frozen=True)
class AnswerSpan:
    """Answer extracted from the original context."""

    begin: int
    """Character offset of the first answer character."""

    end: int
    """Character offset one past the last answer character."""

    text: str
    """``context[begin:end]`` with the context's original casing."""

    confidence: float
    """Product of the start and end probabilities, in ``[0, 1]``."""

    score: float
    """Raw joint score ``start_logit + end_logit``."""

    start_position: int
    end_position: int
    window_index: int = 0

    @property
    def n_tokens(self) -> int:
        return self.end_position - self.start_position + 1


@dataclass(frozen=True)
class NoAnswer:
    """Explicit no-answer result."""

    reason: NoAnswerReason
    score: float | None = None
    confidence: float | None = None


type DecodeResult = AnswerSpan | NoAnswer


class SpanDecoder:
    """
    Picks the best ``(start, end)`` token pair of a model input.

    Candidates are restricted to context positions with ``start <= end`` and
    at most ``max_answer_length`` tokens. The highest joint score wins; ties
    go to the shortest span, then to the smallest start position.
    """

    def __init__(
        self,
        max_answer_length: int = 30,
        confidence_floor: float | None = None,
    ) -> None:
        """
        :param max_answer_length: Longest answer in tokens.
        :param confidence_floor: Answers less confident than this become no-answer.
        :raises ConfigurationError: On a non-positive length or a floor outside ``[0, 1]``.
        """
        if max_answer_length < 1:
            raise ConfigurationError(
                "max_answer_length must be at least 1", param="max_answer_length", value=max_answer_length
            )
        if confidence_floor is not None and not 0.0 <= confidence_floor <= 1.0:
            raise ConfigurationError(
                "confidence_floor must be within [0, 1]", param="confidence_floor", value=confidence_floor
            )
        self.max_answer_length = max_answer_length
        self.confidence_floor = confidence_floor

    def decode(self, context: str, model_input: ModelInput, scores: ScorePair) -> DecodeResult:
        """
        Decode the logits of one model input.

        :param context: The original, untouched context string.
        :param model_input: Input the logits were computed for.
        :param scores: Start and end logits, one per input position.
        :returns: The best answer span or a no-answer result.
        :raises ScoringError: If the logits do not line up with the input or contain NaN.
        :raises DecodingError: If the best span falls outside the context.
        """
        return self._apply_floor(self._best_span(context, model_input, scores))

    def _best_span(self, context: str, model_input: ModelInput, scores: ScorePair) -> DecodeResult:
        """Best span of one input, before the confidence floor is applied."""
        if len(scores) != len(model_input):
            raise ScoringError(
                "logits do not match model input length",
                expected_shape=(len(model_input),),
                got_shape=(len(scores),),
            )

        positions = np.asarray(model_input.context_positions, dtype=np.intp)
        if positions.size == 0:
            if model_input.context_token_count == 0:
                return NoAnswer(NoAnswerReason.EMPTY_CONTEXT)
            return NoAnswer(NoAnswerReason.CONTEXT_TRUNCATED)

        start = scores.start_logits[positions]
        end = scores.end_logits[positions]
        if np.isnan(start).any() or np.isnan(end).any() or np.isposinf(start).any() or np.isposinf(end).any():
            raise ScoringError("logits must be finite or negative infinity")

        # joint[a, b] scores the span from the a-th to the b-th context position
        joint = start[:, None] + end[None, :]
        lengths = positions[None, :] - positions[:, None] + 1
        valid = (lengths >= 1) & (lengths <= self.max_answer_length)
        joint = np.where(valid, joint, -np.inf)

        best = joint.max()
        if not np.isfinite(best):
            return NoAnswer(NoAnswerReason.NO_VALID_SPAN)

        ties = np.argwhere(joint == best)
        a, b = min(ties.tolist(), key=lambda ab: (lengths[ab[0], ab[1]], positions[ab[0]]))
        start_pos, end_pos = int(positions[a]), int(positions[b])

        confidence = float(_softmax(start)[a] * _softmax(end)[b])
        score = float(best)

        begin = model_input.offsets[start_pos][0]
        stop = model_input.offsets[end_pos][1]
        if not 0 <= begin <= stop <= len(context):
            raise DecodingError("decoded span outside context", span=(begin, stop), context_len=len(context))

        return AnswerSpan(
            begin=begin,
            end=stop,
            text=context[begin:stop],
            confidence=confidence,
            score=score,
            start_position=start_pos,
            end_position=end_pos,
            window_index=model_input.window_index,
        )

    def decode_windows(
        self,
        context: str,
        inputs: Sequence[ModelInput],
        scores: Sequence[ScorePair],
    ) -> DecodeResult:
        """
        Decode every window of one request and keep the best answer.

        Windows compare by joint score; ties go to the shortest span in
        tokens, then to the smallest character offset. The confidence floor
        applies to the winning span only.

        :raises ScoringError: If the number of score pairs differs from the number of inputs.
        """
        if len(inputs) != len(scores):
            raise ScoringError(
                "number of score pairs does not match number of inputs",
                expected_shape=(len(inputs),),
                got_shape=(len(scores),),
            )

        results = [
            self._best_span(context, model_input, pair)
            for model_input, pair in zip(inputs, scores)
        ]
        answers = [result for result in results if isinstance(result, AnswerSpan)]
        if answers:
            best = min(answers, key=lambda span: (-span.score, span.n_tokens, span.begin))
            log.debug(
                f"answer [{best.begin}, {best.end}) from window {best.window_index} "
                f"of {len(inputs)} (score {best.score:.4f})"
            )
            return self._apply_floor(best)

        reasons = {result.reason for result in results if isinstance(result, NoAnswer)}
        for reason in _REASON_PRIORITY:
            if reason in reasons:
                return NoAnswer(reason)
        # no windows at all
        return NoAnswer(NoAnswerReason.EMPTY_CONTEXT)

    def _apply_floor(self, result: DecodeResult) -> DecodeResult:
        if not isinstance(result, AnswerSpan) or self.confidence_floor is None:
            return result
        if result.confidence >= self.confidence_floor:
            return result
        log.debug(f"best span confidence {result.confidence:.4f} below floor {self.confidence_floor}")
        return NoAnswer(NoAnswerReason.BELOW_CONFIDENCE_FLOOR, score=result.score, confidence=result.confidence)


def _softmax(logits: np.ndarray) -> np.ndarray:
    shifted = np.exp(logits - logits.max())
    return shifted / shifted.sum()
