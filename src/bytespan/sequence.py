"""Assembly of question-context pairs into fixed-length model inputs."""

import logging
from dataclasses import dataclass
from typing import Final

from .encoding import EncodedSequence
from .errors import ConfigurationError, QuestionTooLongError, SequenceTooLongError
from .strategy import TruncateStrategy, TruncationStrategy
from .types import CharSpan, OffsetMap, TokenId
from .vocab import Vocabulary

# positional embeddings of the scorer are trained for at most this many positions
MAX_POSITIONS: Final[int] = 512
# <s> question </s> context </s>
N_SPECIAL: Final[int] = 3

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelInput:
    """
    One fixed-length encoded question-context pair, or one window of it.

    ``offsets[k]`` is the context character range of position ``k``, or
    ``None`` for special, question and pad positions.
    """

    input_ids: tuple[TokenId, ...]
    attention_mask: tuple[int, ...]
    offsets: OffsetMap
    window_index: int = 0
    window_start: int = 0
    context_token_count: int = 0
    truncated: bool = False

    def __post_init__(self) -> None:
        n = len(self.input_ids)
        if len(self.attention_mask) != n or len(self.offsets) != n:
            raise ValueError(
                f"input_ids, attention_mask and offsets must be the same length "
                f"(got {n}, {len(self.attention_mask)}, {len(self.offsets)})"
            )

    @property
    def context_positions(self) -> list[int]:
        """Positions that map back to a context character range."""
        return [pos for pos, span in enumerate(self.offsets) if span is not None]

    def __len__(self) -> int:
        return len(self.input_ids)


class SequenceBuilder:
    """Lays out ``<s> question </s> context </s>`` and pads to a fixed length."""

    def __init__(
        self,
        vocab: Vocabulary,
        max_length: int = 128,
        strategy: TruncationStrategy | None = None,
    ) -> None:
        """
        :param vocab: Vocabulary providing the special token ids.
        :param max_length: Length of every model input, at most 512.
        :param strategy: How to handle contexts that do not fit; defaults to truncation.
        :raises ConfigurationError: If ``max_length`` is outside ``[1, 512]``.
        """
        if not isinstance(max_length, int) or isinstance(max_length, bool):
            raise ConfigurationError("max_length must be an integer", param="max_length", value=max_length)
        if max_length > MAX_POSITIONS:
            raise ConfigurationError(
                f"sequences longer than {MAX_POSITIONS} are not supported by trainable positional embeddings",
                param="max_length",
                value=max_length,
            )
        if max_length < 1:
            raise ConfigurationError("max_length must be at least 1", param="max_length", value=max_length)

        self.vocab = vocab
        self.max_length = max_length
        self.strategy = strategy or TruncateStrategy()

    def context_budget(self, question: EncodedSequence) -> int:
        """
        Number of context tokens that fit next to ``question``.

        :raises QuestionTooLongError: If the question leaves no room for the special tokens.
        """
        limit = self.max_length - N_SPECIAL
        if len(question) > limit:
            raise QuestionTooLongError(
                "question too long", n_tokens=len(question), limit=max(0, limit)
            )
        return limit - len(question)

    def build(self, question: EncodedSequence, context: EncodedSequence) -> list[ModelInput]:
        """
        Build one model input per context window.

        :param question: Encoded question, never truncated.
        :param context: Encoded context, truncated or windowed by the strategy.
        :returns: At least one model input.
        :raises QuestionTooLongError: If the question does not fit; nothing is built.
        """
        budget = self.context_budget(question)
        n_context = len(context)

        inputs: list[ModelInput] = []
        for window_index, (start, stop) in enumerate(self.strategy.windows(n_context, budget)):
            inputs.append(
                self._assemble(question, context, start, stop, window_index)
            )

        log.debug(
            f"built {len(inputs)} model inputs (question {len(question)} tokens, "
            f"context {n_context} tokens, max length {self.max_length})"
        )
        return inputs

    def _assemble(
        self,
        question: EncodedSequence,
        context: EncodedSequence,
        start: int,
        stop: int,
        window_index: int,
    ) -> ModelInput:
        bos, eos, pad = self.vocab.bos_id, self.vocab.eos_id, self.vocab.pad_id
        window = context[start:stop]

        ids: list[TokenId] = [bos, *question.ids, eos, *(tok.id for tok in window), eos]
        offsets: list[CharSpan | None] = [None] * (len(question) + 2)
        offsets.extend(tok.span for tok in window)
        offsets.append(None)

        length = len(ids)
        if length > self.max_length:
            raise SequenceTooLongError(
                "assembled sequence too long", length=length, max_length=self.max_length
            )

        n_pad = self.max_length - length
        ids.extend([pad] * n_pad)
        offsets.extend([None] * n_pad)
        mask = [1] * length + [0] * n_pad

        return ModelInput(
            input_ids=tuple(ids),
            attention_mask=tuple(mask),
            offsets=tuple(offsets),
            window_index=window_index,
            window_start=start,
            context_token_count=len(context),
            truncated=start > 0 or stop < len(context),
        )
