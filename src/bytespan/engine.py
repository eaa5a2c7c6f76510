"""Extractive question answering: question and context in, answer span out."""

import logging
from collections.abc import Sequence
from typing import Literal, overload

from ._decorators import measure_time
from .config import EngineConfig
from .decoder import DecodeResult, SpanDecoder
from .encoding import Owner
from .errors import ByteSpanError, InputError, ScoringError
from .scoring import ScorePair, ScoringAdapter, score_batches
from .sequence import ModelInput, SequenceBuilder
from .strategy import get_strategy
from .tokenizer import BPETokenizer

log = logging.getLogger(__name__)


class QuestionAnsweringEngine:
    """
    Runs tokenization, sequence building, scoring and span decoding.

    The engine keeps no per-request state; one instance serves concurrent
    callers. Only the scorer performs external I/O.

    .. code-block:: python

        engine = QuestionAnsweringEngine(tokenizer, scorer, EngineConfig(case_sensitive=False))
        result = engine.answer("What's my name?", "My name is Clara and I live in Berkeley.")
    """

    def __init__(
        self,
        tokenizer: BPETokenizer,
        scorer: ScoringAdapter,
        config: EngineConfig | None = None,
    ) -> None:
        self.tokenizer = tokenizer
        self.scorer = scorer
        self.config = config or EngineConfig()
        if self.config.truncation == "sliding-window":
            strategy = get_strategy("sliding-window", stride=self.config.stride)
        else:
            strategy = get_strategy("truncate")
        self.builder = SequenceBuilder(tokenizer.vocab, self.config.max_length, strategy)
        self.decoder = SpanDecoder(self.config.max_answer_length, self.config.confidence_floor)

    def prepare(self, question: str, context: str) -> list[ModelInput]:
        """
        Tokenize a question-context pair and build its model inputs.

        :raises QuestionTooLongError: If the question does not fit into ``max_length``.
        """
        case_sensitive = self.config.case_sensitive
        encoded_question = self.tokenizer.encode(question, Owner.QUESTION, case_sensitive)
        encoded_context = self.tokenizer.encode(context, Owner.CONTEXT, case_sensitive)
        return self.builder.build(encoded_question, encoded_context)

    def answer(self, question: str, context: str) -> DecodeResult:
        """
        Answer one question from one context.

        :returns: The best answer span, or a no-answer result with its reason.
        :raises QuestionTooLongError: If the question does not fit into ``max_length``.
        :raises ScoringError: If the scorer fails; nothing is retried.
        """
        return self.answer_batch([(question, context)])[0]

    @overload
    def answer_batch(
        self,
        pairs: Sequence[tuple[str, str]],
        return_exceptions: Literal[False] = False,
    ) -> list[DecodeResult]: ...

    @overload
    def answer_batch(
        self,
        pairs: Sequence[tuple[str, str]],
        return_exceptions: Literal[True],
    ) -> list[DecodeResult | ByteSpanError]: ...

    @measure_time
    def answer_batch(
        self,
        pairs: Sequence[tuple[str, str]],
        return_exceptions: bool = False,
    ) -> list[DecodeResult] | list[DecodeResult | ByteSpanError]:
        """
        Answer many question-context pairs, scoring their inputs in concurrent batches.

        A request whose question is too long, or whose inputs landed in a
        batch the scorer failed on, does not affect the other requests. With
        ``return_exceptions=True`` its slot holds the error; otherwise the
        first such error is raised.

        :param pairs: ``(question, context)`` tuples.
        :param return_exceptions: Return per-request errors instead of raising them.
        :returns: One result per pair, in input order.
        """
        if not pairs:
            return []

        case_sensitive, num_workers = self.config.case_sensitive, self.config.num_workers
        questions = self.tokenizer.encode_batch(
            [question for question, _ in pairs], Owner.QUESTION, case_sensitive, num_workers
        )
        contexts = self.tokenizer.encode_batch(
            [context for _, context in pairs], Owner.CONTEXT, case_sensitive, num_workers
        )

        prepared: list[list[ModelInput] | InputError] = []
        for encoded_question, encoded_context in zip(questions, contexts, strict=True):
            try:
                prepared.append(self.builder.build(encoded_question, encoded_context))
            except InputError as e:
                if not return_exceptions:
                    raise
                log.info(f"request rejected: {e}")
                prepared.append(e)

        # flatten every request's windows so batches can mix requests
        flat: list[ModelInput] = []
        owners: list[int] = []
        for idx, inputs in enumerate(prepared):
            if isinstance(inputs, InputError):
                continue
            flat.extend(inputs)
            owners.extend([idx] * len(inputs))

        batch_size = self.config.batch_size
        batch_results = score_batches(self.scorer, flat, batch_size, self.config.num_workers)

        scores: list[ScorePair | ScoringError] = []
        for batch_idx, batch_result in enumerate(batch_results):
            n_inputs = len(flat[batch_idx * batch_size : (batch_idx + 1) * batch_size])
            if isinstance(batch_result, ScoringError):
                if not return_exceptions:
                    raise batch_result
                scores.extend([batch_result] * n_inputs)
            else:
                scores.extend(batch_result)

        per_request: dict[int, list[ScorePair | ScoringError]] = {}
        for owner, pair in zip(owners, scores, strict=True):
            per_request.setdefault(owner, []).append(pair)

        results: list[DecodeResult | ByteSpanError] = []
        for idx, ((_, context), inputs) in enumerate(zip(pairs, prepared)):
            if isinstance(inputs, InputError):
                results.append(inputs)
                continue
            request_scores = per_request[idx]
            failed = next((s for s in request_scores if isinstance(s, ScoringError)), None)
            if failed is not None:
                results.append(failed)
                continue
            try:
                results.append(self.decoder.decode_windows(context, inputs, request_scores))
            except ScoringError as e:
                if not return_exceptions:
                    raise
                results.append(e)

        log.debug(f"answered {len(pairs)} requests with {len(flat)} model inputs")
        return results

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tokenizer={self.tokenizer!r}, config={self.config!r})"
