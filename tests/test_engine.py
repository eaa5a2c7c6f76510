"""End-to-end tests: question and context in, answer span out."""

import pytest

import bytespan as bs
from bytespan.errors import QuestionTooLongError, ScoringError


@pytest.fixture
def clara_engine(clara_tokenizer, make_scorer):
    scorer = make_scorer(clara_tokenizer.vocab.id_of("clara"))
    config = bs.EngineConfig(max_length=32, case_sensitive=False)
    return bs.QuestionAnsweringEngine(clara_tokenizer, scorer, config)


# Scenarios
# ---------------------------------------------------------------------------


def test_answers_clara(clara_engine):
    """The span covering "Clara" is selected with its exact offsets."""
    context = "My name is Clara."
    result = clara_engine.answer("What is my name?", context)

    assert isinstance(result, bs.AnswerSpan)
    assert result.text == "Clara"
    assert (result.begin, result.end) == (context.index("Clara"), context.index("Clara") + 5)
    assert result.confidence > 0.99


def test_question_too_long_builds_nothing(clara_engine):
    """An over-long question is rejected before anything reaches the scorer."""
    question = " ".join(["my name"] * 20)
    with pytest.raises(QuestionTooLongError):
        clara_engine.answer(question, "My name is Clara.")
    assert clara_engine.scorer.calls == []
    with pytest.raises(QuestionTooLongError):
        clara_engine.prepare(question, "My name is Clara.")


def test_empty_context_is_no_answer(clara_engine):
    """An empty context produces an explicit no-answer."""
    result = clara_engine.answer("What is my name?", "")
    assert result == bs.NoAnswer(bs.NoAnswerReason.EMPTY_CONTEXT)


# Properties
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("case_sensitive", [True, False])
def test_answer_keeps_original_casing(byte_tokenizer, make_scorer, case_sensitive):
    """Case sensitivity changes lookup, never the casing of the extracted answer."""
    vocab = byte_tokenizer.vocab
    target = vocab.id_of("Ġcat") if not case_sensitive else vocab.id_of("C")
    engine = bs.QuestionAnsweringEngine(
        byte_tokenizer,
        make_scorer(target),
        bs.EngineConfig(max_length=32, case_sensitive=case_sensitive),
    )
    context = "The Cat sat."
    result = engine.answer("who sat?", context)
    assert result.text in ("Cat", "C")
    assert context[result.begin : result.end] == result.text
    assert result.text[0] == "C"


def test_sliding_window_finds_late_answer(byte_tokenizer, make_scorer):
    """With windows, an answer past the first window is still found."""
    context = "the cat sat on the mat. " * 12 + "the zebra"
    scorer = make_scorer(byte_tokenizer.vocab.id_of("Ġzebra"))
    config = bs.EngineConfig(max_length=24, truncation="sliding-window", stride=4, batch_size=2)
    engine = bs.QuestionAnsweringEngine(byte_tokenizer, scorer, config)

    result = engine.answer("what animal?", context)

    assert result.text == "zebra"
    assert (result.begin, result.end) == (len(context) - 5, len(context))
    assert len(scorer.calls) > 1


def test_truncation_is_safe(byte_tokenizer, make_scorer):
    """Truncating away the answer degrades to no-answer without errors."""
    context = "the cat sat on the mat. " * 12 + "the zebra"
    scorer = make_scorer(byte_tokenizer.vocab.id_of("Ġzebra"))
    config = bs.EngineConfig(max_length=24, confidence_floor=0.5)
    engine = bs.QuestionAnsweringEngine(byte_tokenizer, scorer, config)

    result = engine.answer("what animal?", context)

    assert result.reason is bs.NoAnswerReason.BELOW_CONFIDENCE_FLOOR


def test_span_validity_over_many_contexts(byte_tokenizer, make_scorer):
    """Answers never invert, overflow the maximum length or leave the context."""
    scorer = make_scorer(byte_tokenizer.vocab.id_of("Ġthe"), byte_tokenizer.vocab.id_of("at"))
    config = bs.EngineConfig(max_length=20, max_answer_length=4, truncation="sliding-window", stride=3)
    engine = bs.QuestionAnsweringEngine(byte_tokenizer, scorer, config)

    contexts = ["the mat", "the cat sat on the mat.", "mat " * 30, "x", "The  Mat!", "é" * 40]
    for context, result in zip(contexts, engine.answer_batch([("where?", c) for c in contexts])):
        if isinstance(result, bs.NoAnswer):
            continue
        assert 0 <= result.begin <= result.end <= len(context)
        assert result.n_tokens <= 4
        assert result.text == context[result.begin : result.end]


# Batches and failures
# ---------------------------------------------------------------------------


def test_answer_batch_isolates_bad_requests(clara_engine):
    """An over-long question fails only its own slot."""
    long_question = " ".join(["my name"] * 20)
    pairs = [
        ("What is my name?", "My name is Clara."),
        (long_question, "My name is Clara."),
        ("What is my name?", "Clara is my name."),
    ]
    results = clara_engine.answer_batch(pairs, return_exceptions=True)

    assert results[0].text == "Clara"
    assert isinstance(results[1], QuestionTooLongError)
    assert (results[2].begin, results[2].end) == (0, 5)

    with pytest.raises(QuestionTooLongError):
        clara_engine.answer_batch(pairs)


def test_scorer_failure_propagates(clara_tokenizer):
    """Scorer failures are raised, or returned per request; tables stay usable."""
    def broken(input_ids, attention_mask):
        raise RuntimeError("inference service unavailable")

    engine = bs.QuestionAnsweringEngine(
        clara_tokenizer, bs.CallableScoringAdapter(broken), bs.EngineConfig(max_length=32)
    )
    with pytest.raises(ScoringError):
        engine.answer("what is my name?", "my name is clara")

    results = engine.answer_batch([("what is my name?", "my name is clara")], return_exceptions=True)
    assert isinstance(results[0], ScoringError)

    # shared state is untouched by the failure
    assert clara_tokenizer.encode("my name is clara").ids == (5, 6, 4, 3)


def test_answer_batch_empty(clara_engine):
    """No pairs, no results."""
    assert clara_engine.answer_batch([]) == []


def test_answer_batch_tokenizes_with_configured_workers(clara_tokenizer, make_scorer, monkeypatch):
    """Requests are tokenized through ``encode_batch`` with the configured thread count."""
    calls = []
    encode_batch = clara_tokenizer.encode_batch

    def recording(texts, owner, case_sensitive, num_workers):
        calls.append((owner, len(texts), num_workers))
        return encode_batch(texts, owner, case_sensitive, num_workers)

    monkeypatch.setattr(clara_tokenizer, "encode_batch", recording)
    config = bs.EngineConfig(max_length=32, case_sensitive=False, num_workers=3)
    engine = bs.QuestionAnsweringEngine(clara_tokenizer, make_scorer(3), config)

    results = engine.answer_batch([("What is my name?", "My name is Clara.")] * 4)

    assert [result.text for result in results] == ["Clara"] * 4
    assert calls == [(bs.Owner.QUESTION, 4, 3), (bs.Owner.CONTEXT, 4, 3)]
