"""Shared fixtures: small vocabularies, tokenizers and stub scorers."""

import numpy as np
import pytest

import bytespan as bs
from bytespan._bpe import bytes_to_unicode


# Vocabularies
# ---------------------------------------------------------------------------

CLARA_VOCAB = {"<s>": 0, "</s>": 1, "<pad>": 2, "clara": 3, "is": 4, "my": 5, "name": 6}

BYTE_MERGES = [
    ("h", "e"),
    ("Ġ", "t"),
    ("Ġt", "he"),
    ("a", "t"),
    ("Ġ", "c"),
    ("Ġc", "at"),
    ("Ġ", "s"),
    ("Ġs", "at"),
    ("o", "n"),
    ("Ġ", "on"),
    ("t", "he"),
    ("Ġ", "z"),
    ("e", "b"),
    ("r", "a"),
    ("Ġz", "eb"),
    ("Ġzeb", "ra"),
]


def build_byte_vocab(merges: list[tuple[str, str]]) -> dict[str, int]:
    """Specials, every byte-level symbol, then every merge result."""
    tokens = {"<s>": 0, "<pad>": 1, "</s>": 2, "<unk>": 3}
    for symbol in bytes_to_unicode().values():
        tokens.setdefault(symbol, len(tokens))
    for left, right in merges:
        tokens.setdefault(left + right, len(tokens))
    return tokens


@pytest.fixture
def clara_tokenizer():
    """Word-level vocabulary without a leading-space marker and no merges."""
    return bs.BPETokenizer(bs.Vocabulary(CLARA_VOCAB), bs.MergeTable({}))


@pytest.fixture
def byte_vocab():
    return bs.Vocabulary(build_byte_vocab(BYTE_MERGES))


@pytest.fixture
def byte_tokenizer(byte_vocab):
    """Byte-level vocabulary using the ``Ġ`` marker, with a handful of merges."""
    return bs.BPETokenizer(byte_vocab, bs.MergeTable.from_pairs(BYTE_MERGES))


# Scorers
# ---------------------------------------------------------------------------


class TargetScorer(bs.ScoringAdapter):
    """Scores positions holding ``start_id`` / ``end_id`` high and records its calls."""

    def __init__(self, start_id: int, end_id: int | None = None, high: float = 10.0) -> None:
        super().__init__()
        self.start_id = start_id
        self.end_id = start_id if end_id is None else end_id
        self.high = high
        self.calls: list[int] = []

    def _score_impl(self, input_ids, attention_mask):
        self.calls.append(len(input_ids))
        start = np.where(input_ids == self.start_id, self.high, 0.0)
        end = np.where(input_ids == self.end_id, self.high, 0.0)
        return start, end


@pytest.fixture
def make_scorer():
    """Factory for :class:`TargetScorer`."""
    return TargetScorer


def flat_scores(model_input: bs.ModelInput) -> bs.ScorePair:
    """All-zero logits for one model input."""
    zeros = np.zeros(len(model_input))
    return bs.ScorePair(zeros, zeros.copy())


def covering_positions(model_input: bs.ModelInput, begin: int, end: int) -> tuple[int, int]:
    """First and last input positions whose context range overlaps ``[begin, end)``."""
    hits = [
        pos
        for pos, span in enumerate(model_input.offsets)
        if span is not None and span[0] < end and span[1] > begin
    ]
    return hits[0], hits[-1]


@pytest.fixture
def zero_scores():
    return flat_scores


@pytest.fixture
def cover():
    return covering_positions
