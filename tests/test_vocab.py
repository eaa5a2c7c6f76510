"""Unit tests for vocabulary and merge table validation."""

import pytest

import bytespan as bs
from bytespan.errors import MergeTableError, VocabularyError

CLARA_VOCAB = {"<s>": 0, "</s>": 1, "<pad>": 2, "clara": 3, "is": 4, "my": 5, "name": 6}


# Vocabulary
# ---------------------------------------------------------------------------


def test_special_token_ids():
    """Special token ids come from the vocabulary; unknown falls back to pad."""
    vocab = bs.Vocabulary(CLARA_VOCAB)
    assert (vocab.bos_id, vocab.eos_id, vocab.pad_id) == (0, 1, 2)
    assert vocab.unk_id == vocab.pad_id


def test_declared_unknown_token_is_used():
    """A declared ``<unk>`` replaces the pad fallback."""
    vocab = bs.Vocabulary({**CLARA_VOCAB, "<unk>": 7})
    assert vocab.unk_id == 7


def test_custom_special_token_names():
    """Special token names can be configured."""
    special = bs.SpecialTokens(bos="[CLS]", eos="[SEP]", pad="[PAD]", unk="[UNK]")
    vocab = bs.Vocabulary({"[PAD]": 0, "[UNK]": 1, "[CLS]": 2, "[SEP]": 3}, special)
    assert (vocab.bos_id, vocab.eos_id, vocab.pad_id, vocab.unk_id) == (2, 3, 0, 1)


def test_duplicate_ids_rejected():
    """Two pieces may not share an id."""
    with pytest.raises(VocabularyError, match="duplicate token id"):
        bs.Vocabulary({**CLARA_VOCAB, "clara2": 3})


def test_missing_special_tokens_rejected():
    """Every required special token must be present."""
    with pytest.raises(VocabularyError) as excinfo:
        bs.Vocabulary({"<s>": 0, "hello": 1})
    assert excinfo.value.pieces == {"</s>", "<pad>"}


@pytest.mark.parametrize("bad_id", [-1, 1.5, "3", True])
def test_invalid_ids_rejected(bad_id):
    """Ids must be non-negative integers."""
    with pytest.raises(VocabularyError):
        bs.Vocabulary({**CLARA_VOCAB, "word": bad_id})


def test_lookups():
    """Forward and inverse lookups agree."""
    vocab = bs.Vocabulary(CLARA_VOCAB)
    assert vocab.id_of("clara") == 3
    assert vocab.id_of("Clara") is None
    assert vocab.piece_of(6) == "name"
    assert "my" in vocab
    assert len(vocab) == len(CLARA_VOCAB)
    assert vocab.is_special(0) and not vocab.is_special(3)
    with pytest.raises(VocabularyError):
        vocab.piece_of(99)


def test_space_marker_detection(byte_vocab):
    """Byte-level vocabularies are recognised by their ``Ġ`` pieces."""
    assert byte_vocab.has_space_marker
    assert not bs.Vocabulary(CLARA_VOCAB).has_space_marker


def test_vocabulary_is_not_affected_by_source_mutation():
    """Mutating the source mapping after load does not change the vocabulary."""
    source = dict(CLARA_VOCAB)
    vocab = bs.Vocabulary(source)
    source["clara"] = 42
    assert vocab.id_of("clara") == 3


# Merge table
# ---------------------------------------------------------------------------


def test_merge_table_from_pairs():
    """Rank follows list order."""
    merges = bs.MergeTable.from_pairs([("a", "b"), ("ab", "c")])
    assert merges.rank("a", "b") == 0
    assert merges.rank("ab", "c") == 1
    assert merges.rank("b", "c") is None
    assert ("a", "b") in merges
    assert len(merges) == 2


def test_merge_table_duplicate_rank_rejected():
    """Ranks define a strict order and must be unique."""
    with pytest.raises(MergeTableError):
        bs.MergeTable({("a", "b"): 0, ("c", "d"): 0})


def test_merge_table_duplicate_pair_rejected():
    """The same rule cannot be listed twice."""
    with pytest.raises(MergeTableError):
        bs.MergeTable.from_pairs([("a", "b"), ("a", "b")])


@pytest.mark.parametrize("pair", [("a",), ("a", ""), ("a", "b", "c"), "ab"])
def test_merge_table_malformed_pair_rejected(pair):
    """Rules must be pairs of non-empty symbols."""
    with pytest.raises(MergeTableError):
        bs.MergeTable({pair: 0})


def test_merge_table_is_read_only():
    """The exposed ranks cannot be modified."""
    merges = bs.MergeTable.from_pairs([("a", "b")])
    with pytest.raises(TypeError):
        merges.ranks[("c", "d")] = 1
