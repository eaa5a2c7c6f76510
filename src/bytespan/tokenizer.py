"""Byte-level BPE tokenizer that keeps character offsets into the original text."""

import logging
import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import regex as re

from ._bpe import Piece, apply_bpe, bytes_to_unicode
from ._sanitise import render_symbol
from .encoding import EncodedSequence, Owner, Token
from .errors import PatternError
from .pattern import TokenPattern
from .types import CharSpan
from .vocab import MergeTable, Vocabulary

log = logging.getLogger(__name__)


class BPETokenizer:
    """
    Tokenizer that splits text with a regex pattern before applying BPE merges.

    Holds only read-only state, so one instance can be shared by any number
    of threads. Every call works on its own local symbol list.
    """

    def __init__(
        self,
        vocab: Vocabulary,
        merges: MergeTable,
        pattern: str | None = None,
        space_marker: bool | None = None,
    ) -> None:
        """
        :param vocab: Sub-word vocabulary including the special tokens.
        :param merges: Ranked merge rules.
        :param pattern: Pre-tokenization regex; defaults to the GPT-2 pattern.
        :param space_marker: Keep whitespace inside chunks as byte-level symbols
            (``" "`` becomes ``"Ġ"``). ``None`` follows the vocabulary's convention.
        :raises PatternError: If ``pattern`` is not a valid regex.
        """
        self.vocab = vocab
        self.merges = merges
        self.pat: str = pattern if pattern is not None else TokenPattern.GPT2.value
        self.compiled_pat: re.Pattern[str] = _compile_pattern(self.pat)
        self.space_marker: bool = (
            vocab.has_space_marker if space_marker is None else space_marker
        )
        self._byte_encoder = bytes_to_unicode()

        if not self.space_marker and vocab.has_space_marker:
            log.warning(
                "vocabulary uses a leading-space marker but whitespace is dropped, "
                "expect many unknown sub-words"
            )

    def encode(
        self,
        text: str,
        owner: Owner = Owner.CONTEXT,
        case_sensitive: bool = True,
    ) -> EncodedSequence:
        """
        Encode text into tokens carrying offsets into ``text``.

        With ``case_sensitive=False`` the text is lower-cased before the
        vocabulary lookup, but offsets still index the original string.

        :param text: Text to encode.
        :param owner: Whether the text is the question or the context.
        :param case_sensitive: Keep the original casing for lookup.
        :returns: Encoded sequence; empty for empty text.
        """
        if not text:
            return EncodedSequence(text=text, owner=owner)

        normalized, alignment = _normalize(text, case_sensitive)
        unk_id = self.vocab.unk_id

        tokens: list[Token] = []
        unknown: list[str] = []

        # split text into chunks as defined by pattern
        for match in self.compiled_pat.finditer(normalized):
            pieces = self._to_pieces(match.group(0), match.start())
            if not pieces:
                continue

            # consecutive unknown symbols of one chunk collapse into one token
            pending: Piece | None = None
            for piece in self._merge_chunk(pieces):
                tok = self.vocab.id_of(piece.symbol)
                if tok is None:
                    if pending is None:
                        pending = piece
                    else:
                        pending = Piece(pending.symbol + piece.symbol, pending.begin, piece.end)
                    continue
                if pending is not None:
                    tokens.append(self._make_token(unk_id, pending, normalized, alignment, owner, unknown=True))
                    unknown.append(pending.symbol)
                    pending = None
                tokens.append(self._make_token(tok, piece, normalized, alignment, owner))

            if pending is not None:
                tokens.append(self._make_token(unk_id, pending, normalized, alignment, owner, unknown=True))
                unknown.append(pending.symbol)

        if unknown:
            log.warning(
                f"{len(unknown)} unknown sub-words in {owner.value} replaced with id {unk_id} "
                f"(first: {render_symbol(unknown[0])!r})"
            )

        return EncodedSequence(text=text, owner=owner, tokens=tuple(tokens))

    def encode_batch(
        self,
        texts: Sequence[str],
        owner: Owner = Owner.CONTEXT,
        case_sensitive: bool = True,
        num_workers: int | None = None,
    ) -> list[EncodedSequence]:
        """
        Encode many texts, concurrently when more than one worker is available.

        :param texts: Text inputs to encode.
        :param owner: Owner recorded on every token.
        :param case_sensitive: Keep the original casing for lookup.
        :param num_workers: Thread count, defaults to the CPU count.
        :returns: Encoded sequences in input order.
        """
        if num_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, num_workers)  # "0" interpreted as 1 worker

        if workers == 1 or len(texts) <= 1:
            return [self.encode(text, owner, case_sensitive) for text in texts]

        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(lambda text: self.encode(text, owner, case_sensitive), texts))

    def _to_pieces(self, chunk: str, start: int) -> list[Piece]:
        """Turn a chunk into one byte-level symbol per UTF-8 byte, tagged with its character."""
        pieces: list[Piece] = []
        for k, char in enumerate(chunk):
            # without a marker convention whitespace only separates chunks
            if not self.space_marker and char.isspace():
                continue
            ci = start + k
            for b in char.encode("utf-8"):
                pieces.append(Piece(self._byte_encoder[b], ci, ci + 1))
        return pieces

    def _merge_chunk(self, pieces: list[Piece]) -> list[Piece]:
        """Apply merges to one chunk, short-circuiting chunks that are whole vocabulary entries."""
        whole = "".join(piece.symbol for piece in pieces)
        if len(pieces) > 1 and whole in self.vocab:
            return [Piece(whole, pieces[0].begin, pieces[-1].end)]
        return apply_bpe(pieces, self.merges.ranks)

    def _make_token(
        self,
        tok: int,
        piece: Piece,
        normalized: str,
        alignment: Sequence[int],
        owner: Owner,
        unknown: bool = False,
    ) -> Token:
        begin, end = _original_span(piece, normalized, alignment)
        return Token(id=tok, begin=begin, end=end, owner=owner, piece=piece.symbol, unknown=unknown)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(vocab={self.vocab!r}, merges={self.merges!r}, "
            f"space_marker={self.space_marker})"
        )


def _normalize(text: str, case_sensitive: bool) -> tuple[str, Sequence[int]]:
    """
    Return the text used for lookup and, for each of its characters, the index
    of the original character it came from.
    """
    if case_sensitive:
        return text, range(len(text))

    # lower-casing may change length (e.g. "İ" -> "i̇"), so align per character
    chars: list[str] = []
    alignment: list[int] = []
    for idx, char in enumerate(text):
        lowered = char.lower()
        chars.append(lowered)
        alignment.extend([idx] * len(lowered))
    return "".join(chars), alignment


def _original_span(piece: Piece, normalized: str, alignment: Sequence[int]) -> CharSpan:
    """Map a piece's normalized range to the original text, trimming surrounding whitespace."""
    begin, end = piece.begin, piece.end
    while begin < end and normalized[begin].isspace():
        begin += 1
    while end > begin and normalized[end - 1].isspace():
        end -= 1
    # whitespace-only pieces keep their full range
    if begin == end:
        begin, end = piece.begin, piece.end
    return alignment[begin], alignment[end - 1] + 1


def _compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e) from e
