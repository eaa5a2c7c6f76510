"""
Read-only vocabulary and merge table shared by every request of a model.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ._bpe import SPACE_MARKER
from .errors import MergeTableError, VocabularyError
from .types import SymbolPair, TokenId

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecialTokens:
    """Names of the reserved tokens a vocabulary must declare."""

    bos: str = "<s>"
    """Sequence start, placed before the question."""

    eos: str = "</s>"
    """Sequence end, placed after the question and after the context."""

    pad: str = "<pad>"
    """Fills positions after the last real token."""

    unk: str = "<unk>"
    """Substitute for sub-words missing from the vocabulary; optional."""

    def required(self) -> tuple[str, str, str]:
        return (self.bos, self.eos, self.pad)


class Vocabulary:
    """
    Immutable bijective mapping between sub-word pieces and integer ids.

    Validation happens once at construction so a malformed vocabulary never
    reaches tokenization.
    """

    def __init__(
        self,
        tokens: Mapping[str, TokenId],
        special_tokens: SpecialTokens | None = None,
    ) -> None:
        """
        :param tokens: Mapping of sub-word piece to id.
        :param special_tokens: Names of the reserved tokens, defaults to RoBERTa's.
        :raises VocabularyError: On invalid or duplicate ids, missing or colliding special tokens.
        """
        self.special_tokens = special_tokens or SpecialTokens()

        pieces: dict[str, TokenId] = {}
        inverse: dict[TokenId, str] = {}
        for piece, tok in tokens.items():
            # bool is an int subclass but never a valid id
            if not isinstance(tok, int) or isinstance(tok, bool) or tok < 0:
                raise VocabularyError("token id must be a non-negative integer", pieces={piece}, invalid_id=tok)
            if tok in inverse:
                raise VocabularyError("duplicate token id", pieces={piece, inverse[tok]}, invalid_id=tok)
            pieces[piece] = tok
            inverse[tok] = piece

        missing = {name for name in self.special_tokens.required() if name not in pieces}
        if missing:
            raise VocabularyError("missing special tokens", pieces=missing)

        self._pieces: Mapping[str, TokenId] = MappingProxyType(pieces)
        self._inverse: Mapping[TokenId, str] = MappingProxyType(inverse)
        self._has_space_marker = any(
            piece.startswith(SPACE_MARKER) for piece in self._pieces
        )

        if self.unk_id == self.pad_id:
            log.debug(f"no {self.special_tokens.unk!r} token, unknown sub-words map to pad")
        log.debug(f"loaded vocabulary with {len(self._pieces)} pieces")

    @property
    def bos_id(self) -> TokenId:
        return self._pieces[self.special_tokens.bos]

    @property
    def eos_id(self) -> TokenId:
        return self._pieces[self.special_tokens.eos]

    @property
    def pad_id(self) -> TokenId:
        return self._pieces[self.special_tokens.pad]

    @property
    def unk_id(self) -> TokenId:
        """Id substituted for unknown sub-words: the unknown token if declared, else pad."""
        return self._pieces.get(self.special_tokens.unk, self.pad_id)

    @property
    def has_space_marker(self) -> bool:
        """Whether pieces follow the byte-level convention of a ``Ġ`` leading-space marker."""
        return self._has_space_marker

    def id_of(self, piece: str) -> TokenId | None:
        return self._pieces.get(piece)

    def piece_of(self, tok: TokenId) -> str:
        """
        :raises VocabularyError: If ``tok`` is not a known id.
        """
        try:
            return self._inverse[tok]
        except KeyError:
            raise VocabularyError("token id not found in vocabulary", invalid_id=tok) from None

    def is_special(self, tok: TokenId) -> bool:
        special = self.special_tokens
        return self._inverse.get(tok) in (special.bos, special.eos, special.pad, special.unk)

    def items(self) -> Iterable[tuple[str, TokenId]]:
        return self._pieces.items()

    def __contains__(self, piece: object) -> bool:
        return piece in self._pieces

    def __len__(self) -> int:
        return len(self._pieces)

    def __iter__(self) -> Iterator[str]:
        return iter(self._pieces)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)}, space_marker={self.has_space_marker})"


class MergeTable:
    """Immutable symbol-pair merge ranks; a lower rank is applied first."""

    def __init__(self, ranks: Mapping[SymbolPair, int]) -> None:
        """
        :param ranks: Mapping of symbol pair to its merge rank.
        :raises MergeTableError: On malformed pairs, negative or duplicate ranks.
        """
        seen: dict[int, SymbolPair] = {}
        for pair, rank in ranks.items():
            if (
                not isinstance(pair, tuple)
                or len(pair) != 2
                or not all(isinstance(sym, str) and sym for sym in pair)
            ):
                raise MergeTableError("merge rule must be a pair of non-empty symbols", pair=pair)
            if not isinstance(rank, int) or isinstance(rank, bool) or rank < 0:
                raise MergeTableError("merge rank must be a non-negative integer", pair=pair, rank=rank)
            if rank in seen:
                raise MergeTableError(f"duplicate merge rank shared with {seen[rank]!r}", pair=pair, rank=rank)
            seen[rank] = pair

        self._ranks: Mapping[SymbolPair, int] = MappingProxyType(dict(ranks))
        log.debug(f"loaded {len(self._ranks)} merge rules")

    @classmethod
    def from_pairs(cls, pairs: Iterable[SymbolPair]) -> "MergeTable":
        """
        Build a table from pairs listed in priority order (rank = position).

        :raises MergeTableError: If the same pair is listed twice.
        """
        ranks: dict[SymbolPair, int] = {}
        for rank, pair in enumerate(pairs):
            pair = tuple(pair)
            if pair in ranks:
                raise MergeTableError("duplicate merge rule", pair=pair, rank=rank)
            ranks[pair] = rank
        return cls(ranks)

    @property
    def ranks(self) -> Mapping[SymbolPair, int]:
        return self._ranks

    def rank(self, left: str, right: str) -> int | None:
        return self._ranks.get((left, right))

    def __contains__(self, pair: object) -> bool:
        return pair in self._ranks

    def __len__(self) -> int:
        return len(self._ranks)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self)})"
