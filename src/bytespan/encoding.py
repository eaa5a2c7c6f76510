"""Immutable token sequences produced by the tokenizer."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import overload

from .types import CharSpan, TokenId


class Owner(str, Enum):
    """Which input of a question-context pair a token belongs to."""

    QUESTION = "question"
    CONTEXT = "context"


@dataclass(frozen=True, slots=True)
class Token:
    """One sub-word with its half-open character range in the original text."""

    id: TokenId
    begin: int
    end: int
    owner: Owner
    piece: str
    unknown: bool = False

    @property
    def span(self) -> CharSpan:
        return (self.begin, self.end)


@dataclass(frozen=True)
class EncodedSequence:
    """Tokens of one text, in order; built once by the tokenizer and never mutated."""

    text: str
    owner: Owner
    tokens: tuple[Token, ...] = ()

    @property
    def ids(self) -> tuple[TokenId, ...]:
        return tuple(tok.id for tok in self.tokens)

    @property
    def offsets(self) -> tuple[CharSpan, ...]:
        return tuple(tok.span for tok in self.tokens)

    @property
    def n_unknown(self) -> int:
        return sum(1 for tok in self.tokens if tok.unknown)

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    @overload
    def __getitem__(self, index: int) -> Token: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Token, ...]: ...

    def __getitem__(self, index: int | slice) -> Token | tuple[Token, ...]:
        return self.tokens[index]
