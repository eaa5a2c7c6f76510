"""
Core Byte Pair Encoding (BPE) operations on byte-level symbols.
"""

from collections.abc import Mapping
from functools import cache
from typing import NamedTuple

from .types import Symbol, SymbolPair


class Piece(NamedTuple):
    """A byte-level symbol together with the normalized characters it covers."""

    symbol: Symbol
    begin: int
    end: int


@cache
def bytes_to_unicode() -> dict[int, Symbol]:
    """
    Return the GPT-2 table mapping each of the 256 byte values to a printable character.

    Printable latin-1 bytes map to themselves; the remaining bytes (control
    characters, whitespace) are shifted above 255 so that no symbol is a
    whitespace or control character. A space becomes ``"Ġ"``.
    """
    printable = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("¡"), ord("¬") + 1))
        + list(range(ord("®"), ord("ÿ") + 1))
    )
    table: dict[int, Symbol] = {b: chr(b) for b in printable}
    shift = 0
    for b in range(256):
        if b not in table:
            table[b] = chr(256 + shift)
            shift += 1
    return table


@cache
def unicode_to_bytes() -> dict[Symbol, int]:
    """Inverse of :func:`bytes_to_unicode`."""
    return {sym: b for b, sym in bytes_to_unicode().items()}


SPACE_MARKER: Symbol = bytes_to_unicode()[ord(" ")]


def symbols_to_bytes(symbols: str) -> bytes:
    """Convert a string of byte-level symbols back into the raw bytes it stands for."""
    decoder = unicode_to_bytes()
    return bytes(decoder[c] for c in symbols if c in decoder)


def lowest_ranked_pair(
    pieces: list[Piece], ranks: Mapping[SymbolPair, int]
) -> SymbolPair | None:
    """
    Find the adjacent symbol pair with the lowest merge rank.

    Scans left to right, so on equal rank the leftmost pair wins.

    :param pieces: Current symbol sequence of one chunk.
    :param ranks: Merge rank lookup, lower rank merges first.
    :returns: The pair to merge next, or ``None`` when no adjacent pair is mergeable.
    """
    best: SymbolPair | None = None
    best_rank: int | None = None

    for left, right in zip(pieces, pieces[1:]):
        pair = (left.symbol, right.symbol)
        rank = ranks.get(pair)
        if rank is not None and (best_rank is None or rank < best_rank):
            best, best_rank = pair, rank

    return best


def bpe_merge(pieces: list[Piece], target: SymbolPair) -> list[Piece]:
    """
    Merge all occurrences of a target symbol pair into a single symbol.

    Occurrences are fused left to right, so ``a a a`` with target ``(a, a)``
    yields ``aa a``. Merged symbols cover the union of both character ranges.

    :param pieces: Original symbol sequence.
    :param target: The consecutive pair of symbols to merge.
    :returns: New symbol sequence with all target pairs fused.
    """
    merged: list[Piece] = []

    i = 0
    while i < len(pieces):
        # check if we can form a pair and it matches the target
        if (
            i < len(pieces) - 1
            and pieces[i].symbol == target[0]
            and pieces[i + 1].symbol == target[1]
        ):
            left, right = pieces[i], pieces[i + 1]
            merged.append(Piece(left.symbol + right.symbol, left.begin, right.end))
            i += 2
        else:
            merged.append(pieces[i])
            i += 1

    return merged


def apply_bpe(pieces: list[Piece], ranks: Mapping[SymbolPair, int]) -> list[Piece]:
    """Run the greedy priority merge loop until no adjacent pair has a rank."""
    while len(pieces) > 1:
        pair = lowest_ranked_pair(pieces, ranks)
        if pair is None:
            break
        pieces = bpe_merge(pieces, pair)
    return pieces
