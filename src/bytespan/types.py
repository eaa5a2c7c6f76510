"""
Core types for tokenization and span decoding.
"""

type TokenId = int
type Symbol = str
type SymbolPair = tuple[Symbol, Symbol]
type CharSpan = tuple[int, int]
type OffsetMap = tuple[CharSpan | None, ...]
