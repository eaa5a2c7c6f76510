"""
Utilities for turning byte-level symbols into displayable strings.
"""

import unicodedata

from ._bpe import symbols_to_bytes


def _escape_ctrl_chars(text: str) -> str:
    """Escape control, format and unassigned code points (category ``C*``) as ``\\uXXXX``."""
    return "".join(
        f"\\u{ord(char):04x}" if unicodedata.category(char).startswith("C") else char for char in text
    )


def render_symbol(symbol: str) -> str:
    """
    Render a byte-level symbol as the text it stands for, with control characters escaped.

    Symbols that are partial UTF-8 sequences render with the Unicode replacement character.
    """
    return _escape_ctrl_chars(symbols_to_bytes(symbol).decode("utf-8", errors="replace"))
