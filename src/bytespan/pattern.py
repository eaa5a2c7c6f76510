"""Named pre-tokenization patterns for byte-level vocabularies."""

from enum import Enum

from .errors import PatternError


class TokenPattern(str, Enum):
    """
    Regexes that cut text into chunks before BPE runs on each chunk.

    A vocabulary only encodes correctly with the pattern it was trained
    with. RoBERTa, BART and GPT-2 vocabularies use ``GPT2``; ``GPT4`` is the
    cl100k split, which caps digit runs at three and keeps newlines apart.
    """

    GPT2 = (
        r"'(?:[sdmt]|ll|ve|re)|"
        r" ?\p{L}+|"
        r" ?\p{N}+|"
        r" ?[^\s\p{L}\p{N}]+|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    GPT4 = (
        r"'(?i:[sdmt]|ll|ve|re)|"
        r"[^\r\n\p{L}\p{N}]?+\p{L}+|"
        r"\p{N}{1,3}|"
        r" ?[^\s\p{L}\p{N}]++[\r\n]*|"
        r"\s*[\r\n]|"
        r"\s+(?!\S)|"
        r"\s+"
    )

    @classmethod
    def get(cls, name: str) -> str:
        """
        Look up a pattern by name, ignoring case.

        :raises PatternError: If no pattern has that name.
        """
        key = name.strip().upper()
        if key not in cls.__members__:
            raise PatternError(f"no pre-tokenization pattern named {name!r}; choose from {list_patterns()}")
        return cls[key].value


def list_patterns() -> list[str]:
    """Names accepted by :meth:`TokenPattern.get`."""
    return list(TokenPattern.__members__)
