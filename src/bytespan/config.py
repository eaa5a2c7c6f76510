"""Engine configuration."""

import os
from dataclasses import dataclass, fields, replace
from typing import Final

from .errors import ConfigurationError
from .sequence import MAX_POSITIONS
from .strategy import StrategyName, list_strategies

ENV_PREFIX: Final[str] = "BYTESPAN_"


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by every request of a question-answering engine."""

    max_length: int = 128
    """Length of every model input, including special and pad tokens (1 to 512)."""

    case_sensitive: bool = True
    """Look up sub-words with the original casing; answers keep it either way."""

    max_answer_length: int = 30
    """Longest answer in tokens."""

    confidence_floor: float | None = None
    """Answers below this confidence become no-answer results."""

    truncation: StrategyName = "truncate"
    """How to handle contexts that do not fit: "truncate" or "sliding-window"."""

    stride: int = 32
    """Tokens shared by consecutive windows in "sliding-window" mode."""

    batch_size: int = 8
    """Model inputs per scorer call."""

    num_workers: int | None = None
    """Threads used to tokenize requests and to score batches; ``None`` uses the CPU count."""

    def __post_init__(self) -> None:
        if not 1 <= self.max_length <= MAX_POSITIONS:
            raise ConfigurationError(
                f"max_length must be within [1, {MAX_POSITIONS}]", param="max_length", value=self.max_length
            )
        if self.max_answer_length < 1:
            raise ConfigurationError(
                "max_answer_length must be at least 1", param="max_answer_length", value=self.max_answer_length
            )
        if self.confidence_floor is not None and not 0.0 <= self.confidence_floor <= 1.0:
            raise ConfigurationError(
                "confidence_floor must be within [0, 1]", param="confidence_floor", value=self.confidence_floor
            )
        if self.truncation not in list_strategies():
            raise ConfigurationError(
                f"truncation must be one of {list_strategies()}", param="truncation", value=self.truncation
            )
        if self.stride < 0:
            raise ConfigurationError("stride must be non-negative", param="stride", value=self.stride)
        if self.batch_size < 1:
            raise ConfigurationError("batch_size must be at least 1", param="batch_size", value=self.batch_size)
        if self.num_workers is not None and self.num_workers < 1:
            raise ConfigurationError("num_workers must be at least 1", param="num_workers", value=self.num_workers)

    @classmethod
    def from_env(cls, base: "EngineConfig | None" = None) -> "EngineConfig":
        """
        Return ``base`` (or the defaults) overridden by ``BYTESPAN_*`` environment variables.

        ``BYTESPAN_MAX_LENGTH=256`` sets ``max_length``, ``BYTESPAN_CASE_SENSITIVE=0``
        disables case sensitivity, an empty ``BYTESPAN_CONFIDENCE_FLOOR`` clears the floor.

        :raises ConfigurationError: If a variable cannot be parsed or the result is invalid.
        """
        config = base or cls()
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = os.environ.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            overrides[f.name] = _parse_env(f.name, raw.strip(), getattr(config, f.name))
        return replace(config, **overrides)


def _parse_env(name: str, raw: str, current: object) -> object:
    try:
        match name:
            case "case_sensitive":
                if raw.lower() in ("1", "true", "yes", "on"):
                    return True
                if raw.lower() in ("0", "false", "no", "off"):
                    return False
                raise ValueError(raw)
            case "confidence_floor":
                return float(raw) if raw else None
            case "num_workers":
                return int(raw) if raw else None
            case "truncation":
                return raw
            case _:
                return type(current)(raw)
    except ValueError:
        raise ConfigurationError(
            "invalid environment override", param=ENV_PREFIX + name.upper(), value=raw
        ) from None
