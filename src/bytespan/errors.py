"""Custom exception hierarchy for bytespan errors."""

import regex as re


class ByteSpanError(Exception):
    """Base exception for all bytespan errors."""


class ConfigurationError(ByteSpanError):
    """Raised when an engine, builder or decoder is configured with invalid values."""

    def __init__(
        self,
        message: str,
        *,
        param: str | None = None,
        value: object = None,
    ) -> None:
        extra = " "
        if param:
            extra += f"({param}: {value!r}) "
        super().__init__(message + extra)
        self.param = param
        self.value = value


class VocabularyError(ConfigurationError):
    """Raised when a vocabulary fails validation at load time."""

    def __init__(
        self,
        message: str,
        *,
        pieces: set[str] | None = None,
        invalid_id: object = None,
    ) -> None:
        """Initialize with optional offending pieces and id that get appended to the message."""
        extra = " "
        if pieces:
            extra += f"(pieces: {', '.join(sorted(pieces))}) "
        if invalid_id is not None:
            extra += f"(invalid id: {invalid_id!r}) "
        super().__init__(message + extra.rstrip())
        self.pieces = pieces
        self.invalid_id = invalid_id


class MergeTableError(ConfigurationError):
    """Raised when a merge table fails validation at load time."""

    def __init__(
        self,
        message: str,
        *,
        pair: object = None,
        rank: object = None,
    ) -> None:
        extra = " "
        if pair is not None:
            extra += f"(pair: {pair!r}) "
        if rank is not None:
            extra += f"(rank: {rank!r}) "
        super().__init__(message + extra.rstrip())
        self.pair = pair
        self.rank = rank


class PatternError(ConfigurationError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        :param message: Error message.
        :param pattern: The regex pattern that failed.
        :param regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra.rstrip())
        self.pattern = pattern
        self.regex_err = regex_err


class StrategyError(ConfigurationError):
    """Raised when a named strategy or mode cannot be resolved."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available}) (got {invalid_name}) "
        super().__init__(message + extra.rstrip())
        self.invalid_name = invalid_name
        self.available = available


class ModelLoadError(ByteSpanError):
    """Raised when loading vocabulary or merge files fails."""

    def __init__(
        self,
        message: str,
        *,
        model_path: str | None = None,
        line_no: int | None = None,
    ) -> None:
        extra = " "
        if model_path:
            extra += f"(path: {model_path}) "
        if line_no is not None:
            extra += f"(line: {line_no}) "
        super().__init__(message + extra)
        self.model_path = model_path
        self.line_no = line_no


class InputError(ByteSpanError):
    """Raised for a single request whose inputs cannot be encoded."""


class QuestionTooLongError(InputError):
    """Raised when the question alone does not fit into the model input."""

    def __init__(self, message: str, *, n_tokens: int, limit: int) -> None:
        super().__init__(f"{message} (tokens: {n_tokens}) (limit: {limit})")
        self.n_tokens = n_tokens
        self.limit = limit


class SequenceTooLongError(ByteSpanError):
    """Raised when an assembled model input exceeds the maximum length."""

    def __init__(self, message: str, *, length: int, max_length: int) -> None:
        super().__init__(f"{message} (length: {length}) (max length: {max_length})")
        self.length = length
        self.max_length = max_length


class ScoringError(ByteSpanError):
    """Raised when the scoring adapter fails or returns malformed logits."""

    def __init__(
        self,
        message: str,
        *,
        expected_shape: tuple[int, ...] | None = None,
        got_shape: tuple[int, ...] | None = None,
    ) -> None:
        extra = " "
        if expected_shape is not None:
            extra += f"(expected shape: {expected_shape}) (got {got_shape}) "
        elif got_shape is not None:
            extra += f"(got {got_shape}) "
        super().__init__(message + extra.rstrip())
        self.expected_shape = expected_shape
        self.got_shape = got_shape


class DecodingError(ByteSpanError):
    """Raised when a decoded span would fall outside its context."""

    def __init__(self, message: str, *, span: tuple[int, int], context_len: int) -> None:
        super().__init__(f"{message} (span: {span}) (context length: {context_len})")
        self.span = span
        self.context_len = context_len
