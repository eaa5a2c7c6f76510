"""Factory functions for loading vocabularies and creating tokenizers."""

import json
import logging
from pathlib import Path
from typing import Final, Literal, overload

from .errors import MergeTableError, ModelLoadError, VocabularyError
from .pattern import TokenPattern
from .tokenizer import BPETokenizer
from .types import SymbolPair
from .vocab import MergeTable, SpecialTokens, Vocabulary

log = logging.getLogger(__name__)

VOCAB_FILES: Final[tuple[str, ...]] = ("vocab.json", "vocab.txt")
MERGES_FILE: Final[str] = "merges.txt"
# exported saved models keep their tokenizer files next to the graph in assets/
ASSET_DIRS: Final[tuple[str, ...]] = ("", "assets")


Pattern = Literal["gpt2", "gpt4"]


def load_vocabulary(path: str | Path, special_tokens: SpecialTokens | None = None) -> Vocabulary:
    """
    Load a vocabulary file.

    ``vocab.json`` maps pieces to ids; ``.txt`` files hold one piece per line
    and the id is the line number, starting at 0.

    :param path: Path to a ``.json`` or ``.txt`` vocabulary.
    :param special_tokens: Names of the reserved tokens.
    :raises ModelLoadError: If the file is missing, has an unknown suffix or cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise ModelLoadError("vocabulary filepath does not exist", model_path=str(path))

    log.info(f"loading vocabulary from {path}")

    match path.suffix:
        case ".json":
            try:
                with path.open("r", encoding="utf-8") as f:
                    tokens = json.load(f)
            except json.JSONDecodeError as e:
                raise ModelLoadError(f"invalid json: {e.msg}", model_path=str(path), line_no=e.lineno) from e
            if not isinstance(tokens, dict):
                raise ModelLoadError("expected a json object of piece -> id", model_path=str(path))
        case ".txt":
            tokens = {}
            with path.open("r", encoding="utf-8") as f:
                for line_no, line in enumerate(f):
                    piece = line.rstrip("\r\n")
                    if piece in tokens:
                        raise ModelLoadError(f"duplicate piece {piece!r}", model_path=str(path), line_no=line_no + 1)
                    tokens[piece] = line_no
        case _:
            raise ModelLoadError("expected .json or .txt vocabulary file", model_path=str(path))

    try:
        return Vocabulary(tokens, special_tokens)
    except VocabularyError as e:
        raise ModelLoadError(f"invalid vocabulary: {e}", model_path=str(path)) from e


def load_merges(path: str | Path) -> MergeTable:
    """
    Load a ``merges.txt`` file.

    Every line holding exactly two space-separated symbols is a merge rule;
    its rank is its position among the rules. ``#version`` headers and other
    lines are skipped.

    :raises ModelLoadError: If the file is missing or repeats a rule.
    """
    path = Path(path)
    if not path.exists():
        raise ModelLoadError("merges filepath does not exist", model_path=str(path))

    log.info(f"loading merges from {path}")

    pairs: list[SymbolPair] = []
    skipped = 0
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            parts = line.rstrip("\r\n").split(" ")
            if line.startswith("#") or len(parts) != 2 or not all(parts):
                skipped += 1
                continue
            pairs.append((parts[0], parts[1]))

    if skipped:
        log.debug(f"skipped {skipped} non-rule lines in {path.name}")

    try:
        return MergeTable.from_pairs(pairs)
    except MergeTableError as e:
        raise ModelLoadError(f"invalid merges: {e}", model_path=str(path)) from e


def _find_file(model_dir: Path, names: tuple[str, ...]) -> Path | None:
    for sub in ASSET_DIRS:
        for name in names:
            candidate = model_dir / sub / name
            if candidate.exists():
                return candidate
    return None


def from_pretrained(
    model_dir: str | Path,
    pattern: Pattern = "gpt2",
    special_tokens: SpecialTokens | None = None,
) -> BPETokenizer:
    """
    Load a tokenizer from a model directory.

    Looks for ``vocab.json`` or ``vocab.txt`` and ``merges.txt`` in the
    directory itself, then in its ``assets/`` subdirectory.

    :param model_dir: Directory holding the tokenizer files.
    :param pattern: Built-in pre-tokenization pattern name.
    :param special_tokens: Names of the reserved tokens.
    :return: Tokenizer over the loaded vocabulary and merges.
    :raises ModelLoadError: If the directory or either file is missing or malformed.

    .. code-block:: python

        tokenizer = from_pretrained("path/to/roberta_base_qa_squad2")
        encoded = tokenizer.encode("My name is Clara.")
    """
    root = Path(model_dir)
    if not root.is_dir():
        raise ModelLoadError("model directory does not exist", model_path=str(root))

    vocab_path = _find_file(root, VOCAB_FILES)
    if vocab_path is None:
        raise ModelLoadError(f"vocabulary file ({' or '.join(VOCAB_FILES)}) not found", model_path=str(root))

    merges_path = _find_file(root, (MERGES_FILE,))
    if merges_path is None:
        raise ModelLoadError(f"merges file {MERGES_FILE} not found", model_path=str(root))

    vocab = load_vocabulary(vocab_path, special_tokens)
    merges = load_merges(merges_path)

    log.info(f"tokenizer loaded: {len(vocab)} pieces, {len(merges)} merge rules")
    return BPETokenizer(vocab, merges, TokenPattern.get(pattern))


@overload
def get_tokenizer(vocab: Vocabulary, merges: MergeTable, pattern: Pattern = "gpt2") -> BPETokenizer: ...


@overload
def get_tokenizer(vocab: Vocabulary, merges: MergeTable, *, custom_pattern: str) -> BPETokenizer: ...


def get_tokenizer(
    vocab: Vocabulary,
    merges: MergeTable,
    pattern: Pattern = "gpt2",
    *,
    custom_pattern: str | None = None,
) -> BPETokenizer:
    """
    Create a tokenizer with a built-in or custom pre-tokenization pattern.

    :param pattern: Built-in pattern name. Ignored if custom_pattern is provided.
    :param custom_pattern: Custom regex pattern string. Overrides pattern parameter.
    :raises PatternError: If the pattern name is unknown or custom_pattern is invalid regex.
    """
    # tokenizer initializer handles invalid custom patterns
    if custom_pattern is not None:
        return BPETokenizer(vocab, merges, custom_pattern)

    # get() handles invalid pattern names
    return BPETokenizer(vocab, merges, TokenPattern.get(pattern))
