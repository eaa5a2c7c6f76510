"""bytespan: byte-level BPE tokenization and answer-span decoding for extractive QA."""

from .config import EngineConfig
from .decoder import AnswerSpan, NoAnswer, NoAnswerReason, SpanDecoder
from .encoding import EncodedSequence, Owner, Token
from .engine import QuestionAnsweringEngine
from .factory import from_pretrained, get_tokenizer, load_merges, load_vocabulary
from .pattern import TokenPattern, list_patterns
from .scoring import CallableScoringAdapter, ScorePair, ScoringAdapter, score_batches
from .sequence import ModelInput, SequenceBuilder
from .strategy import (
    SlidingWindowStrategy,
    TruncateStrategy,
    TruncationStrategy,
    get_strategy,
    list_strategies,
)
from .tokenizer import BPETokenizer
from .vocab import MergeTable, SpecialTokens, Vocabulary

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bytespan")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "AnswerSpan",
    "BPETokenizer",
    "CallableScoringAdapter",
    "EncodedSequence",
    "EngineConfig",
    "MergeTable",
    "ModelInput",
    "NoAnswer",
    "NoAnswerReason",
    "Owner",
    "QuestionAnsweringEngine",
    "ScorePair",
    "ScoringAdapter",
    "SequenceBuilder",
    "SlidingWindowStrategy",
    "SpanDecoder",
    "SpecialTokens",
    "Token",
    "TokenPattern",
    "TruncateStrategy",
    "TruncationStrategy",
    "Vocabulary",
    "from_pretrained",
    "get_strategy",
    "get_tokenizer",
    "list_patterns",
    "list_strategies",
    "load_merges",
    "load_vocabulary",
    "score_batches",
]
