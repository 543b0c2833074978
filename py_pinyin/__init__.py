from .decode import DecodeTimeoutError, PhoneticDecoder
from .matrix import PhoneticMatrix, Span, split_syllables
from .model import Candidate, Lattice, Match, MatchResult
from .stores import (
    NULL_TOKEN,
    SENTENCE_START,
    Bigram,
    PhraseIndex,
    PhraseItem,
    PronunciationModel,
    SingleGram,
    Statistics,
    build_statistics,
)
from .train import train_match

__all__ = [
    "NULL_TOKEN",
    "SENTENCE_START",
    "Bigram",
    "Candidate",
    "DecodeTimeoutError",
    "Lattice",
    "Match",
    "MatchResult",
    "PhoneticDecoder",
    "PhoneticMatrix",
    "PhraseIndex",
    "PhraseItem",
    "PronunciationModel",
    "SingleGram",
    "Span",
    "Statistics",
    "build_statistics",
    "split_syllables",
    "train_match",
]
