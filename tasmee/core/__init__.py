"""
Core modules for Tasmee library.

This package contains the core logic for:
- Arabic text normalization
- Word and sequence similarity
- Candidate verse search
- Word alignment and error classification
- Session progress tracking
"""

from tasmee.core.arabic import (
    SpecialPhrase,
    detect_special_phrase,
    normalize_arabic,
    special_phrase_span,
    tokenize,
)
from tasmee.core.matcher import (
    DEFAULT_WEIGHTS,
    ScoreWeights,
    combined_score,
    edit_distance,
    exact_match_ratio,
    fuzzy_match_ratio,
    length_similarity,
    sequential_similarity,
    word_similarity,
)
from tasmee.core.candidates import CandidateMatcher
from tasmee.core.aligner import (
    align_words_with_verse,
    alignment_errors,
    alignment_summary,
    detect_errors,
)
from tasmee.core.tracker import ProgressTracker, compute_accuracy

__all__ = [
    # Arabic
    "normalize_arabic",
    "tokenize",
    "detect_special_phrase",
    "SpecialPhrase",
    "special_phrase_span",
    # Matcher
    "DEFAULT_WEIGHTS",
    "ScoreWeights",
    "combined_score",
    "edit_distance",
    "exact_match_ratio",
    "fuzzy_match_ratio",
    "length_similarity",
    "sequential_similarity",
    "word_similarity",
    # Candidates
    "CandidateMatcher",
    # Aligner
    "align_words_with_verse",
    "alignment_errors",
    "alignment_summary",
    "detect_errors",
    # Tracker
    "ProgressTracker",
    "compute_accuracy",
]
