"""
Similarity primitives for comparing transcripts with reference text.

All functions are pure and operate on already-normalized words.
"""

from typing import Sequence

from pydantic import BaseModel, Field
from rapidfuzz.distance import Levenshtein

# Two words are "the same" for ordering purposes above this similarity
SEQUENCE_WORD_THRESHOLD = 0.8
FUZZY_WORD_THRESHOLD = 0.75


class ScoreWeights(BaseModel):
    """Weights of the combined transcript/verse score."""

    exact: float = Field(default=0.4, ge=0.0)
    fuzzy: float = Field(default=0.3, ge=0.0)
    sequential: float = Field(default=0.2, ge=0.0)
    length: float = Field(default=0.1, ge=0.0)


DEFAULT_WEIGHTS = ScoreWeights()


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute costs."""
    return Levenshtein.distance(a, b)


def word_similarity(a: str, b: str) -> float:
    """
    Similarity of two words in [0, 1].

    1.0 for equal words, otherwise one minus the edit distance scaled by
    the longer word. Empty words never match.

    Examples:
        >>> word_similarity("الرحمن", "الرحمن")
        1.0
        >>> word_similarity("abcd", "abcf")
        0.75
    """
    a = a.strip().lower()
    b = b.strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return 1.0 - edit_distance(a, b) / max(len(a), len(b))


def exact_match_ratio(transcript: Sequence[str], reference: Sequence[str]) -> float:
    """
    Share of words matched exactly, one-to-one.

    Each reference word is consumed at most once. The count is divided by
    the longer of the two sequences.
    """
    if not transcript or not reference:
        return 0.0

    used = [False] * len(reference)
    matches = 0
    for word in transcript:
        for i, ref_word in enumerate(reference):
            if not used[i] and word == ref_word:
                used[i] = True
                matches += 1
                break

    return matches / max(len(transcript), len(reference))


def fuzzy_match_ratio(
    transcript: Sequence[str],
    reference: Sequence[str],
    threshold: float = FUZZY_WORD_THRESHOLD,
) -> float:
    """
    Share of words matched approximately, one-to-one.

    Each transcript word takes the most similar unused reference word whose
    similarity exceeds ``threshold``.
    """
    if not transcript or not reference:
        return 0.0

    used = [False] * len(reference)
    matches = 0
    for word in transcript:
        best_index = -1
        best_similarity = 0.0
        for i, ref_word in enumerate(reference):
            if used[i]:
                continue
            sim = word_similarity(word, ref_word)
            if sim > threshold and sim > best_similarity:
                best_similarity = sim
                best_index = i
        if best_index >= 0:
            used[best_index] = True
            matches += 1

    return matches / max(len(transcript), len(reference))


def sequential_similarity(
    transcript: Sequence[str],
    reference: Sequence[str],
    threshold: float = SEQUENCE_WORD_THRESHOLD,
) -> float:
    """
    Longest common subsequence of words, divided by the longer length.

    Two words count as equal when their similarity exceeds ``threshold``,
    which rewards words recited in the right order.
    """
    if not transcript or not reference:
        return 0.0

    n, m = len(transcript), len(reference)
    prev = [0] * (m + 1)
    for i in range(1, n + 1):
        curr = [0] * (m + 1)
        for j in range(1, m + 1):
            if word_similarity(transcript[i - 1], reference[j - 1]) > threshold:
                curr[j] = prev[j - 1] + 1
            else:
                curr[j] = max(prev[j], curr[j - 1])
        prev = curr

    return prev[m] / max(n, m)


def length_similarity(a: Sequence[str], b: Sequence[str]) -> float:
    """One minus the length difference scaled by the longer sequence."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 0.0
    return 1.0 - abs(len(a) - len(b)) / longest


def combined_score(
    transcript: Sequence[str],
    reference: Sequence[str],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    fuzzy_threshold: float = FUZZY_WORD_THRESHOLD,
    sequence_threshold: float = SEQUENCE_WORD_THRESHOLD,
) -> float:
    """
    Weighted blend of exact, fuzzy, sequential and length similarity.

    With the default weights (0.4/0.3/0.2/0.1) identical word lists score 1.0.

    Returns:
        Score in [0, 1]
    """
    if not transcript or not reference:
        return 0.0

    total_weight = weights.exact + weights.fuzzy + weights.sequential + weights.length
    if total_weight <= 0:
        return 0.0
    score = (
        weights.exact * exact_match_ratio(transcript, reference)
        + weights.fuzzy * fuzzy_match_ratio(transcript, reference, fuzzy_threshold)
        + weights.sequential * sequential_similarity(transcript, reference, sequence_threshold)
        + weights.length * length_similarity(transcript, reference)
    )
    # Rescale weights that do not sum to 1
    return min(1.0, max(0.0, score / total_weight))
