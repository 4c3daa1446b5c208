"""
Word alignment and error classification.

Two tiers are offered:

- ``detect_errors``: quick feedback. Positions are compared one-to-one and
  any length difference is reported as a single aggregate omission or
  insertion.
- ``align_words_with_verse``: detailed analysis. Every transcript word and
  every expected word ends up in exactly one alignment row.
"""

from collections import Counter
from typing import Optional, Sequence

from tasmee.core.matcher import word_similarity
from tasmee.models import (
    AlignmentStatus,
    ErrorType,
    RecitationError,
    RecognizedWord,
    WordAlignment,
)

SUBSTITUTION_THRESHOLD = 0.7
ACCEPT_THRESHOLD = 0.6
CORRECT_THRESHOLD = 0.8


def _timing(word_timings: Optional[Sequence[RecognizedWord]], index: int) -> tuple[float, float]:
    if word_timings and 0 <= index < len(word_timings):
        word = word_timings[index]
        return word.start_time, word.end_time
    return 0.0, 0.0


def detect_errors(
    transcript_words: Sequence[str],
    expected_words: Sequence[str],
    chapter: int,
    verse: int,
    start_word_index: int = 0,
    word_timings: Optional[Sequence[RecognizedWord]] = None,
    threshold: float = SUBSTITUTION_THRESHOLD,
) -> list[RecitationError]:
    """
    Compare a transcript with the expected words position by position.

    Args:
        transcript_words: Normalized transcript words
        expected_words: Expected words from the matched start index onward
        chapter: Chapter of the matched verse
        verse: Matched verse
        start_word_index: Verse index of ``expected_words[0]``
        word_timings: Recognized words, parallel to ``transcript_words``
        threshold: Word similarity below which a word is a substitution

    Returns:
        Substitutions in word order, followed by at most one aggregate
        omission or insertion

    Examples:
        >>> [e.type.value for e in detect_errors(["a", "x", "c", "d"], ["a", "b", "c", "d"], 1, 1)]
        ['substitution']
    """
    errors: list[RecitationError] = []
    overlap = min(len(transcript_words), len(expected_words))

    for i in range(overlap):
        heard = transcript_words[i]
        expected = expected_words[i]
        sim = word_similarity(heard, expected)
        if sim < threshold:
            start, end = _timing(word_timings, i)
            errors.append(
                RecitationError(
                    type=ErrorType.SUBSTITUTION,
                    chapter=chapter,
                    verse=verse,
                    word_index=start_word_index + i,
                    heard_word=heard,
                    expected_word=expected,
                    start_time=start,
                    end_time=end,
                    confidence=sim,
                    suggestion=f"Expected: {expected}",
                )
            )

    diff = len(transcript_words) - len(expected_words)
    if diff != 0:
        error_type = ErrorType.OMISSION if diff < 0 else ErrorType.INSERTION
        if word_timings:
            start, end = word_timings[0].start_time, word_timings[-1].end_time
        else:
            start, end = 0.0, 0.0
        errors.append(
            RecitationError(
                type=error_type,
                chapter=chapter,
                verse=verse,
                word_index=start_word_index + overlap,
                heard_word=" ".join(transcript_words),
                expected_word=" ".join(expected_words),
                start_time=start,
                end_time=end,
                confidence=overlap / max(len(transcript_words), len(expected_words)),
                suggestion=f"{abs(diff)} word(s) {error_type.value}",
            )
        )

    return errors


def align_words_with_verse(
    transcript_words: Sequence[str],
    expected_words: Sequence[str],
    accept_threshold: float = ACCEPT_THRESHOLD,
    correct_threshold: float = CORRECT_THRESHOLD,
) -> list[WordAlignment]:
    """
    Align transcript words to expected words.

    Each transcript word greedily takes the most similar unused expected
    word whose similarity exceeds ``accept_threshold``; it is correct at or
    above ``correct_threshold`` and a substitution otherwise. Transcript
    words left without a partner are insertions; expected words never
    taken are omissions.

    Rows are ordered by expected index. An insertion is placed right after
    the row of the transcript word before it.

    Returns:
        One row per transcript word and per unmatched expected word
    """
    used = [False] * len(expected_words)
    pairs: dict[int, tuple[int, float]] = {}

    for t, heard in enumerate(transcript_words):
        best_index = -1
        best_similarity = 0.0
        for e, expected in enumerate(expected_words):
            if used[e]:
                continue
            sim = word_similarity(heard, expected)
            if sim > accept_threshold and sim > best_similarity:
                best_index, best_similarity = e, sim
        if best_index >= 0:
            used[best_index] = True
            pairs[t] = (best_index, best_similarity)

    rows: list[tuple[tuple[int, int, int], WordAlignment]] = []

    for t, (e, sim) in pairs.items():
        status = AlignmentStatus.CORRECT if sim >= correct_threshold else AlignmentStatus.SUBSTITUTION
        rows.append(
            (
                (e, 0, 0),
                WordAlignment(
                    status=status,
                    expected_index=e,
                    transcript_index=t,
                    expected_word=expected_words[e],
                    heard_word=transcript_words[t],
                    similarity=sim,
                ),
            )
        )

    for e, taken in enumerate(used):
        if not taken:
            rows.append(
                (
                    (e, 0, 0),
                    WordAlignment(
                        status=AlignmentStatus.OMISSION,
                        expected_index=e,
                        expected_word=expected_words[e],
                    ),
                )
            )

    # Insertions follow the expected position of the preceding aligned word
    anchor = -1
    for t, heard in enumerate(transcript_words):
        if t in pairs:
            anchor = pairs[t][0]
            continue
        rows.append(
            (
                (anchor, 1, t),
                WordAlignment(
                    status=AlignmentStatus.INSERTION,
                    transcript_index=t,
                    heard_word=heard,
                ),
            )
        )

    rows.sort(key=lambda row: row[0])
    return [row for _, row in rows]


def alignment_errors(
    alignments: Sequence[WordAlignment],
    chapter: int,
    verse: int,
    start_word_index: int = 0,
    word_timings: Optional[Sequence[RecognizedWord]] = None,
) -> list[RecitationError]:
    """
    Convert the non-correct rows of a detailed alignment into errors.

    Insertions are reported at the verse index where they were heard.
    """
    errors = []
    last_index = start_word_index
    for row in alignments:
        if row.expected_index is not None:
            last_index = start_word_index + row.expected_index
        if row.status == AlignmentStatus.CORRECT:
            continue

        if row.transcript_index is not None:
            start, end = _timing(word_timings, row.transcript_index)
        else:
            start, end = 0.0, 0.0

        if row.status == AlignmentStatus.SUBSTITUTION:
            suggestion = f"Expected: {row.expected_word}"
        elif row.status == AlignmentStatus.OMISSION:
            suggestion = f"Missing word: {row.expected_word}"
        else:
            suggestion = f"Extra word: {row.heard_word}"

        errors.append(
            RecitationError(
                type=ErrorType(row.status.value),
                chapter=chapter,
                verse=verse,
                word_index=last_index,
                heard_word=row.heard_word,
                expected_word=row.expected_word,
                start_time=start,
                end_time=end,
                confidence=row.similarity,
                suggestion=suggestion,
            )
        )
    return errors


def alignment_summary(alignments: Sequence[WordAlignment]) -> dict[str, int]:
    """Count alignment rows per status; every status is present."""
    counts = Counter(row.status.value for row in alignments)
    return {status.value: counts.get(status.value, 0) for status in AlignmentStatus}
