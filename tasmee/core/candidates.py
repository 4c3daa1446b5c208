"""
Candidate verse search.

Given a normalized transcript and the session cursor, find which verse the
reciter is most likely on. Candidates are the expected verse from the
cursor onward, then nearby verses of the same chapter.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from tasmee.core.matcher import (
    DEFAULT_WEIGHTS,
    FUZZY_WORD_THRESHOLD,
    SEQUENCE_WORD_THRESHOLD,
    ScoreWeights,
    combined_score,
)
from tasmee.models import MatchResult, Verse

if TYPE_CHECKING:
    from tasmee.config import TasmeeSettings
    from tasmee.data.corpus import Corpus

MATCH_THRESHOLD = 0.6
SEARCH_WINDOW = 2


@dataclass
class Candidate:
    """A verse considered for a transcript, with the word it starts from."""

    verse: Verse
    start_word_index: int
    distance: int

    @property
    def remaining_words(self) -> list[str]:
        return list(self.verse.normalized_words[self.start_word_index:])


class CandidateMatcher:
    """
    Finds the best-matching verse for a transcript near an expected position.

    Example:
        matcher = CandidateMatcher(corpus)
        result = matcher.find_best_match(["بسم", "الله"], chapter=1, verse=1, word_index=0)
        if result.is_match:
            print(result.chapter, result.verse, result.match_length)
    """

    def __init__(
        self,
        corpus: "Corpus",
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        match_threshold: float = MATCH_THRESHOLD,
        fuzzy_threshold: float = FUZZY_WORD_THRESHOLD,
        sequence_threshold: float = SEQUENCE_WORD_THRESHOLD,
        search_window: int = SEARCH_WINDOW,
    ) -> None:
        self.corpus = corpus
        self.weights = weights
        self.match_threshold = match_threshold
        self.fuzzy_threshold = fuzzy_threshold
        self.sequence_threshold = sequence_threshold
        self.search_window = search_window

    @classmethod
    def from_settings(cls, corpus: "Corpus", settings: "TasmeeSettings") -> "CandidateMatcher":
        return cls(
            corpus,
            weights=ScoreWeights(
                exact=settings.exact_weight,
                fuzzy=settings.fuzzy_weight,
                sequential=settings.sequential_weight,
                length=settings.length_weight,
            ),
            match_threshold=settings.match_threshold,
            fuzzy_threshold=settings.fuzzy_word_threshold,
            sequence_threshold=settings.sequence_word_threshold,
            search_window=settings.search_window,
        )

    def _score(self, transcript: Sequence[str], reference: Sequence[str]) -> float:
        return combined_score(
            transcript,
            reference,
            self.weights,
            fuzzy_threshold=self.fuzzy_threshold,
            sequence_threshold=self.sequence_threshold,
        )

    def candidates(
        self,
        chapter: int,
        verse: int,
        word_index: int,
        search_window: Optional[int] = None,
    ) -> list[Candidate]:
        """
        Candidate verses ordered by distance from the expected position.

        The expected verse comes first, starting at the cursor. Neighbors
        within the window start at word 0; for equal distance the earlier
        verse comes first.
        """
        window = self.search_window if search_window is None else search_window
        found: list[Candidate] = []

        expected = self.corpus.get_verse(chapter, verse)
        if expected is not None and word_index < expected.word_count:
            found.append(Candidate(expected, word_index, 0))

        for distance in range(1, window + 1):
            for number in (verse - distance, verse + distance):
                neighbor = self.corpus.get_verse(chapter, number)
                if neighbor is not None and neighbor.word_count > 0:
                    found.append(Candidate(neighbor, 0, distance))

        return found

    def find_best_match(
        self,
        transcript_words: Sequence[str],
        chapter: int,
        verse: int,
        word_index: int = 0,
        search_window: Optional[int] = None,
    ) -> MatchResult:
        """
        Match a transcript against the verses around the expected position.

        Each candidate is scored on the aligned window of
        ``min(len(transcript), remaining words)`` words. The highest score
        wins; ties go to the candidate closest to the expected position.

        Args:
            transcript_words: Normalized transcript words
            chapter: Expected chapter
            verse: Expected verse
            word_index: Next expected word in that verse
            search_window: Verses either side of the expected one to consider

        Returns:
            MatchResult, with is_match=False when the best score does not
            exceed the match threshold
        """
        if not transcript_words:
            return MatchResult.no_match()

        best: Optional[Candidate] = None
        best_score = -1.0
        best_window = 0

        for candidate in self.candidates(chapter, verse, word_index, search_window):
            remaining = candidate.remaining_words
            window = min(len(transcript_words), len(remaining))
            score = self._score(transcript_words[:window], remaining[:window])
            if score > best_score:
                best, best_score, best_window = candidate, score, window

        if best is None:
            return MatchResult.no_match()

        return MatchResult(
            is_match=best_score > self.match_threshold,
            confidence=best_score,
            start_word_index=best.start_word_index,
            match_length=best_window,
            expected_words=best.remaining_words,
            chapter=best.verse.chapter_number,
            verse=best.verse.verse_number,
        )

    def find_similar_verse(
        self,
        transcript_words: Sequence[str],
        exclude: Optional[tuple[int, int]] = None,
        threshold: Optional[float] = None,
    ) -> MatchResult:
        """
        Corpus-wide search for the verse that best resembles a transcript.

        Used when the transcript does not match around the cursor, to tell
        whether the reciter jumped to another passage.

        Args:
            transcript_words: Normalized transcript words
            exclude: (chapter, verse) to skip, usually the expected verse
            threshold: Score the best verse must exceed (default: match threshold)

        Returns:
            MatchResult for the best verse anywhere in the corpus
        """
        threshold = self.match_threshold if threshold is None else threshold
        if not transcript_words:
            return MatchResult.no_match()

        best: Optional[Verse] = None
        best_score = -1.0
        for verse in self.corpus.iter_verses():
            if exclude is not None and (verse.chapter_number, verse.verse_number) == exclude:
                continue
            score = self._score(transcript_words, verse.normalized_words)
            if score > best_score:
                best, best_score = verse, score

        if best is None:
            return MatchResult.no_match()

        return MatchResult(
            is_match=best_score > threshold,
            confidence=best_score,
            start_word_index=0,
            match_length=min(len(transcript_words), best.word_count),
            expected_words=list(best.normalized_words),
            chapter=best.chapter_number,
            verse=best.verse_number,
        )
