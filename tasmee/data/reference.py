"""
Reference recitations for cross-validating user transcripts.

A reference dataset holds known-correct transcripts of verses by several
reciters. A user's transcript is scored against every reciter of the same
verse to estimate how accurate the recitation was.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from tasmee._logging import get_logger
from tasmee.core.arabic import normalize_arabic
from tasmee.core.matcher import combined_score
from tasmee.exceptions import DataFormatError
from tasmee.models import ReciterSimilarity, ValidationResult, VerseReference

logger = get_logger(__name__)

ACCURACY_THRESHOLD = 0.8
SIMILAR_RECITATION_THRESHOLD = 0.7


class ReferenceDataset(ABC):
    """Source of known-correct recitations, keyed by verse."""

    @abstractmethod
    def get_verse_references(self, chapter: int, verse: int) -> list[VerseReference]:
        """
        All reference recitations of a verse, ordered by reciter.

        Returns:
            Possibly empty list of references
        """
        ...

    @abstractmethod
    def find_similar_recitations(
        self,
        text: str,
        reciter_id: Optional[str] = None,
        max_results: int = 10,
    ) -> list[VerseReference]:
        """
        References whose text resembles ``text``, most similar first.

        Args:
            text: Arabic text in any form
            reciter_id: Restrict results to one reciter
            max_results: Maximum number of results
        """
        ...


class InMemoryReferenceDataset(ReferenceDataset):
    """
    Reference dataset held in a dict.

    Example:
        dataset = InMemoryReferenceDataset.from_json("data/references.json")
        refs = dataset.get_verse_references(1, 1)
    """

    def __init__(self, references: Optional[list[VerseReference]] = None) -> None:
        self._by_verse: dict[tuple[int, int], list[VerseReference]] = {}
        for reference in references or []:
            self.add(reference)

    def add(self, reference: VerseReference) -> None:
        refs = self._by_verse.setdefault((reference.chapter, reference.verse), [])
        refs.append(reference)
        refs.sort(key=lambda r: r.reciter_id)

    def __len__(self) -> int:
        return sum(len(refs) for refs in self._by_verse.values())

    @property
    def reciters(self) -> list[str]:
        return sorted({r.reciter_id for refs in self._by_verse.values() for r in refs})

    def get_verse_references(self, chapter: int, verse: int) -> list[VerseReference]:
        return list(self._by_verse.get((chapter, verse), []))

    def find_similar_recitations(
        self,
        text: str,
        reciter_id: Optional[str] = None,
        max_results: int = 10,
    ) -> list[VerseReference]:
        words = normalize_arabic(text).split()
        if not words:
            return []

        scored = []
        for refs in self._by_verse.values():
            for reference in refs:
                if reciter_id is not None and reference.reciter_id.lower() != reciter_id.lower():
                    continue
                score = combined_score(words, reference.words)
                if score > SIMILAR_RECITATION_THRESHOLD:
                    scored.append((score, reference))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [reference for _, reference in scored[:max_results]]

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryReferenceDataset":
        """
        Load references from a JSON list.

        Each record needs ``reciter_id``, ``chapter``, ``verse`` and either
        ``normalized_text`` or ``text`` (normalized on load).

        Raises:
            DataFormatError: If the file is missing or malformed
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataFormatError(f"Cannot read reference dataset: {e}", source=str(path))

        if not isinstance(records, list):
            raise DataFormatError("Reference dataset must be a JSON list", source=str(path))

        references = []
        for record in records:
            if "normalized_text" not in record and "text" in record:
                record = {**record, "normalized_text": normalize_arabic(record["text"])}
            try:
                references.append(VerseReference.model_validate(record))
            except ValidationError as e:
                raise DataFormatError(
                    f"Invalid reference record: {e.error_count()} errors",
                    source=str(path),
                )

        logger.info(f"Loaded {len(references)} reference recitations from {path}")
        return cls(references)


def generate_feedback(accuracy: float, best_reciter: Optional[str] = None) -> str:
    """Human-readable verdict for a validation accuracy."""
    if accuracy > 0.9:
        return "Excellent recitation! Very close to perfect pronunciation."
    if accuracy > 0.8:
        return "Good recitation with minor pronunciation differences."
    if accuracy > 0.7:
        return f"Decent effort. Your style is closest to {best_reciter or 'reference'}. Keep practicing!"
    if accuracy > 0.5:
        return "Needs improvement. Focus on pronunciation and rhythm."
    return "Please try again. Listen to reference recitations for guidance."


def validate_recitation(
    dataset: ReferenceDataset,
    transcript_words: list[str],
    chapter: int,
    verse: int,
    start_word_index: int = 0,
    threshold: float = ACCURACY_THRESHOLD,
) -> Optional[ValidationResult]:
    """
    Score a transcript against every reference recitation of a verse.

    Each reference is compared on the same window the transcript covers,
    starting at ``start_word_index``.

    Args:
        dataset: Reference dataset to consult
        transcript_words: Normalized transcript words
        chapter: Chapter of the matched verse
        verse: Matched verse
        start_word_index: Where in the verse the transcript starts
        threshold: Accuracy above which the recitation counts as accurate

    Returns:
        ValidationResult, or None when the verse has no references
    """
    references = dataset.get_verse_references(chapter, verse)
    if not references:
        return None

    similarities = []
    for reference in references:
        window = reference.words[start_word_index:start_word_index + len(transcript_words)]
        similarities.append(
            ReciterSimilarity(
                reciter_id=reference.reciter_id,
                similarity=combined_score(transcript_words, window),
                audio_ref=reference.audio_ref,
                duration=reference.duration,
            )
        )
    similarities.sort(key=lambda s: s.similarity, reverse=True)

    best = similarities[0]
    return ValidationResult(
        chapter=chapter,
        verse=verse,
        transcript=" ".join(transcript_words),
        accuracy=best.similarity,
        is_accurate=best.similarity > threshold,
        best_matching_reciter=best.reciter_id,
        reciter_similarities=similarities,
        feedback=generate_feedback(best.similarity, best.reciter_id),
    )
