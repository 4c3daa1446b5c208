"""
Reference recitation models used for cross-validation.
"""

from typing import Optional

from pydantic import BaseModel, Field


class VerseReference(BaseModel):
    """A known-correct recitation of a verse by one reciter."""

    reciter_id: str
    chapter: int = Field(..., ge=1)
    verse: int = Field(..., ge=1)
    normalized_text: str
    audio_ref: str = ""
    duration: float = Field(default=0.0, ge=0.0)

    @property
    def words(self) -> list[str]:
        return self.normalized_text.split()


class ReciterSimilarity(BaseModel):
    """Similarity between a user's transcript and one reference reciter."""

    reciter_id: str
    similarity: float = Field(..., ge=0.0, le=1.0)
    audio_ref: str = ""
    duration: float = 0.0


class ValidationResult(BaseModel):
    """
    Result of cross-validating a transcript against reference recitations.

    Attributes:
        chapter: Chapter of the validated verse
        verse: Validated verse
        transcript: The normalized user transcript
        accuracy: Best similarity against any reference reciter
        is_accurate: Whether accuracy cleared the reference threshold
        best_matching_reciter: Reciter closest to the user
        reciter_similarities: Score per reciter, best first
        feedback: Human-readable verdict
    """

    chapter: int
    verse: int
    transcript: str = ""
    accuracy: float = Field(default=0.0, ge=0.0, le=1.0)
    is_accurate: bool = False
    best_matching_reciter: Optional[str] = None
    reciter_similarities: list[ReciterSimilarity] = Field(default_factory=list)
    feedback: str = ""
