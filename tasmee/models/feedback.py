"""
Models returned to callers of the recognition service.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from tasmee.models.chunk import RecognizedWord
from tasmee.models.recitation import Progress
from tasmee.models.reference import ValidationResult
from tasmee.models.result import RecitationError, WordAlignment


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchedVerse(BaseModel):
    """The verse a chunk was recognized as."""

    chapter: int
    verse: int
    text: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    start_word_index: int = 0
    match_length: int = 0
    words: list[RecognizedWord] = Field(default_factory=list)


class Feedback(BaseModel):
    """
    Result of processing one audio chunk.

    Attributes:
        chunk_id: Identifier of the processed chunk
        session_id: Session the chunk belongs to
        is_success: Whether the chunk was transcribed and analyzed
        transcribed_text: Raw transcript
        normalized_text: Transcript after normalization
        matched_verse: The recognized verse, when the transcript matched
        matched_verses: Every verse the chunk covered, in order, when it ran past
            the end of the matched verse
        confidence: Final confidence (blended with reference accuracy when available)
        errors: Errors detected in this chunk
        updated_progress: Session cursor after this chunk
        word_alignments: Detailed word alignment (only when requested)
        validation: Reference cross-validation result, if a dataset is configured
        processing_time_ms: Time spent on the chunk
    """

    chunk_id: str
    session_id: str
    is_success: bool = False
    transcribed_text: str = ""
    normalized_text: str = ""
    matched_verse: Optional[MatchedVerse] = None
    matched_verses: list[MatchedVerse] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    errors: list[RecitationError] = Field(default_factory=list)
    updated_progress: Optional[Progress] = None
    word_alignments: Optional[list[WordAlignment]] = None
    validation: Optional[ValidationResult] = None
    processing_time_ms: float = 0.0
    timestamp: datetime = Field(default_factory=_utcnow)


class SessionSummary(BaseModel):
    """Returned when a session is stopped."""

    session_id: str
    final_accuracy: float = Field(..., ge=0.0, le=1.0)
    total_chunks_processed: int = 0
    total_errors: int = 0
    ended_at: Optional[datetime] = None


class VerseDifficulty(BaseModel):
    """Error tally for one verse."""

    chapter: int
    verse: int
    error_count: int
    error_types: dict[str, int] = Field(default_factory=dict)


class SessionStatistics(BaseModel):
    """Aggregate statistics for a session."""

    session_id: str
    total_duration_seconds: float = 0.0
    chunk_count: int = 0
    total_errors: int = 0
    average_accuracy: float = 0.0
    error_breakdown: dict[str, int] = Field(default_factory=dict)
    current_progress: Progress = Field(default_factory=Progress)
    most_difficult_verses: list[VerseDifficulty] = Field(default_factory=list)
    words_per_minute: float = 0.0
    is_active: bool = False
