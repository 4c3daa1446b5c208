"""
Audio chunk and transcription output models.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecitationChunk(BaseModel):
    """
    A piece of recited audio submitted for recognition.

    Created per recognition call and discarded after processing. The
    expected position is the session cursor at the time the chunk arrived.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    audio_bytes: bytes = Field(default=b"", repr=False)
    audio_format: str = "wav"
    duration_seconds: float = Field(default=3.0, ge=0.0)
    expected_chapter: Optional[int] = None
    expected_verse: Optional[int] = None
    expected_word_index: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)


class TranscribedSegment(BaseModel):
    """A timestamped piece of text returned by a transcriber."""

    text: str
    start: float = Field(default=0.0, ge=0.0)
    end: float = Field(default=0.0, ge=0.0)

    @computed_field
    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


class RecognizedWord(BaseModel):
    """
    A single transcribed word with its estimated timing.

    Attributes:
        text: The word as heard
        start_time: Estimated start in the chunk (seconds)
        end_time: Estimated end in the chunk (seconds)
        word_index_in_segment: Position within the source segment
        confidence: Recognition confidence (engines without word-level
            confidence report a flat default)
    """

    text: str
    start_time: float = 0.0
    end_time: float = 0.0
    word_index_in_segment: int = 0
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
