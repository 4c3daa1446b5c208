"""
Recitation session data model.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

from tasmee.models.result import RecitationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecitationMode(str, Enum):
    """How the reciter is practising."""

    GUIDED = "guided"
    FREE = "free"
    MEMORIZATION = "memorization"


class SessionState(str, Enum):
    """Lifecycle state of a recitation session."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    STOPPED = "stopped"


class Progress(BaseModel):
    """
    Cursor into the reference text.

    Attributes:
        chapter: Current chapter
        verse: Current verse
        word_index: Next expected word in the current verse
        total_words_in_verse: Word count of the current verse
        percent_complete: How far through the current verse the cursor is
        verse_complete: Whether the last advance finished a verse
        chapter_complete: Whether the last advance finished a chapter
        recitation_complete: Whether the end of the loaded text was reached
        next_expected_text: The next few expected words, for prompting
    """

    chapter: int = Field(default=1, ge=1)
    verse: int = Field(default=1, ge=1)
    word_index: int = Field(default=0, ge=0)
    total_words_in_verse: int = Field(default=0, ge=0)
    percent_complete: float = Field(default=0.0, ge=0.0, le=100.0)
    verse_complete: bool = False
    chapter_complete: bool = False
    recitation_complete: bool = False
    next_expected_text: str = ""

    @property
    def position(self) -> tuple[int, int, int]:
        return (self.chapter, self.verse, self.word_index)


class RecitationSession(BaseModel):
    """
    A user's recitation session.

    Represents the full lifecycle of a recitation, from start through the
    processed chunks to the final accuracy computed on stop.

    Attributes:
        id: Unique identifier for this session
        user_id: Owner of the session
        starting_chapter: Chapter the session started at
        starting_verse: Verse the session started at
        mode: Recitation mode
        error_threshold: Word similarity below which a word counts as a mistake
        state: Lifecycle state
        current_progress: Cursor into the reference text
        session_errors: Every error detected, in order (append-only)
        error_type_counts: Error count per error type
        total_chunks_processed: Chunks that produced a transcript
        total_recitation_seconds: Audio duration of those chunks
        total_words_recited: Transcript words across those chunks
        started_at: When the session started
        ended_at: When the session stopped
        average_accuracy: Final accuracy (set on stop)
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this session",
    )
    user_id: str = Field(..., description="Owner of the session")
    starting_chapter: int = Field(default=1, ge=1)
    starting_verse: int = Field(default=1, ge=1)
    mode: RecitationMode = RecitationMode.GUIDED
    error_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    state: SessionState = SessionState.NOT_STARTED
    current_progress: Progress = Field(default_factory=Progress)
    session_errors: list[RecitationError] = Field(default_factory=list)
    error_type_counts: dict[str, int] = Field(default_factory=dict)
    total_chunks_processed: int = Field(default=0, ge=0)
    total_recitation_seconds: float = Field(default=0.0, ge=0.0)
    total_words_recited: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    average_accuracy: float = Field(default=0.0, ge=0.0, le=1.0)

    @computed_field
    @property
    def is_active(self) -> bool:
        """Whether the session accepts chunks."""
        return self.state == SessionState.ACTIVE

    @property
    def error_count(self) -> int:
        return len(self.session_errors)

    @property
    def duration(self) -> Optional[float]:
        """Wall-clock session duration in seconds (if stopped)."""
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    def __str__(self) -> str:
        p = self.current_progress
        return (
            f"RecitationSession({self.id}, user={self.user_id}, "
            f"state={self.state.value}, at={p.chapter}:{p.verse}[{p.word_index}], "
            f"chunks={self.total_chunks_processed}, errors={self.error_count})"
        )
