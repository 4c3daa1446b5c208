"""
Matching and error classification result models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field


class ErrorType(str, Enum):
    """Kind of recitation mistake."""

    SUBSTITUTION = "substitution"
    OMISSION = "omission"
    INSERTION = "insertion"
    SEQUENCE = "sequence"


class RecitationError(BaseModel):
    """
    A mistake detected in a recited chunk.

    Attributes:
        type: What kind of mistake was made
        chapter: Chapter of the verse the mistake belongs to
        verse: Verse the mistake belongs to
        word_index: Index of the word within the verse (0-based)
        heard_word: What the transcriber heard (empty for per-word omissions)
        expected_word: What the reference text says (empty for per-word insertions)
        start_time: Start of the heard word in the chunk (seconds)
        end_time: End of the heard word in the chunk (seconds)
        confidence: Similarity between heard and expected text (0.0-1.0)
        suggestion: Human-readable hint for the reciter
    """

    type: ErrorType
    chapter: int
    verse: int
    word_index: int = 0
    heard_word: str = ""
    expected_word: str = ""
    start_time: float = 0.0
    end_time: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    suggestion: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "substitution",
                    "chapter": 1,
                    "verse": 2,
                    "word_index": 1,
                    "heard_word": "لله",
                    "expected_word": "الله",
                    "confidence": 0.75,
                    "suggestion": "Expected: الله",
                }
            ]
        }
    }

    def __str__(self) -> str:
        return (
            f"RecitationError({self.type.value} at {self.chapter}:{self.verse}"
            f"[{self.word_index}], heard={self.heard_word!r}, expected={self.expected_word!r})"
        )


class MatchResult(BaseModel):
    """
    Outcome of matching a transcript against candidate verses.

    "No match" is an ordinary outcome, reported with ``is_match=False``.

    Attributes:
        is_match: Whether the best score cleared the match threshold
        confidence: Combined similarity score of the best candidate (0.0-1.0)
        start_word_index: Word index in the candidate verse where matching began
        match_length: Number of words compared (the aligned window)
        expected_words: Remaining words of the candidate from start_word_index
        chapter: Chapter of the best candidate, if any
        verse: Verse number of the best candidate, if any
    """

    is_match: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    start_word_index: int = Field(default=0, ge=0)
    match_length: int = Field(default=0, ge=0)
    expected_words: list[str] = Field(default_factory=list)
    chapter: Optional[int] = None
    verse: Optional[int] = None

    @classmethod
    def no_match(cls, confidence: float = 0.0) -> "MatchResult":
        return cls(is_match=False, confidence=confidence)

    @property
    def has_candidate(self) -> bool:
        return self.chapter is not None and self.verse is not None

    def __str__(self) -> str:
        where = f"{self.chapter}:{self.verse}" if self.has_candidate else "-"
        return (
            f"MatchResult({where}, match={self.is_match}, "
            f"score={self.confidence:.2f}, length={self.match_length})"
        )


class AlignmentStatus(str, Enum):
    """Status of one row in a word-level alignment."""

    CORRECT = "correct"
    SUBSTITUTION = "substitution"
    OMISSION = "omission"
    INSERTION = "insertion"


class WordAlignment(BaseModel):
    """
    One row of a detailed word alignment.

    Insertions have no expected index; omissions have no transcript index.
    """

    status: AlignmentStatus
    expected_index: Optional[int] = None
    transcript_index: Optional[int] = None
    expected_word: str = ""
    heard_word: str = ""
    similarity: float = Field(default=0.0, ge=0.0, le=1.0)

    @computed_field
    @property
    def is_correct(self) -> bool:
        return self.status == AlignmentStatus.CORRECT
