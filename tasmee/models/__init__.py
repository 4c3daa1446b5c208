"""
Pydantic data models for Tasmee library.

These models represent the core data structures used throughout the library:
- Verse / Chapter: The reference text
- RecitationChunk / TranscribedSegment / RecognizedWord: Audio in, text out
- MatchResult / RecitationError / WordAlignment: Matching and error analysis
- RecitationSession / Progress: A user's recitation session
- Feedback / SessionStatistics: What callers get back
"""

from tasmee.models.verse import Chapter, Verse
from tasmee.models.chunk import RecitationChunk, RecognizedWord, TranscribedSegment
from tasmee.models.result import (
    AlignmentStatus,
    ErrorType,
    MatchResult,
    RecitationError,
    WordAlignment,
)
from tasmee.models.recitation import (
    Progress,
    RecitationMode,
    RecitationSession,
    SessionState,
)
from tasmee.models.reference import ReciterSimilarity, ValidationResult, VerseReference
from tasmee.models.feedback import (
    Feedback,
    MatchedVerse,
    SessionStatistics,
    SessionSummary,
    VerseDifficulty,
)

__all__ = [
    "Chapter",
    "Verse",
    "RecitationChunk",
    "RecognizedWord",
    "TranscribedSegment",
    "AlignmentStatus",
    "ErrorType",
    "MatchResult",
    "RecitationError",
    "WordAlignment",
    "Progress",
    "RecitationMode",
    "RecitationSession",
    "SessionState",
    "ReciterSimilarity",
    "ValidationResult",
    "VerseReference",
    "Feedback",
    "MatchedVerse",
    "SessionStatistics",
    "SessionSummary",
    "VerseDifficulty",
]
