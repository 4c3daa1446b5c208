"""
تسميع (Tasmee) - A Python library to follow a Quran recitation and point out its mistakes.

Usage:
    import asyncio

    from tasmee import CorpusRepository, RecitationService
    from tasmee.transcription import HFInferenceTranscriber

    repo = CorpusRepository(["data/quran.json"])
    repo.load()

    async def main(chunks):
        with HFInferenceTranscriber() as transcriber:
            service = RecitationService(repo, transcriber)
            session = await service.start_session("user-1", 1, 1)

            for audio in chunks:
                feedback = await service.process_chunk(session.id, audio)
                for error in feedback.errors:
                    print(error.suggestion)

            summary = await service.stop_session(session.id)
            print(f"Accuracy: {summary.final_accuracy:.0%}")

    asyncio.run(main(chunks))
"""

from tasmee.models import (
    Chapter,
    ErrorType,
    Feedback,
    MatchResult,
    Progress,
    RecitationError,
    RecitationMode,
    RecitationSession,
    SessionState,
    SessionStatistics,
    SessionSummary,
    Verse,
    WordAlignment,
)
from tasmee.config import TasmeeSettings, get_settings, configure
from tasmee.exceptions import (
    TasmeeError,
    DataFormatError,
    CorpusLoadError,
    CorpusNotLoadedError,
    VerseNotFoundError,
    SessionError,
    SessionNotFoundError,
    SessionClosedError,
    TranscriptionError,
    ModelNotLoadedError,
    ConfigurationError,
)
from tasmee.data import Corpus, CorpusRepository, load_corpus, load_sample_corpus
from tasmee.service import RecitationService

__version__ = "0.1.0"
__all__ = [
    # Version
    "__version__",
    # Models
    "Chapter",
    "Verse",
    "ErrorType",
    "Feedback",
    "MatchResult",
    "Progress",
    "RecitationError",
    "RecitationMode",
    "RecitationSession",
    "SessionState",
    "SessionStatistics",
    "SessionSummary",
    "WordAlignment",
    # Config
    "TasmeeSettings",
    "get_settings",
    "configure",
    # Exceptions
    "TasmeeError",
    "DataFormatError",
    "CorpusLoadError",
    "CorpusNotLoadedError",
    "VerseNotFoundError",
    "SessionError",
    "SessionNotFoundError",
    "SessionClosedError",
    "TranscriptionError",
    "ModelNotLoadedError",
    "ConfigurationError",
    # Data
    "Corpus",
    "CorpusRepository",
    "load_corpus",
    "load_sample_corpus",
    # Service
    "RecitationService",
]
