"""
Custom exceptions for Tasmee library.

All exceptions inherit from TasmeeError for easy catching of library-specific errors.
"""

from typing import Any


class TasmeeError(Exception):
    """Base exception for all Tasmee errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


class DataFormatError(TasmeeError):
    """Raised when a corpus source has a shape the loader does not recognize."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if source:
            ctx["source"] = source
        super().__init__(message, ctx)
        self.source = source


class CorpusLoadError(TasmeeError):
    """Raised when no corpus source could be loaded."""

    def __init__(self, message: str = "No usable corpus source.", sources: list[str] | None = None) -> None:
        ctx = {"sources": ", ".join(sources)} if sources else None
        super().__init__(message, ctx)
        self.sources = sources or []


class CorpusNotLoadedError(TasmeeError):
    """Raised when the corpus is needed before any source was loaded."""

    def __init__(self, message: str = "Corpus not loaded. Call load() first.") -> None:
        super().__init__(message)


class VerseNotFoundError(TasmeeError):
    """Raised when a chapter/verse lookup misses."""

    def __init__(self, chapter: int, verse: int | None = None) -> None:
        if verse is None:
            message = f"Chapter {chapter} not found"
        else:
            message = f"Verse {chapter}:{verse} not found"
        super().__init__(message)
        self.chapter = chapter
        self.verse = verse


class SessionError(TasmeeError):
    """Base class for recitation session errors."""

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if session_id:
            ctx["session_id"] = session_id
        super().__init__(message, ctx)
        self.session_id = session_id


class SessionNotFoundError(SessionError):
    """Raised when a session id is neither active nor persisted."""

    def __init__(self, session_id: str) -> None:
        super().__init__("Session not found", session_id=session_id)


class SessionClosedError(SessionError):
    """Raised when a stopped session is asked to change."""

    def __init__(self, session_id: str, message: str = "Session is closed") -> None:
        super().__init__(message, session_id=session_id)


class TranscriptionError(TasmeeError):
    """Raised when audio transcription fails."""

    def __init__(
        self,
        message: str,
        chunk_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if chunk_id:
            ctx["chunk_id"] = chunk_id
        super().__init__(message, ctx)
        self.chunk_id = chunk_id


class ModelNotLoadedError(TranscriptionError):
    """Raised when attempting to transcribe without a loaded model."""

    def __init__(self, message: str = "Model not loaded. Call load() first.") -> None:
        super().__init__(message)


class ConfigurationError(TasmeeError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        setting_name: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if setting_name:
            ctx["setting"] = setting_name
        super().__init__(message, ctx)
        self.setting_name = setting_name
