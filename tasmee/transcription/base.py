"""
Abstract base class for audio transcription.

This module defines the interface that all transcriber implementations must follow.
"""

import asyncio
from abc import ABC, abstractmethod
from functools import partial

from tasmee.models import RecognizedWord, TranscribedSegment


class BaseTranscriber(ABC):
    """
    Abstract interface for audio transcription.

    All transcriber implementations (remote endpoints, local models, test
    fakes) must implement this interface.

    Example:
        class MyTranscriber(BaseTranscriber):
            def transcribe(self, audio_bytes, audio_format="wav", language="ar"):
                # Custom implementation
                ...
    """

    @abstractmethod
    def transcribe(
        self,
        audio_bytes: bytes,
        audio_format: str = "wav",
        language: str = "ar",
    ) -> list[TranscribedSegment]:
        """
        Transcribe an audio buffer to timestamped segments.

        Args:
            audio_bytes: Encoded audio
            audio_format: Container format of the audio (wav, mp3, webm, ...)
            language: Language code passed to the engine

        Returns:
            Ordered list of segments (may be empty)

        Raises:
            TranscriptionError: If transcription fails
        """
        pass

    async def transcribe_async(
        self,
        audio_bytes: bytes,
        audio_format: str = "wav",
        language: str = "ar",
    ) -> list[TranscribedSegment]:
        """
        Asynchronously transcribe an audio buffer.

        Uses run_in_executor to avoid blocking the event loop.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            partial(self.transcribe, audio_bytes, audio_format, language),
        )

    @abstractmethod
    def load(self) -> None:
        """
        Prepare the engine (load a model, open a client).

        Call this before transcription to avoid cold start latency.
        """
        pass

    @abstractmethod
    def unload(self) -> None:
        """Release the engine's resources."""
        pass

    @property
    @abstractmethod
    def is_loaded(self) -> bool:
        """Whether the engine is ready."""
        pass

    def __enter__(self) -> "BaseTranscriber":
        """Context manager entry - loads the engine."""
        self.load()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - unloads the engine."""
        self.unload()


def segments_to_text(segments: list[TranscribedSegment]) -> str:
    """Join segment texts into one transcript."""
    return " ".join(s.text.strip() for s in segments if s.text.strip())


def segments_to_words(
    segments: list[TranscribedSegment],
    confidence: float = 0.8,
) -> list[RecognizedWord]:
    """
    Split segments into words, spreading each segment's time evenly.

    Engines that only time whole segments give no word boundaries, so each
    word gets an equal share of its segment.

    Examples:
        >>> words = segments_to_words([TranscribedSegment(text="a b", start=0.0, end=1.0)])
        >>> [(w.text, w.start_time, w.end_time) for w in words]
        [('a', 0.0, 0.5), ('b', 0.5, 1.0)]
    """
    words: list[RecognizedWord] = []
    for segment in segments:
        tokens = segment.text.split()
        if not tokens:
            continue
        step = (segment.end - segment.start) / len(tokens)
        for i, token in enumerate(tokens):
            words.append(
                RecognizedWord(
                    text=token,
                    start_time=segment.start + i * step,
                    end_time=segment.start + (i + 1) * step,
                    word_index_in_segment=i,
                    confidence=confidence,
                )
            )
    return words
