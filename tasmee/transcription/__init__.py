"""
Transcription module for Tasmee library.

Provides abstract interface and implementations for audio transcription.
Implementations import their engine lazily, so the optional extras are only
needed for the transcriber actually used.
"""

from tasmee.transcription.base import BaseTranscriber, segments_to_text, segments_to_words
from tasmee.transcription.hf_inference import HFInferenceTranscriber
from tasmee.transcription.whisper import WhisperTranscriber

__all__ = [
    "BaseTranscriber",
    "HFInferenceTranscriber",
    "WhisperTranscriber",
    "segments_to_text",
    "segments_to_words",
]
