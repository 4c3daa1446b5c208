"""
Local transcription with faster-whisper.

Runs a CTranslate2 Whisper model (by default the Quran-tuned Tarteel model)
on the local machine.
"""

import io

from tasmee._logging import get_logger
from tasmee.config import TasmeeSettings, get_settings
from tasmee.exceptions import ModelNotLoadedError, TranscriptionError
from tasmee.models import TranscribedSegment
from tasmee.transcription.base import BaseTranscriber

logger = get_logger(__name__)


class WhisperTranscriber(BaseTranscriber):
    """
    faster-whisper transcriber.

    Example:
        with WhisperTranscriber() as transcriber:
            segments = transcriber.transcribe(audio_bytes, "wav")
    """

    def __init__(
        self,
        model_id: str | None = None,
        device: str | None = None,
        compute_type: str | None = None,
        beam_size: int = 5,
        settings: TasmeeSettings | None = None,
    ):
        self._settings = settings or get_settings()
        self._model_id = model_id or self._settings.whisper_model_id
        self._device = device or self._settings.whisper_device
        self._compute_type = compute_type
        self._beam_size = beam_size
        self._model = None

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def model_id(self) -> str:
        return self._model_id

    def load(self) -> None:
        """Load the model into memory."""
        if self._model is not None:
            return

        try:
            from faster_whisper import WhisperModel
        except ImportError:
            raise TranscriptionError(
                "faster-whisper not installed. "
                "Install with: pip install tasmee[whisper]"
            )

        compute_type = self._compute_type or ("int8" if self._device == "cpu" else "default")
        logger.info(f"Loading faster-whisper model {self._model_id} on {self._device}")
        self._model = WhisperModel(self._model_id, device=self._device, compute_type=compute_type)
        logger.info("Model loaded")

    def unload(self) -> None:
        """Drop the model."""
        self._model = None

    def transcribe(
        self,
        audio_bytes: bytes,
        audio_format: str = "wav",
        language: str = "ar",
    ) -> list[TranscribedSegment]:
        """
        Transcribe an audio buffer.

        faster-whisper decodes any container ffmpeg understands, so the
        format is only informational here.

        Raises:
            ModelNotLoadedError: If load() has not been called
            TranscriptionError: If decoding or inference fails
        """
        if self._model is None:
            raise ModelNotLoadedError()

        if not audio_bytes:
            return []

        try:
            segments, _info = self._model.transcribe(
                io.BytesIO(audio_bytes),
                language=language,
                beam_size=self._beam_size,
                # VAD trims the elongations of recited audio
                vad_filter=False,
            )
            return [
                TranscribedSegment(text=s.text.strip(), start=max(0.0, s.start), end=max(0.0, s.end))
                for s in segments
                if s.text.strip()
            ]
        except Exception as e:
            raise TranscriptionError(f"Whisper transcription failed ({audio_format}): {e}")
