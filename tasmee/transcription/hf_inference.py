"""
HuggingFace Inference Endpoint transcription implementation.

Uses a deployed Whisper model on HuggingFace Inference Endpoints for Quran recitation.
"""

import time

from tasmee._logging import get_logger
from tasmee.config import TasmeeSettings, get_settings
from tasmee.exceptions import ConfigurationError, TranscriptionError
from tasmee.models import TranscribedSegment
from tasmee.transcription.base import BaseTranscriber

logger = get_logger(__name__)

CONTENT_TYPES = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
    "webm": "audio/webm",
    "flac": "audio/flac",
}


def parse_response(result, duration: float = 0.0) -> list[TranscribedSegment]:
    """
    Convert an ASR endpoint response into segments.

    Handles the standard ``{"text": ...}`` shape, responses that carry
    timestamped ``chunks``, and models that return a list.
    """
    if isinstance(result, list):
        if not result:
            return []
        result = result[0] if isinstance(result[0], dict) else {"text": str(result[0])}

    if not isinstance(result, dict):
        text = str(result).strip()
        return [TranscribedSegment(text=text, start=0.0, end=duration)] if text else []

    chunks = result.get("chunks") or []
    segments = []
    for chunk in chunks:
        text = str(chunk.get("text", "")).strip()
        if not text:
            continue
        start, end = (chunk.get("timestamp") or (0.0, duration))[:2]
        start = float(start or 0.0)
        end = float(end) if end is not None else max(start, duration)
        segments.append(TranscribedSegment(text=text, start=start, end=max(start, end)))
    if segments:
        return segments

    text = str(result.get("text", "")).strip()
    return [TranscribedSegment(text=text, start=0.0, end=duration)] if text else []


class HFInferenceTranscriber(BaseTranscriber):
    """
    HuggingFace Inference Endpoint transcriber for Quran audio.

    Uses a deployed Whisper model on HuggingFace Inference Endpoints.
    This is a lightweight alternative that offloads computation to the cloud.

    Example:
        transcriber = HFInferenceTranscriber(
            endpoint_url="https://your-endpoint.aws.endpoints.huggingface.cloud",
            api_token="hf_your_token",
        )

        segments = transcriber.transcribe(audio_bytes, "wav")

    Or using environment variables:
        export TASMEE_HF_INFERENCE_ENDPOINT="https://your-endpoint.aws.endpoints.huggingface.cloud"
        export TASMEE_HF_API_TOKEN="hf_your_token"

        transcriber = HFInferenceTranscriber()
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        api_token: str | None = None,
        settings: TasmeeSettings | None = None,
        transport=None,
        initial_delay: float = 2.0,
    ):
        """
        Initialize the HF Inference transcriber.

        Args:
            endpoint_url: HuggingFace Inference Endpoint URL (overrides settings)
            api_token: HuggingFace API token (overrides settings)
            settings: Settings instance to use
            transport: Optional httpx transport (e.g. httpx.MockTransport)
            initial_delay: First wait after a 503, in seconds
        """
        self._settings = settings or get_settings()

        self._endpoint_url = endpoint_url or self._settings.hf_inference_endpoint
        self._api_token = api_token or self._settings.hf_api_token
        self._transport = transport
        self._initial_delay = initial_delay

        if not self._endpoint_url:
            raise ConfigurationError(
                "HuggingFace Inference Endpoint URL is required. "
                "Set via endpoint_url parameter or TASMEE_HF_INFERENCE_ENDPOINT env var.",
                setting_name="hf_inference_endpoint",
            )
        if not self._api_token:
            raise ConfigurationError(
                "HuggingFace API token is required. "
                "Set via api_token parameter or TASMEE_HF_API_TOKEN env var.",
                setting_name="hf_api_token",
            )

        # HTTP client (lazy initialization)
        self._client = None

    @property
    def is_loaded(self) -> bool:
        """Whether the HTTP client has been created."""
        return self._client is not None

    @property
    def endpoint_url(self) -> str:
        """Current endpoint URL."""
        return self._endpoint_url

    def load(self) -> None:
        """
        Initialize the HTTP client.

        For remote endpoints, this is lightweight - just creates the client.
        """
        if self._client is not None:
            return

        try:
            import httpx
        except ImportError:
            raise TranscriptionError(
                "httpx not installed. "
                "Install with: pip install tasmee[hf-inference]"
            )

        self._client = httpx.Client(
            timeout=httpx.Timeout(self._settings.hf_timeout_seconds, connect=10.0),
            headers={
                "Authorization": f"Bearer {self._api_token}",
            },
            transport=self._transport,
        )
        logger.info(f"HF Inference Endpoint ready: {self._endpoint_url[:50]}")

    def unload(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def transcribe(
        self,
        audio_bytes: bytes,
        audio_format: str = "wav",
        language: str = "ar",
    ) -> list[TranscribedSegment]:
        """
        Transcribe an audio buffer using the HF Inference Endpoint.

        Includes retry logic with exponential backoff for cold start handling.
        HF endpoints may return 503 when scaling from zero.

        Raises:
            TranscriptionError: On a non-retryable HTTP error, a transport
                failure, or when retries are exhausted
        """
        if self._client is None:
            self.load()

        if not audio_bytes:
            return []

        import httpx

        max_retries = self._settings.hf_max_retries
        content_type = CONTENT_TYPES.get(audio_format.lower(), "application/octet-stream")
        last_error = None
        delay = self._initial_delay

        for attempt in range(max_retries):
            try:
                response = self._client.post(
                    self._endpoint_url,
                    content=audio_bytes,
                    headers={"Content-Type": content_type},
                    params={"language": language},
                )
            except httpx.HTTPError as e:
                raise TranscriptionError(f"HF Inference request failed: {e}")

            if response.status_code == 200:
                try:
                    result = response.json()
                except ValueError:
                    raise TranscriptionError("HF Inference API returned invalid JSON")
                return parse_response(result)

            elif response.status_code == 503:
                # Endpoint is warming up (cold start)
                last_error = "503 Service Unavailable - endpoint warming up"
                if attempt == 0:
                    logger.info("Endpoint warming up (cold start), waiting...")
                else:
                    logger.info(f"Retry {attempt + 1}/{max_retries}, waiting {delay:.1f}s...")
                time.sleep(delay)
                delay = min(delay * 1.5, 30.0)

            else:
                raise TranscriptionError(
                    f"HF Inference API error: {response.status_code} - {response.text}"
                )

        raise TranscriptionError(
            f"HF Inference API failed after {max_retries} retries: {last_error}"
        )
