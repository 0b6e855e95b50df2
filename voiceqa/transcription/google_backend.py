"""Google Speech-to-Text transcription backend."""

import time
import asyncio
import logging
from typing import Optional, Dict, Any

from .base import AbstractTranscriptionBackend
from ..errors import ProviderError

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

# Speech model variant -> Google recognition model
DEFAULT_MODEL_MAP = {
    "best": "latest_long",
    "universal": "default",
    "nano": "latest_short",
}

LANGUAGE_CODES = {
    "en": "en-US",
    "vi": "vi-VN",
}


def _detect_encoding(audio: bytes):
    """Pick a RecognitionConfig encoding from the container header."""
    encoding = speech.RecognitionConfig.AudioEncoding
    if audio.startswith(b"\x1aE\xdf\xa3"):
        return encoding.WEBM_OPUS, 48000
    if audio.startswith(b"OggS"):
        return encoding.OGG_OPUS, 48000
    if audio.startswith(b"fLaC"):
        return encoding.FLAC, None
    # WAV headers are read by the service itself
    return encoding.ENCODING_UNSPECIFIED, None


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for transcription."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 enable_automatic_punctuation: bool = True,
                 request_timeout_seconds: float = 60.0,
                 model_map: Optional[Dict[str, str]] = None):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            enable_automatic_punctuation: Enable automatic punctuation
            request_timeout_seconds: Per-request timeout for recognize calls
            model_map: Speech model variant to Google model name
        """
        self.credentials_path = credentials_path
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.request_timeout_seconds = request_timeout_seconds
        self.model_map = dict(model_map or DEFAULT_MODEL_MAP)
        self.client = None
        self.project_id = None

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")

        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

        logger.info("Google Speech-to-Text backend initialized successfully")
        return True

    async def transcribe(self,
                         audio: bytes,
                         language_code: str,
                         model: str,
                         options: Optional[Dict[str, Any]] = None) -> str:
        """Transcribe audio using Google Speech-to-Text."""
        start_time = time.time()
        config = self._build_config(audio, language_code, model)
        recognition_audio = speech.RecognitionAudio(content=audio)

        logger.debug(f"Audio size: {len(audio)} bytes; Language: {config.language_code}; Model: {config.model}")

        # recognize() blocks, keep it off the event loop
        try:
            response = await asyncio.to_thread(
                self.client.recognize,
                config=config,
                audio=recognition_audio,
                timeout=self.request_timeout_seconds,
            )
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded")
            raise ProviderError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable")
            raise ProviderError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error: {e}")
            raise ProviderError(f"Google Speech API error: {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("--- NO SPEECH DETECTED ---")
            return ""

        transcript = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives
        ).strip()
        logger.debug(f"✅ TRANSCRIPTION SUCCESS: '{transcript}' (processing_time: {processing_time:.3f}s)")
        return transcript

    def _build_config(self, audio: bytes, language_code: str, model: str) -> speech.RecognitionConfig:
        encoding, sample_rate = _detect_encoding(audio)
        config = speech.RecognitionConfig(
            encoding=encoding,
            language_code=LANGUAGE_CODES.get(language_code, language_code),
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            model=self.model_map.get(model, "default"),
        )
        if sample_rate:
            config.sample_rate_hertz = sample_rate
        return config

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
