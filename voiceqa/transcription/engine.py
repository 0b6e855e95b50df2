"""Transcription engine that retries with rotating speech models."""

import time
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from .base import AbstractTranscriptionBackend
from .strategy import STRATEGY_OPTIONS, select_strategy
from ..errors import TranscriptionUnavailableError
from ..models.task import Language
from ..models.transcription import AttemptOptions, TranscriptionAttempt, TranscriptionStrategy
from ..storage.audio_files import DEFAULT_MIN_AUDIO_BYTES, read_audio_file

logger = logging.getLogger(__name__)


class TranscriptionStrategyEngine:
    """Turns an audio file into text, retrying with a different model on failure.

    Failed or empty attempts are retried up to ``max_retries`` times. When every
    attempt comes back empty the engine returns ``""`` ("no speech detected")
    instead of raising. The only error that propagates is a backend that cannot
    be initialized even after one retry.
    """

    def __init__(self,
                 backend: AbstractTranscriptionBackend,
                 max_retries: int = 3,
                 retry_backoff_seconds: float = 2.0,
                 init_retry_delay_seconds: float = 1.0,
                 attempt_timeout_seconds: Optional[float] = 360.0,
                 min_audio_bytes: int = DEFAULT_MIN_AUDIO_BYTES,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize transcription engine.

        Args:
            backend: Provider used for every attempt
            max_retries: Retries after the first attempt
            retry_backoff_seconds: Wait between attempts
            init_retry_delay_seconds: Wait before retrying backend initialization
            attempt_timeout_seconds: Upper bound for a single attempt (None disables)
            min_audio_bytes: Files below this size are logged as suspect
            sleep: Coroutine used for waiting
        """
        self.backend = backend
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.init_retry_delay_seconds = init_retry_delay_seconds
        self.attempt_timeout_seconds = attempt_timeout_seconds
        self.min_audio_bytes = min_audio_bytes
        self._sleep = sleep
        self.is_initialized = False

        # Attempts made by the most recent transcribe() call
        self.attempts: List[TranscriptionAttempt] = []

    async def transcribe(self,
                         audio_file: str,
                         language: Language,
                         options: AttemptOptions = AttemptOptions(),
                         is_cancelled: Optional[Callable[[], bool]] = None) -> str:
        """Transcribe an audio file.

        Args:
            audio_file: Path to the audio file
            language: Spoken language
            options: Options of the first attempt; retries continue from here
            is_cancelled: Polled between attempts; retrying stops once it returns True

        Returns:
            Transcribed text, or "" if no attempt produced any
        """
        await self._ensure_initialized()

        self.attempts = []
        attempt_options = options

        for attempt_index in range(self.max_retries + 1):
            strategy = select_strategy(attempt_options)
            attempt = await self._attempt(audio_file, language, attempt_options, strategy)
            self.attempts.append(attempt)

            if attempt.succeeded:
                return attempt.result_text.strip()

            if attempt_index == self.max_retries:
                break

            if is_cancelled is not None and is_cancelled():
                logger.info("Cancellation requested, not retrying transcription")
                return ""

            logger.warning(f"Retrying transcription ({self.max_retries - attempt_index} attempts left)...")
            await self._sleep(self.retry_backoff_seconds)
            attempt_options = attempt_options.next()

        logger.warning(f"Out of retries after {len(self.attempts)} attempts, no speech detected in {audio_file}")
        return ""

    async def _attempt(self,
                       audio_file: str,
                       language: Language,
                       options: AttemptOptions,
                       strategy: TranscriptionStrategy) -> TranscriptionAttempt:
        """Run one attempt. Failures are recorded on the attempt, never raised."""
        logger.info(f"Transcription attempt: retry={options.retry_attempt}, "
                    f"attempt #{options.attempt_number}, model={strategy.speech_model} ({strategy.description})")

        start_time = time.time()
        attempt = TranscriptionAttempt(strategy_index=strategy.index, speech_model=strategy.speech_model)
        try:
            audio = read_audio_file(audio_file, self.min_audio_bytes)
            request = self.backend.transcribe(
                audio,
                Language(language).value,
                strategy.speech_model,
                dict(STRATEGY_OPTIONS.get(strategy.name, {})),
            )
            if self.attempt_timeout_seconds:
                text = await asyncio.wait_for(request, timeout=self.attempt_timeout_seconds)
            else:
                text = await request
            attempt.result_text = text or ""
            if not attempt.succeeded:
                logger.warning(f"Received empty transcript from {self.backend.service_name} (model={strategy.speech_model})")
        except asyncio.TimeoutError:
            attempt.error = f"Transcription timed out after {self.attempt_timeout_seconds}s"
            logger.error(attempt.error)
        except Exception as e:
            attempt.error = str(e)
            logger.error(f"Transcription error with model {strategy.speech_model}: {e}")
        finally:
            attempt.processing_time = time.time() - start_time

        if attempt.succeeded:
            logger.info(f"✅ Transcription successful with model {strategy.speech_model} "
                        f"({attempt.processing_time:.2f}s)")
        return attempt

    async def _ensure_initialized(self) -> None:
        """Initialize the backend, retrying once before giving up."""
        if self.is_initialized:
            return

        try:
            initialized = self.backend.initialize()
            error = None if initialized else "initialize() returned False"
        except Exception as e:
            initialized, error = False, str(e)

        if not initialized:
            logger.error(f"{self.backend.service_name} client failed to initialize: {error}")
            logger.info("Retrying client initialization...")
            await self._sleep(self.init_retry_delay_seconds)
            try:
                initialized = self.backend.initialize()
                error = None if initialized else "initialize() returned False"
            except Exception as e:
                raise TranscriptionUnavailableError(
                    f"{self.backend.service_name} client is not initialized. "
                    f"Check your API key and network connection. ({e})"
                ) from e
            if not initialized:
                raise TranscriptionUnavailableError(
                    f"{self.backend.service_name} client is not initialized. "
                    f"Check your API key and network connection. ({error})"
                )

        logger.info(f"{self.backend.service_name} client initialized successfully")
        self.is_initialized = True

    def cleanup(self) -> None:
        self.backend.cleanup()
