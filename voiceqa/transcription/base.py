"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "transcription"

    @abstractmethod
    async def transcribe(self,
                         audio: bytes,
                         language_code: str,
                         model: str,
                         options: Optional[Dict[str, Any]] = None) -> str:
        """Transcribe a complete audio file.

        Args:
            audio: Raw bytes of the audio file
            language_code: Short language code ("en", "vi")
            model: Speech model variant to use
            options: Provider-specific tuning for this attempt

        Returns:
            Transcribed text, empty when no speech was recognized
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
