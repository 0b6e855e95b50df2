"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AttemptOptions:
    """Options describing one transcription attempt."""
    retry_attempt: bool = False
    attempt_number: int = 0

    def next(self) -> "AttemptOptions":
        """Options for the attempt that follows this one.

        The first retry after an initial attempt is retry number 0; later
        retries count up from there.
        """
        if not self.retry_attempt:
            return AttemptOptions(retry_attempt=True, attempt_number=0)
        return AttemptOptions(retry_attempt=True, attempt_number=self.attempt_number + 1)


@dataclass(frozen=True)
class TranscriptionStrategy:
    """A speech model variant used for one attempt."""
    name: str
    speech_model: str
    index: Optional[int]  # attempt_number % 3 for retries, None for the initial attempt
    description: str = ""


@dataclass
class TranscriptionAttempt:
    """Result of one transcription attempt."""
    strategy_index: Optional[int]
    speech_model: str
    result_text: str = ""
    error: Optional[str] = None
    processing_time: float = 0.0
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    @property
    def succeeded(self) -> bool:
        return bool(self.result_text.strip())
