"""Event models published by the task coordinator.

Payload keys are camelCase because connected clients read them by name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class EventName(str, Enum):
    """Lifecycle events of a processing task."""
    PROCESSING = "processing"
    TRANSCRIPT = "transcript"
    STREAM_CHUNK = "streamChunk"
    STREAM_END = "streamEnd"
    STREAM_ERROR = "streamError"
    UPDATE = "update"
    ERROR = "error"
    PROCESSING_CANCELLED = "processingCancelled"


@dataclass
class TranscriptEvent:
    """Question text, sent before a streamed answer starts."""
    transcript: str
    processed_with_gemini: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {"transcript": self.transcript, "processedWithGemini": self.processed_with_gemini}


@dataclass
class StreamChunkEvent:
    chunk: str

    def to_payload(self) -> Dict[str, Any]:
        return {"chunk": self.chunk}


@dataclass
class StreamEndEvent:
    """Final event of a streamed answer."""
    full_answer: str
    transcript: str
    audio_file: Optional[str]
    is_follow_up: bool = False
    processed_with_gemini: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "fullAnswer": self.full_answer,
            "transcript": self.transcript,
            "audioFile": self.audio_file,
            "isFollowUp": self.is_follow_up,
            "processedWithGemini": self.processed_with_gemini,
        }


@dataclass
class UpdateEvent:
    """Final event of a non-streamed answer (or of an empty transcript)."""
    transcript: str
    answer: str
    audio_file: Optional[str]
    processed_with_gemini: bool = False
    is_follow_up: bool = False
    empty_transcript: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "transcript": self.transcript,
            "answer": self.answer,
            "audioFile": self.audio_file,
            "processedWithGemini": self.processed_with_gemini,
            "isFollowUp": self.is_follow_up,
        }
        if self.empty_transcript:
            payload["emptyTranscript"] = True
        return payload


@dataclass
class ErrorEvent:
    """A task failure: localized message plus the raw error string."""
    message: str
    error: str

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message, "error": self.error}


@dataclass
class CancelledEvent:
    message: str = "Processing cancelled by user"

    def to_payload(self) -> Dict[str, Any]:
        return {"message": self.message}
