"""Data models for the VoiceQA application."""

from .session import ProcessingSession
from .task import Language, TaskMode, TaskRequest
from .transcription import AttemptOptions, TranscriptionStrategy, TranscriptionAttempt
from .answer import StreamingAnswer, DirectAnswer
from .events import (
    EventName,
    TranscriptEvent,
    StreamChunkEvent,
    StreamEndEvent,
    UpdateEvent,
    ErrorEvent,
    CancelledEvent,
)

__all__ = [
    "ProcessingSession",
    "Language",
    "TaskMode",
    "TaskRequest",
    "AttemptOptions",
    "TranscriptionStrategy",
    "TranscriptionAttempt",
    "StreamingAnswer",
    "DirectAnswer",
    # Event payloads
    "EventName",
    "TranscriptEvent",
    "StreamChunkEvent",
    "StreamEndEvent",
    "UpdateEvent",
    "ErrorEvent",
    "CancelledEvent",
]
