"""Task lifecycle events for VoiceQA."""

from .notifier import EventNotifier, TaskEventSink

__all__ = [
    "EventNotifier",
    "TaskEventSink",
]
