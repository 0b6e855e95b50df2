"""Services layer for VoiceQA application logic."""

from .session_store import SessionStore
from .task_coordinator import TaskCoordinator, TaskState, Checkpoint

__all__ = [
    "SessionStore",
    "TaskCoordinator",
    "TaskState",
    "Checkpoint",
]
