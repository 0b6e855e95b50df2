"""Session-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ProcessingSession:
    """State shared by every task handled by this process."""
    current_audio_file: Optional[str] = None
    last_processed_file: Optional[str] = None  # kept on disk for retry / direct requests
    retry_count: int = 0
    cancelled: bool = False
    last_question: Optional[str] = None  # last non-follow-up question
    active_task_id: Optional[str] = None
