"""Session store holding the shared processing session."""

import logging
from typing import Any, Dict, Optional

from ..errors import TaskInProgressError
from ..models.session import ProcessingSession

logger = logging.getLogger(__name__)

QUESTION_PREVIEW_LENGTH = 50


class SessionStore:
    """Plain accessors over a ProcessingSession.

    The store does no validation of its own; the task coordinator decides when
    fields change. Only one task may hold the store at a time.
    """

    def __init__(self, session: Optional[ProcessingSession] = None):
        self.session = session or ProcessingSession()

    @property
    def current_audio_file(self) -> Optional[str]:
        return self.session.current_audio_file

    @current_audio_file.setter
    def current_audio_file(self, value: Optional[str]) -> None:
        self.session.current_audio_file = value

    @property
    def last_processed_file(self) -> Optional[str]:
        return self.session.last_processed_file

    @last_processed_file.setter
    def last_processed_file(self, value: Optional[str]) -> None:
        self.session.last_processed_file = value
        logger.debug(f"Stored audio file reference: {value}")

    @property
    def retry_count(self) -> int:
        return self.session.retry_count

    @retry_count.setter
    def retry_count(self, value: int) -> None:
        self.session.retry_count = value

    def increment_retry_count(self) -> int:
        self.session.retry_count += 1
        return self.session.retry_count

    @property
    def cancelled(self) -> bool:
        return self.session.cancelled

    @cancelled.setter
    def cancelled(self, value: bool) -> None:
        self.session.cancelled = value

    @property
    def last_question(self) -> Optional[str]:
        return self.session.last_question

    @last_question.setter
    def last_question(self, value: Optional[str]) -> None:
        self.session.last_question = value

    # Single-flight guard

    @property
    def is_busy(self) -> bool:
        return self.session.active_task_id is not None

    def begin_task(self, task_id: str) -> None:
        """Claim the session for a task.

        Raises:
            TaskInProgressError: if another task already holds it
        """
        if self.session.active_task_id is not None:
            raise TaskInProgressError(
                f"Task {self.session.active_task_id} is still in progress; "
                f"wait for it to finish or be cancelled")
        self.session.active_task_id = task_id

    def end_task(self, task_id: str) -> None:
        if self.session.active_task_id == task_id:
            self.session.active_task_id = None

    def get_status(self) -> Dict[str, Any]:
        """Snapshot of the session for status queries."""
        last_question = self.session.last_question
        preview = None
        if last_question is not None:
            preview = last_question[:QUESTION_PREVIEW_LENGTH]
            if len(last_question) > QUESTION_PREVIEW_LENGTH:
                preview += "..."

        return {
            "isRecording": self.is_busy,
            "currentFile": self.session.current_audio_file,
            "lastProcessedFile": self.session.last_processed_file,
            "hasLastQuestion": last_question is not None,
            "lastQuestionPreview": preview,
        }
