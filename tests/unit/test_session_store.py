"""Unit tests for SessionStore."""

import pytest

from voiceqa.errors import TaskInProgressError
from voiceqa.models.session import ProcessingSession
from voiceqa.services.session_store import SessionStore


@pytest.mark.unit
class TestSessionStore:
    """Test cases for SessionStore."""

    def test_initial_status(self):
        store = SessionStore()

        assert store.get_status() == {
            "isRecording": False,
            "currentFile": None,
            "lastProcessedFile": None,
            "hasLastQuestion": False,
            "lastQuestionPreview": None,
        }

    def test_accessors_write_through_to_session(self):
        session = ProcessingSession()
        store = SessionStore(session)

        store.last_processed_file = "audio/1.wav"
        store.last_question = "What is a closure?"
        store.cancelled = True

        assert session.last_processed_file == "audio/1.wav"
        assert session.last_question == "What is a closure?"
        assert session.cancelled is True

    def test_increment_retry_count(self):
        store = SessionStore()

        assert store.increment_retry_count() == 1
        assert store.increment_retry_count() == 2
        store.retry_count = 0
        assert store.retry_count == 0

    def test_single_flight(self):
        store = SessionStore()
        store.begin_task("a")

        with pytest.raises(TaskInProgressError):
            store.begin_task("b")

        assert store.is_busy
        store.end_task("a")
        assert not store.is_busy
        store.begin_task("b")

    def test_end_task_ignores_other_task(self):
        store = SessionStore()
        store.begin_task("a")

        store.end_task("b")

        assert store.is_busy

    def test_short_question_preview_not_truncated(self):
        store = SessionStore()
        store.last_question = "What is a closure?"

        status = store.get_status()

        assert status["hasLastQuestion"] is True
        assert status["lastQuestionPreview"] == "What is a closure?"

    def test_long_question_preview_truncated(self):
        store = SessionStore()
        store.last_question = "q" * 60

        assert store.get_status()["lastQuestionPreview"] == "q" * 50 + "..."
