"""Pytest configuration and fixtures for VoiceQA tests."""

import asyncio
import inspect
import logging
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest
from pubsub import pub

from voiceqa.generation.answer_generator import AnswerGenerator
from voiceqa.generation.direct_audio import DirectAudioProcessor
from voiceqa.models.events import EventName
from voiceqa.services.session_store import SessionStore
from voiceqa.services.task_coordinator import TaskCoordinator
from voiceqa.transcription.base import AbstractTranscriptionBackend
from voiceqa.transcription.engine import TranscriptionStrategyEngine


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with in-memory providers")
    config.addinivalue_line("markers", "integration: tests that wire the HTTP adapter to the coordinator")


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop pubsub listeners left over by a test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def make_audio_file(temp_data_dir):
    """Factory writing a fake WAV file of the given size."""
    def _make(name: str = "question.wav", size: int = 2048) -> str:
        file_path = Path(temp_data_dir) / name
        header = b"RIFF"
        file_path.write_bytes((header + b"\x00" * max(size - len(header), 0))[:size])
        return str(file_path)

    return _make


@pytest.fixture
def sample_audio_file(make_audio_file):
    """A 2KB audio file."""
    return make_audio_file()


class FakeTranscriptionBackend(AbstractTranscriptionBackend):
    """Scripted transcription backend.

    ``results`` are consumed one per transcribe() call: a string is returned,
    an exception is raised, and a coroutine function is awaited. Once the
    script runs out every call returns "".
    """

    service_name = "Fake STT"

    def __init__(self, results=None, init_results=None):
        self.results = list(results or [])
        self.init_results = list(init_results or [True])
        self.calls = []
        self.init_calls = 0
        self.cleaned_up = False

    def initialize(self) -> bool:
        self.init_calls += 1
        result = self.init_results.pop(0) if len(self.init_results) > 1 else self.init_results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def transcribe(self, audio, language_code, model, options=None):
        self.calls.append({
            "model": model,
            "language_code": language_code,
            "options": options,
            "size": len(audio),
        })
        result = self.results.pop(0) if self.results else ""
        if isinstance(result, Exception):
            raise result
        if inspect.iscoroutinefunction(result):
            return await result()
        return result

    def cleanup(self) -> None:
        self.cleaned_up = True

    @property
    def models(self):
        return [call["model"] for call in self.calls]


class FakeGenerativeEngine:
    """In-memory stand-in for GeminiEngine."""

    def __init__(self,
                 answer="A closure is a function that remembers its scope.",
                 chunks=("A closure ", "is a function ", "that remembers ", "its scope."),
                 audio_answer="Question 1: What is a closure?\nA closure is a function that remembers its scope.",
                 error=None,
                 stream_error=None,
                 stream_error_at=None):
        self.answer = answer
        self.chunks = list(chunks)
        self.audio_answer = audio_answer
        self.error = error
        self.stream_error = stream_error
        self.stream_error_at = stream_error_at
        # Called with the chunk index right before that chunk is yielded
        self.before_chunk = None

        self.prompts = []
        self.audio_prompts = []
        self.stream_prompts = []
        self.models = []
        self.stream_closed = False

    async def send_prompt(self, prompt, model=None):
        self.prompts.append(prompt)
        self.models.append(model)
        if self.error:
            raise self.error
        return self.answer

    async def send_audio_prompt(self, prompt, audio, mime_type="audio/wav", model=None):
        self.audio_prompts.append({"prompt": prompt, "size": len(audio), "mime_type": mime_type})
        self.models.append(model)
        if self.error:
            raise self.error
        return self.audio_answer

    async def stream_prompt(self, prompt, model=None):
        self.stream_prompts.append(prompt)
        self.models.append(model)
        try:
            for index, chunk in enumerate(self.chunks):
                if self.stream_error is not None and index == self.stream_error_at:
                    raise self.stream_error
                await asyncio.sleep(0)
                if self.before_chunk is not None:
                    self.before_chunk(index)
                yield chunk
        finally:
            self.stream_closed = True


class RecordingSink:
    """Task event sink keeping every event in order."""

    def __init__(self):
        self.events = []

    def on_processing(self):
        self.events.append((EventName.PROCESSING.value, {}))

    def on_transcript(self, event):
        self.events.append((EventName.TRANSCRIPT.value, event.to_payload()))

    def on_stream_chunk(self, event):
        self.events.append((EventName.STREAM_CHUNK.value, event.to_payload()))

    def on_stream_end(self, event):
        self.events.append((EventName.STREAM_END.value, event.to_payload()))

    def on_stream_error(self, event):
        self.events.append((EventName.STREAM_ERROR.value, event.to_payload()))

    def on_update(self, event):
        self.events.append((EventName.UPDATE.value, event.to_payload()))

    def on_error(self, event):
        self.events.append((EventName.ERROR.value, event.to_payload()))

    def on_cancelled(self, event):
        self.events.append((EventName.PROCESSING_CANCELLED.value, event.to_payload()))

    @property
    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, name):
        return [payload for event_name, payload in self.events if event_name == name]

    @property
    def terminal(self):
        return self.events[-1]


@pytest.fixture
def fake_backend_cls():
    return FakeTranscriptionBackend


@pytest.fixture
def fake_engine_cls():
    return FakeGenerativeEngine


@pytest.fixture
def make_coordinator():
    """Factory wiring a TaskCoordinator to fakes.

    Returns a namespace with the coordinator and every collaborator, plus
    ``sleeps`` listing each delay the transcription engine asked for.
    """
    def _make(transcripts=None, backend=None, engine=None, store=None, max_retries=3, sink=None):
        backend = backend or FakeTranscriptionBackend(
            ["What is a closure?"] if transcripts is None else transcripts)
        engine = engine or FakeGenerativeEngine()
        store = store or SessionStore()
        sink = sink or RecordingSink()
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        transcriber = TranscriptionStrategyEngine(backend, max_retries=max_retries, sleep=fake_sleep)
        coordinator = TaskCoordinator(
            store=store,
            transcriber=transcriber,
            generator=AnswerGenerator(engine),
            direct_processor=DirectAudioProcessor(engine),
            sink=sink,
        )
        return SimpleNamespace(
            coordinator=coordinator,
            transcriber=transcriber,
            backend=backend,
            engine=engine,
            store=store,
            sink=sink,
            sleeps=sleeps,
        )

    return _make
