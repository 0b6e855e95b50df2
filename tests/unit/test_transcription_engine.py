"""Unit tests for TranscriptionStrategyEngine."""

import asyncio

import pytest

from voiceqa.errors import ProviderError, TranscriptionUnavailableError
from voiceqa.models.task import Language
from voiceqa.models.transcription import AttemptOptions
from voiceqa.transcription.engine import TranscriptionStrategyEngine


def make_engine(backend, **kwargs):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    engine = TranscriptionStrategyEngine(backend, sleep=fake_sleep, **kwargs)
    return engine, sleeps


@pytest.mark.unit
class TestTranscriptionStrategyEngine:
    """Test cases for the retrying transcription engine."""

    @pytest.mark.asyncio
    async def test_first_attempt_success(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["  What is a closure?  "])
        engine, sleeps = make_engine(backend)

        text = await engine.transcribe(sample_audio_file, Language.EN)

        assert text == "What is a closure?"
        assert backend.models == ["universal"]
        assert backend.calls[0]["language_code"] == "en"
        assert backend.calls[0]["size"] == 2048
        assert sleeps == []
        assert len(engine.attempts) == 1
        assert engine.attempts[0].succeeded

    @pytest.mark.asyncio
    async def test_empty_results_rotate_models_then_give_up(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["", "", "", ""])
        engine, sleeps = make_engine(backend, max_retries=3)

        text = await engine.transcribe(sample_audio_file, Language.EN)

        assert text == ""
        assert backend.models == ["universal", "best", "universal", "nano"]
        assert sleeps == [2.0, 2.0, 2.0]
        assert [attempt.strategy_index for attempt in engine.attempts] == [None, 0, 1, 2]

    @pytest.mark.asyncio
    async def test_provider_errors_are_retried(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls([ProviderError("AssemblyAI API error: 500 - boom"), "Explain hoisting"])
        engine, sleeps = make_engine(backend)

        text = await engine.transcribe(sample_audio_file, Language.EN)

        assert text == "Explain hoisting"
        assert backend.models == ["universal", "best"]
        assert engine.attempts[0].error == "AssemblyAI API error: 500 - boom"
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_retry_options_start_rotation_from_attempt_number(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["", "Explain hoisting"])
        engine, _ = make_engine(backend)

        text = await engine.transcribe(sample_audio_file, Language.VI,
                                       AttemptOptions(retry_attempt=True, attempt_number=2))

        assert text == "Explain hoisting"
        assert backend.models == ["nano", "best"]
        assert backend.calls[0]["language_code"] == "vi"
        assert backend.calls[0]["options"] == {"format_text": True}

    @pytest.mark.asyncio
    async def test_zero_retries_makes_single_attempt(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls([""])
        engine, sleeps = make_engine(backend, max_retries=0)

        assert await engine.transcribe(sample_audio_file, Language.EN) == ""
        assert len(backend.calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_cancellation_stops_retrying(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["", "never used"])
        engine, sleeps = make_engine(backend)

        text = await engine.transcribe(sample_audio_file, Language.EN, is_cancelled=lambda: True)

        assert text == ""
        assert len(backend.calls) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_slow_attempt_times_out_and_is_retried(self, fake_backend_cls, sample_audio_file):
        async def hang():
            await asyncio.sleep(10)
            return "too late"

        backend = fake_backend_cls([hang, "Explain hoisting"])
        engine, _ = make_engine(backend, attempt_timeout_seconds=0.01)

        text = await engine.transcribe(sample_audio_file, Language.EN)

        assert text == "Explain hoisting"
        assert "timed out" in engine.attempts[0].error

    @pytest.mark.asyncio
    async def test_missing_file_counts_as_failed_attempts(self, fake_backend_cls, temp_data_dir):
        backend = fake_backend_cls(["unused"])
        engine, _ = make_engine(backend, max_retries=1)

        text = await engine.transcribe(f"{temp_data_dir}/missing.wav", Language.EN)

        assert text == ""
        assert backend.calls == []
        assert all("not found" in attempt.error for attempt in engine.attempts)

    @pytest.mark.asyncio
    async def test_initialization_retried_once(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["What is a closure?"], init_results=[ValueError("no key"), True])
        engine, sleeps = make_engine(backend)

        assert await engine.transcribe(sample_audio_file, Language.EN) == "What is a closure?"
        assert backend.init_calls == 2
        assert sleeps == [1.0]
        assert engine.is_initialized

    @pytest.mark.asyncio
    async def test_initialization_failure_is_a_hard_error(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["unused"], init_results=[ValueError("no key")])
        engine, _ = make_engine(backend)

        with pytest.raises(TranscriptionUnavailableError) as exc_info:
            await engine.transcribe(sample_audio_file, Language.EN)

        assert "not initialized" in str(exc_info.value)
        assert backend.init_calls == 2
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_initialization_happens_once(self, fake_backend_cls, sample_audio_file):
        backend = fake_backend_cls(["one", "two"])
        engine, _ = make_engine(backend)

        await engine.transcribe(sample_audio_file, Language.EN)
        await engine.transcribe(sample_audio_file, Language.EN)

        assert backend.init_calls == 1

    def test_cleanup_delegates_to_backend(self, fake_backend_cls):
        backend = fake_backend_cls()
        engine, _ = make_engine(backend)

        engine.cleanup()

        assert backend.cleaned_up
