"""Unit tests for the direct audio-to-answer path."""

import pytest

from voiceqa.errors import InvalidTaskError
from voiceqa.generation.direct_audio import (
    PLACEHOLDER_TRANSCRIPT,
    DirectAudioProcessor,
    extract_transcript,
)
from voiceqa.models.task import Language


@pytest.mark.unit
class TestExtractTranscript:
    """Test cases for guessing the question from a model response."""

    def test_numbered_questions(self):
        response = (
            "Question 1: What is a closure?\n"
            "A closure is a function bundled with its lexical scope.\n"
            "Question 2: What is hoisting?\n"
            "Hoisting moves declarations to the top."
        )

        assert extract_transcript(response) == "What is a closure? | What is hoisting?"

    def test_numbered_vietnamese_question(self):
        response = "Câu hỏi 1: Closure là gì?\nClosure là một hàm..."

        assert extract_transcript(response) == "Closure là gì?"

    def test_quoted_question(self):
        response = 'You want to know "how does the event loop work". The event loop...'

        assert extract_transcript(response) == "how does the event loop work"

    def test_heard_question(self):
        response = "I heard you ask: 'what is a promise?' A promise represents..."

        assert extract_transcript(response) == "what is a promise?"

    def test_question_mark_sentence(self):
        response = "Great topic. Why do we need virtual DOM? Because diffing is cheaper than..."

        assert extract_transcript(response) == "Why do we need virtual DOM?"

    def test_short_first_line_fallback(self):
        response = "Closures in JavaScript\n\nA closure is..."

        assert extract_transcript(response) == "Closures in JavaScript"

    def test_placeholder_when_nothing_matches(self):
        response = "x" * 250

        assert extract_transcript(response) == PLACEHOLDER_TRANSCRIPT


@pytest.mark.unit
class TestDirectAudioProcessor:
    """Test cases for DirectAudioProcessor."""

    @pytest.mark.asyncio
    async def test_returns_answer_and_extracted_transcript(self, fake_engine_cls, sample_audio_file):
        engine = fake_engine_cls(audio_answer="Question 1: What is a closure?\nIt is a function with scope.")
        processor = DirectAudioProcessor(engine)

        result = await processor.process_audio_direct(sample_audio_file, Language.EN, "reactjs")

        assert result.transcript == "What is a closure?"
        assert result.answer == engine.audio_answer
        assert engine.audio_prompts[0]["size"] == 2048
        assert "React.js" in engine.audio_prompts[0]["prompt"]
        assert "Question 1:" in engine.audio_prompts[0]["prompt"]

    @pytest.mark.asyncio
    async def test_vietnamese_prompt(self, fake_engine_cls, sample_audio_file):
        engine = fake_engine_cls()
        processor = DirectAudioProcessor(engine)

        await processor.process_audio_direct(sample_audio_file, Language.VI)

        assert engine.audio_prompts[0]["prompt"].startswith("Đây là nội dung âm thanh.")

    @pytest.mark.asyncio
    async def test_mp4_sent_as_audio_mime_type(self, fake_engine_cls, make_audio_file):
        engine = fake_engine_cls()
        processor = DirectAudioProcessor(engine)

        await processor.process_audio_direct(make_audio_file("question.mp4"), Language.EN)

        assert engine.audio_prompts[0]["mime_type"] == "audio/mp4"

    @pytest.mark.asyncio
    async def test_model_override(self, fake_engine_cls, sample_audio_file):
        engine = fake_engine_cls()
        processor = DirectAudioProcessor(engine)

        await processor.process_audio_direct(sample_audio_file, Language.EN, model_override="gemini-2.5-flash")

        assert engine.models == ["gemini-2.5-flash"]

    @pytest.mark.asyncio
    async def test_missing_file(self, fake_engine_cls, temp_data_dir):
        processor = DirectAudioProcessor(fake_engine_cls())

        with pytest.raises(InvalidTaskError):
            await processor.process_audio_direct(f"{temp_data_dir}/missing.wav", Language.EN)
