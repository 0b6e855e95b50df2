"""Direct audio-to-answer path, skipping speech-to-text."""

import re
import logging
from typing import Optional

from .base import GenerativeEngine
from .prompts import build_direct_audio_prompt
from ..models.answer import DirectAnswer
from ..models.task import Language
from ..storage.audio_files import DEFAULT_MIN_AUDIO_BYTES, guess_audio_mime_type, read_audio_file

logger = logging.getLogger(__name__)

PLACEHOLDER_TRANSCRIPT = "Unable to extract specific question from audio"
MAX_FIRST_LINE_LENGTH = 200

# Tried in order; the first pattern with matches wins
_QUESTION_PATTERNS = (
    ("numbered", re.compile(
        r"(?:Question|Câu hỏi)\s*\d+\s*:\s*(.*?)(?=(?:Question|Câu hỏi)\s*\d+|[\n\r]|$)",
        re.IGNORECASE)),
    ("quoted", re.compile(r"[\"“”']([^\"“”'\n]{5,})[\"“”'](?:\?|\.)")),
    ("heard", re.compile(
        r"(?:I heard you ask|You asked)(?:[:\s]+)[\"']?([^\"'\n.?]{5,}\??)[\"']",
        re.IGNORECASE)),
    ("question mark", re.compile(r"([^.!?\n]{10,}\?)")),
)


def extract_transcript(response_text: str) -> str:
    """Guess the spoken question(s) from a model response.

    This is a heuristic and the result is approximate. Multiple questions are
    joined with " | ". Falls back to the first line when it is short, and to
    a fixed placeholder otherwise.
    """
    for name, pattern in _QUESTION_PATTERNS:
        questions = [match.group(1).strip() for match in pattern.finditer(response_text)]
        questions = [question for question in questions if question]
        if questions:
            logger.debug(f"Extracted questions using {name} pattern: {questions}")
            return " | ".join(questions)

    first_line = re.split(r"[\n\r]", response_text, maxsplit=1)[0]
    if first_line and len(first_line) < MAX_FIRST_LINE_LENGTH:
        logger.debug(f"Using first line as transcript: {first_line}")
        return first_line

    return PLACEHOLDER_TRANSCRIPT


class DirectAudioProcessor:
    """Sends raw audio to the generative model, which both hears and answers the question."""

    def __init__(self, engine: GenerativeEngine, min_audio_bytes: int = DEFAULT_MIN_AUDIO_BYTES):
        self.engine = engine
        self.min_audio_bytes = min_audio_bytes

    async def process_audio_direct(self,
                                   audio_file: str,
                                   language: Language,
                                   topic_context: str = "general",
                                   custom_context: str = "",
                                   model_override: Optional[str] = None) -> DirectAnswer:
        """Answer the question spoken in an audio file with one model call.

        No retries: a failed call raises to the caller.
        """
        logger.info(f"Processing audio directly with the generative model: {audio_file}")

        audio = read_audio_file(audio_file, self.min_audio_bytes)
        prompt = build_direct_audio_prompt(language, topic_context, custom_context)
        response_text = await self.engine.send_audio_prompt(
            prompt, audio, guess_audio_mime_type(audio_file), model=model_override)

        return DirectAnswer(transcript=extract_transcript(response_text), answer=response_text)
