"""Answer generation for VoiceQA."""

from .base import GenerativeEngine
from .gemini_engine import GeminiEngine, filter_supported_models
from .answer_generator import AnswerGenerator
from .direct_audio import DirectAudioProcessor, extract_transcript, PLACEHOLDER_TRANSCRIPT

__all__ = [
    "GenerativeEngine",
    "GeminiEngine",
    "filter_supported_models",
    "AnswerGenerator",
    "DirectAudioProcessor",
    "extract_transcript",
    "PLACEHOLDER_TRANSCRIPT",
]
