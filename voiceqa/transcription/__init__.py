"""Transcription module for VoiceQA."""

from .base import AbstractTranscriptionBackend
from .strategy import INITIAL_STRATEGY, RETRY_STRATEGIES, select_strategy
from .engine import TranscriptionStrategyEngine
from .assemblyai_backend import AssemblyAIBackend
from .google_backend import GoogleSpeechBackend

__all__ = [
    "AbstractTranscriptionBackend",
    "INITIAL_STRATEGY",
    "RETRY_STRATEGIES",
    "select_strategy",
    "TranscriptionStrategyEngine",
    "AssemblyAIBackend",
    "GoogleSpeechBackend",
]
