"""VoiceQA - spoken question in, generated answer out."""

__version__ = "0.1.0"
