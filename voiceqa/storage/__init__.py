"""Audio file storage for VoiceQA."""

from .audio_files import UploadStore, validate_audio_file, read_audio_file, guess_audio_mime_type

__all__ = [
    "UploadStore",
    "validate_audio_file",
    "read_audio_file",
    "guess_audio_mime_type",
]
