"""Exception types shared across the VoiceQA services."""


class VoiceQAError(Exception):
    """Base class for VoiceQA errors."""


class InvalidTaskError(VoiceQAError, ValueError):
    """A task request was rejected before processing started."""


class TaskInProgressError(VoiceQAError, RuntimeError):
    """A task was submitted while another one is still running."""


class TranscriptionUnavailableError(VoiceQAError, RuntimeError):
    """The transcription provider could not be initialized."""


class ProviderError(VoiceQAError, RuntimeError):
    """A call to an external provider failed or timed out."""
