"""Task request models."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import InvalidTaskError


class Language(str, Enum):
    """Supported question/answer languages."""
    EN = "en"
    VI = "vi"


class TaskMode(str, Enum):
    """How the coordinator obtains the question for a task."""
    TRANSCRIBE = "transcribe"  # new upload, speech-to-text first
    RETRY = "retry"            # transcribe again with a different strategy
    DIRECT = "direct"          # send the audio straight to the generative model
    ANSWER = "answer"          # question text already known


class TaskRequest(BaseModel):
    """A single audio-to-answer request.

    Field aliases follow the camelCase names used by the existing clients,
    so a request body can be validated as-is.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    audio_file: Optional[str] = Field(default=None, validation_alias=AliasChoices("audio_file", "audioFile"))
    language: Language = Language.EN
    topic_context: str = Field(
        default="general",
        validation_alias=AliasChoices("topic_context", "topicContext", "questionContext"),
    )
    custom_context: str = Field(default="", validation_alias=AliasChoices("custom_context", "customContext"))
    is_follow_up: bool = Field(default=False, validation_alias=AliasChoices("is_follow_up", "isFollowUp"))
    use_streaming: bool = Field(default=True, validation_alias=AliasChoices("use_streaming", "useStreaming"))
    model_override: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("model_override", "modelOverride", "model"),
    )
    mode: TaskMode = TaskMode.TRANSCRIBE
    transcript: Optional[str] = None

    @field_validator("topic_context", mode="before")
    @classmethod
    def _default_topic(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "general"
        return value

    @field_validator("custom_context", mode="before")
    @classmethod
    def _default_custom_context(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("audio_file", "model_override", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_transcript(self) -> "TaskRequest":
        if self.mode is TaskMode.ANSWER and not (self.transcript and self.transcript.strip()):
            raise ValueError("No transcript available for streaming")
        return self

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], **overrides: Any) -> "TaskRequest":
        """Validate a client payload, raising InvalidTaskError on bad input."""
        data = dict(payload)
        data.update(overrides)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidTaskError(f"Invalid task request: {e}") from e
