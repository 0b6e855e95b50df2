"""Speech model rotation used across transcription retries."""

from typing import Tuple

from ..models.transcription import AttemptOptions, TranscriptionStrategy

INITIAL_STRATEGY = TranscriptionStrategy(
    name="initial",
    speech_model="universal",
    index=None,
    description="general-purpose model",
)

# Indexed by attempt_number % 3
RETRY_STRATEGIES: Tuple[TranscriptionStrategy, ...] = (
    TranscriptionStrategy(name="best", speech_model="best", index=0,
                          description="highest accuracy model"),
    TranscriptionStrategy(name="universal", speech_model="universal", index=1,
                          description="universal model with formatting disabled"),
    TranscriptionStrategy(name="nano", speech_model="nano", index=2,
                          description="lightweight model"),
)

# Provider tuning per strategy name
STRATEGY_OPTIONS = {
    "initial": {},
    "best": {},
    "universal": {"format_text": False},
    "nano": {"format_text": True},
}


def select_strategy(options: AttemptOptions) -> TranscriptionStrategy:
    """Pick the speech model variant for an attempt."""
    if not options.retry_attempt:
        return INITIAL_STRATEGY
    return RETRY_STRATEGIES[options.attempt_number % len(RETRY_STRATEGIES)]
