"""Answer-related data models."""

from dataclasses import dataclass


@dataclass
class StreamingAnswer:
    """Accumulates streamed chunks into the full answer text."""
    accumulated_text: str = ""
    chunk_count: int = 0

    def add(self, chunk: str) -> None:
        self.accumulated_text += chunk
        self.chunk_count += 1


@dataclass
class DirectAnswer:
    """Output of the direct audio-to-answer path.

    ``transcript`` is guessed from the model response and is approximate.
    """
    transcript: str
    answer: str
