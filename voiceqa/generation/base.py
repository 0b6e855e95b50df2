"""Protocol for generative answer engines."""

from typing import AsyncIterator, Optional, Protocol


class GenerativeEngine(Protocol):
    """Protocol for engines that turn a prompt into generated text."""

    async def send_prompt(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a text prompt and get the full response."""
        ...

    async def send_audio_prompt(self,
                                prompt: str,
                                audio: bytes,
                                mime_type: str,
                                model: Optional[str] = None) -> str:
        """Send a prompt together with audio and get the full response."""
        ...

    def stream_prompt(self, prompt: str, model: Optional[str] = None) -> AsyncIterator[str]:
        """Send a text prompt and iterate over the response as it is generated."""
        ...
