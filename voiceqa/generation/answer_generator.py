"""Answer generation for transcribed questions."""

import logging
from typing import AsyncIterator, Optional

from .base import GenerativeEngine
from .prompts import build_answer_prompt
from ..models.task import Language

logger = logging.getLogger(__name__)


class AnswerGenerator:
    """Generates answers, either all at once or as a stream of chunks."""

    def __init__(self, engine: GenerativeEngine):
        """Initialize answer generator.

        Args:
            engine: Engine implementing the GenerativeEngine protocol
        """
        self.engine = engine

    async def generate_answer(self,
                              question: str,
                              language: Language,
                              topic_context: str = "general",
                              previous_question: Optional[str] = None,
                              custom_context: str = "",
                              model: Optional[str] = None) -> str:
        """Generate the full answer text for a question."""
        prompt = build_answer_prompt(question, language, topic_context, previous_question, custom_context)
        logger.debug(f"Generating answer (topic={topic_context}, follow_up={previous_question is not None})")

        answer = await self.engine.send_prompt(prompt, model=model)
        logger.info(f"Generated answer ({len(answer)} chars)")
        return answer

    async def generate_answer_stream(self,
                                     question: str,
                                     language: Language,
                                     topic_context: str = "general",
                                     previous_question: Optional[str] = None,
                                     custom_context: str = "",
                                     model: Optional[str] = None) -> AsyncIterator[str]:
        """Yield the answer in chunks as they are generated.

        The stream keeps no state once exhausted; callers that need the full
        text accumulate it themselves. An error mid-stream ends the iteration
        by raising, and chunks already yielded stay delivered.
        """
        prompt = build_answer_prompt(question, language, topic_context, previous_question, custom_context)
        logger.debug(f"Streaming answer (topic={topic_context}, follow_up={previous_question is not None})")

        stream = self.engine.stream_prompt(prompt, model=model)
        try:
            async for chunk in stream:
                if chunk:
                    yield chunk
        finally:
            # Release the provider connection when the consumer stops early
            await stream.aclose()
