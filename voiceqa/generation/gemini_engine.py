"""Gemini engine for sending prompts and getting responses."""

import re
import json
import base64
import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from ..errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"

SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]

# Finish reasons that cut the answer short
STOP_FINISH_REASONS = {"SAFETY", "RECITATION", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "LANGUAGE"}


def filter_supported_models(models: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep Gemini models that support generateContent and are newer than 2.0."""
    supported = []
    for model in models:
        if "generateContent" not in model.get("supportedGenerationMethods", []):
            continue
        name = model.get("name", "")
        if "gemini" not in name.lower():
            continue
        version_match = re.search(r"gemini[/-](\d+(\.\d+)?)", name, re.IGNORECASE)
        if version_match and float(version_match.group(1)) <= 2.0:
            continue
        supported.append(model)
    return supported


class GeminiEngine:
    """Engine for the Gemini generateContent REST API."""

    def __init__(self,
                 api_key: str,
                 model: str = DEFAULT_MODEL,
                 base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout_seconds: float = 60.0,
                 thinking_level: Optional[str] = "minimal"):
        """Initialize Gemini engine.

        Args:
            api_key: Gemini API key
            model: Model used when a request does not name one
            base_url: API root
            timeout_seconds: Timeout for a full response, or between streamed chunks
            thinking_level: Reasoning effort ("minimal" effectively disables it), None to omit
        """
        if not api_key:
            raise ValueError("API key is required for Gemini")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.thinking_level = thinking_level

        logger.info(f"GeminiEngine initialized with model: {model}")

    def resolve_model(self, model: Optional[str] = None) -> str:
        """Requested model name, or the default when none is given."""
        if isinstance(model, str) and model.strip():
            return model.strip()
        return self.model

    async def send_prompt(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a prompt to Gemini and get the response.

        Raises:
            ProviderError: If the API call fails
        """
        body = self._build_body([{"text": prompt}])
        data = await self._post(self.resolve_model(model), "generateContent", body)
        return self._extract_text(data)

    async def send_audio_prompt(self,
                                prompt: str,
                                audio: bytes,
                                mime_type: str = "audio/wav",
                                model: Optional[str] = None) -> str:
        """Send audio plus an instruction prompt in a single request."""
        parts = [
            {"inlineData": {"data": base64.b64encode(audio).decode("ascii"), "mimeType": mime_type}},
            {"text": prompt},
        ]
        body = self._build_body(parts, with_safety_settings=True)
        data = await self._post(self.resolve_model(model), "generateContent", body)
        return self._extract_text(data)

    async def stream_prompt(self, prompt: str, model: Optional[str] = None) -> AsyncIterator[str]:
        """Send a prompt and yield text chunks as Gemini generates them."""
        model_name = self.resolve_model(model)
        body = self._build_body([{"text": prompt}])
        timeout = aiohttp.ClientTimeout(total=None, sock_read=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self._url(model_name, "streamGenerateContent"),
                                        params={"alt": "sse"},
                                        headers=self._headers(),
                                        json=body) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ProviderError(f"Gemini API error: {response.status} - {error_text}")

                    async for raw_line in response.content:
                        line = raw_line.decode("utf-8").strip()
                        if not line.startswith("data:"):
                            continue
                        try:
                            event = json.loads(line[len("data:"):].strip())
                        except json.JSONDecodeError as e:
                            raise ProviderError(f"Gemini sent malformed stream data: {line[:200]}") from e
                        text = self._extract_text(event)
                        if text:
                            yield text
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Gemini stream timed out after {self.timeout_seconds}s without data") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"Gemini network error: {e}") from e

    async def list_models(self) -> List[Dict[str, Any]]:
        """List Gemini models usable for answering."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(f"{self.base_url}/models", headers=self._headers()) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ProviderError(f"Gemini API error: {response.status} - {error_text}")
                    data = await response.json()
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Gemini model listing timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"Gemini network error: {e}") from e

        return filter_supported_models(data.get("models", []))

    def _url(self, model: str, method: str) -> str:
        if not model.startswith("models/"):
            model = f"models/{model}"
        return f"{self.base_url}/{model}:{method}"

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def _build_body(self, parts: List[Dict[str, Any]], with_safety_settings: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if self.thinking_level:
            body["generationConfig"] = {
                "thinkingConfig": {"thinkingLevel": self.thinking_level, "includeThoughts": False},
            }
        if with_safety_settings:
            body["safetySettings"] = SAFETY_SETTINGS
        return body

    async def _post(self, model: str, method: str, body: Dict[str, Any]) -> Dict[str, Any]:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self._url(model, method), headers=self._headers(), json=body) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ProviderError(f"Gemini API error: {response.status} - {error_text}")
                    return await response.json()
        except asyncio.TimeoutError as e:
            raise ProviderError(f"Gemini request timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"Gemini network error: {e}") from e

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ProviderError(f"Gemini blocked the prompt: {block_reason}")
            return ""

        finish_reason = candidates[0].get("finishReason")
        if finish_reason in STOP_FINISH_REASONS:
            raise ProviderError(f"Gemini stopped generating: {finish_reason}")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        # Thought summaries are not part of the answer
        return "".join(part.get("text", "") for part in parts if not part.get("thought"))
