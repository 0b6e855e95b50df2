"""AssemblyAI transcription backend."""

import time
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .base import AbstractTranscriptionBackend
from ..errors import ProviderError

logger = logging.getLogger(__name__)


class AssemblyAIBackend(AbstractTranscriptionBackend):
    """AssemblyAI REST API backend for transcription."""

    service_name = "AssemblyAI"

    def __init__(self,
                 api_key: Optional[str],
                 base_url: str = "https://api.assemblyai.com/v2",
                 submit_timeout_seconds: float = 60.0,
                 poll_interval_seconds: float = 3.0,
                 poll_timeout_seconds: float = 300.0):
        """Initialize AssemblyAI backend.

        Args:
            api_key: AssemblyAI API key
            base_url: API root
            submit_timeout_seconds: Timeout for submitting the transcription job
            poll_interval_seconds: Delay between job status polls
            poll_timeout_seconds: Give up waiting for the job after this long
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.submit_timeout_seconds = submit_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.poll_timeout_seconds = poll_timeout_seconds

    def initialize(self) -> bool:
        """Verify that an API key is configured."""
        if not self.api_key:
            raise ValueError("AssemblyAI API key is required - set assemblyai.api_key or ASSEMBLYAI_API_KEY")
        logger.info("AssemblyAI backend initialized")
        return True

    async def transcribe(self,
                         audio: bytes,
                         language_code: str,
                         model: str,
                         options: Optional[Dict[str, Any]] = None) -> str:
        """Upload audio, submit a transcription job and wait for its text."""
        start_time = time.time()
        headers = {"authorization": self.api_key}

        async with aiohttp.ClientSession(headers=headers) as session:
            upload_url = await self._upload(session, audio)

            params = {"audio_url": upload_url, "speech_model": model}
            if language_code:
                params["language_code"] = language_code
            params.update(options or {})
            logger.debug(f"AssemblyAI parameters: {params}")

            try:
                transcript_id = await asyncio.wait_for(
                    self._submit(session, params), timeout=self.submit_timeout_seconds)
            except asyncio.TimeoutError as e:
                raise ProviderError(
                    f"AssemblyAI transcription request timed out after {self.submit_timeout_seconds} seconds") from e

            text = await self._wait_until_ready(session, transcript_id)

        logger.debug(f"AssemblyAI transcript ({time.time() - start_time:.2f}s): '{text}'")
        return text

    async def _upload(self, session: aiohttp.ClientSession, audio: bytes) -> str:
        logger.debug(f"Uploading {len(audio)} bytes to AssemblyAI...")
        data = await self._request(session, "POST", "/upload", data=audio)
        return data["upload_url"]

    async def _submit(self, session: aiohttp.ClientSession, params: Dict[str, Any]) -> str:
        data = await self._request(session, "POST", "/transcript", json=params)
        return data["id"]

    async def _wait_until_ready(self, session: aiohttp.ClientSession, transcript_id: str) -> str:
        """Poll the transcription job until it completes or fails."""
        deadline = time.monotonic() + self.poll_timeout_seconds
        while True:
            data = await self._request(session, "GET", f"/transcript/{transcript_id}")
            status = data.get("status")
            if status == "completed":
                return data.get("text") or ""
            if status == "error":
                raise ProviderError(f"AssemblyAI transcription failed: {data.get('error')}")
            if time.monotonic() >= deadline:
                raise ProviderError(
                    f"AssemblyAI transcription {transcript_id} not ready after {self.poll_timeout_seconds} seconds")
            await asyncio.sleep(self.poll_interval_seconds)

    async def _request(self, session: aiohttp.ClientSession, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            async with session.request(method, f"{self.base_url}{path}", **kwargs) as response:
                if response.status != 200:
                    error_text = await response.text()
                    if response.status == 401:
                        logger.error("Authentication error with AssemblyAI. Check your API key.")
                    elif response.status == 429:
                        logger.error("Rate limit exceeded with AssemblyAI.")
                    raise ProviderError(f"AssemblyAI API error: {response.status} - {error_text}")
                return await response.json()
        except aiohttp.ClientError as e:
            raise ProviderError(f"AssemblyAI network error: {e}") from e

    def cleanup(self) -> None:
        pass
