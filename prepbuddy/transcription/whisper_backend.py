"""OpenAI Whisper transcription backend."""

import asyncio
import logging
import time
from typing import Optional

import aiohttp

from .base import AbstractTranscriptionBackend, encode_batch, file_extension
from ..exceptions import TranscriptionError
from ..models.audio import TranscriptionBatch

logger = logging.getLogger(__name__)


class OpenAIWhisperBackend(AbstractTranscriptionBackend):
    """Transcribes batches with the OpenAI audio/transcriptions endpoint."""

    service_name = "OpenAI Whisper"

    def __init__(self,
                 api_key: str,
                 model: str = "whisper-1",
                 base_url: str = "https://api.openai.com/v1",
                 timeout_seconds: float = 60.0,
                 language: Optional[str] = None):
        """Initialize Whisper backend.

        Args:
            api_key: OpenAI API key
            model: Transcription model name
            base_url: API root, without the trailing endpoint
            timeout_seconds: Total timeout for one request
            language: Optional ISO-639-1 hint (e.g. 'en')
        """
        if not api_key:
            raise ValueError("OpenAI API key is required for Whisper transcription")
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/audio/transcriptions"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.language = language
        logger.info(f"OpenAIWhisperBackend initialized with model: {model}")

    async def transcribe(self, batch: TranscriptionBatch) -> str:
        payload, mime_type = encode_batch(batch)
        start_time = time.time()

        form = aiohttp.FormData()
        form.add_field("model", self.model)
        form.add_field("response_format", "json")
        if self.language:
            form.add_field("language", self.language)
        form.add_field("file", payload,
                       filename=f"audio.{file_extension(mime_type)}",
                       content_type=mime_type)

        headers = {"Authorization": f"Bearer {self.api_key}"}

        logger.debug(f"Batch {batch.batch_id}: uploading {len(payload)} bytes as {mime_type}")
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise TranscriptionError(error_text or "Upstream error", status=response.status)
                    result = await response.json()
        except aiohttp.ClientError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TranscriptionError("Transcription request timed out") from e
        except ValueError as e:
            raise TranscriptionError(f"Transcription response was not JSON: {e}") from e

        text = result.get("text") if isinstance(result, dict) else None
        if text is None:
            raise TranscriptionError("Upstream transcription missing text", status=502)

        logger.debug(f"Batch {batch.batch_id} transcribed in {time.time() - start_time:.3f}s: '{text[:50]}'")
        return text
