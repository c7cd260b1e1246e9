"""Transcription through the PrepBuddy HTTP proxy."""

import asyncio
import base64
import logging

import aiohttp

from .base import AbstractTranscriptionBackend, encode_batch
from ..exceptions import TranscriptionError
from ..models.audio import TranscriptionBatch

logger = logging.getLogger(__name__)


class ProxyTranscriptionBackend(AbstractTranscriptionBackend):
    """Posts base64 audio to a proxy's /transcribe route.

    Request body is {"audioBase64": ..., "mimeType": ...}; the proxy answers
    {"text": ...} or {"error": ..., "detail": ...} with a non-200 status.
    """

    service_name = "Transcription proxy"

    def __init__(self, base_url: str = "http://localhost:3000", timeout_seconds: float = 60.0):
        self.url = f"{base_url.rstrip('/')}/transcribe"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        logger.info(f"ProxyTranscriptionBackend initialized with url: {self.url}")

    async def transcribe(self, batch: TranscriptionBatch) -> str:
        payload, mime_type = encode_batch(batch)
        body = {
            "audioBase64": base64.b64encode(payload).decode("ascii"),
            "mimeType": mime_type,
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, json=body) as response:
                    data = await response.json(content_type=None)
                    if response.status != 200:
                        raise TranscriptionError(self._error_message(data), status=response.status)
        except aiohttp.ClientError as e:
            raise TranscriptionError(f"Proxy request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise TranscriptionError("Proxy request timed out") from e
        except ValueError as e:
            raise TranscriptionError(f"Proxy returned invalid JSON: {e}") from e

        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise TranscriptionError("Proxy response missing text", status=502)
        return text

    @staticmethod
    def _error_message(data) -> str:
        if not isinstance(data, dict):
            return "Proxy error"
        message = data.get("error") or "Proxy error"
        detail = data.get("detail")
        return f"{message}: {detail}" if detail else message

    def get_display_info(self) -> str:
        return f"{self.service_name} ({self.url})"
