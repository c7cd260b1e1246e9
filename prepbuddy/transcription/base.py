"""Abstract base class for transcription backends."""

import io
import logging
import wave
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from ..models.audio import PCM_MIME_TYPE, TranscriptionBatch

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER_TYPE = "audio/webm"
ALLOWED_CONTAINER_TYPES = frozenset({
    "audio/webm",
    "audio/ogg",
    "audio/wav",
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/m4a",
    "audio/flac",
})


def parse_mime_type(raw: str) -> Tuple[str, Dict[str, str]]:
    """Split 'type/subtype;key=value' into the lowercased type and its parameters."""
    parts = [part.strip() for part in (raw or "").split(";")]
    params = {}
    for part in parts[1:]:
        if "=" in part:
            key, value = part.split("=", 1)
            params[key.strip().lower()] = value.strip()
    return parts[0].lower(), params


def clean_mime_type(raw: str) -> str:
    """Normalize a MIME type to one the transcription API accepts."""
    base, _ = parse_mime_type(raw)
    return base if base in ALLOWED_CONTAINER_TYPES else DEFAULT_CONTAINER_TYPE


def file_extension(mime_type: str) -> str:
    return mime_type.split("/", 1)[1] if "/" in mime_type else "webm"


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap raw 16-bit PCM into a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


def encode_batch(batch: TranscriptionBatch) -> Tuple[bytes, str]:
    """Concatenate a batch into an uploadable payload.

    Raw PCM batches are converted to WAV; other container types are sent as-is.

    Returns:
        Tuple of (payload, normalized MIME type)
    """
    base, params = parse_mime_type(batch.mime_type)
    if base == PCM_MIME_TYPE:
        sample_rate = int(params.get("rate", 16000))
        channels = int(params.get("channels", 1))
        return pcm_to_wav(batch.payload, sample_rate, channels), "audio/wav"
    return batch.payload, clean_mime_type(batch.mime_type)


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "transcription"

    @abstractmethod
    async def transcribe(self, batch: TranscriptionBatch) -> str:
        """Transcribe one batch of audio.

        Args:
            batch: Chunks to transcribe as one request

        Returns:
            Transcribed text (may be empty when no speech was detected)

        Raises:
            TranscriptionError: if the service fails or rejects the request
        """
        pass

    def get_display_info(self) -> str:
        return self.service_name
