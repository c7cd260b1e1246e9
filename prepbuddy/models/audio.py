"""Audio-related data models."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

from ..exceptions import MalformedBatch

PCM_MIME_TYPE = "audio/pcm"


def pcm_mime_type(sample_rate: int, channels: int) -> str:
    """MIME type for raw 16-bit little-endian PCM chunks."""
    return f"{PCM_MIME_TYPE};rate={sample_rate};channels={channels}"


class RecordingState(Enum):
    """States of the recording session state machine."""
    IDLE = "idle"
    RECORDING = "recording"
    ERROR = "error"


class DrainState(Enum):
    """States of the drain/transcribe/retry cycle."""
    IDLE = "idle"
    DRAINING = "draining"
    AWAITING_RETRY = "awaiting_retry"


@dataclass(frozen=True)
class AudioChunk:
    """A short segment of recorded audio."""
    payload: bytes
    mime_type: str
    attempts: int = 0
    sequence_number: int = 0

    def __post_init__(self):
        if self.attempts < 0:
            raise ValueError(f"attempts must be >= 0, got {self.attempts}")

    @property
    def size(self) -> int:
        return len(self.payload)

    def retried(self, attempts: int) -> "AudioChunk":
        """Copy of this chunk carrying a new attempt count."""
        return replace(self, attempts=attempts)


@dataclass(frozen=True)
class TranscriptionBatch:
    """One or more chunks sent as a single transcription request."""
    chunks: Tuple[AudioChunk, ...]
    final: bool = False

    def __post_init__(self):
        if not self.chunks:
            raise MalformedBatch("TranscriptionBatch requires at least one chunk")

    @property
    def mime_type(self) -> str:
        return self.chunks[0].mime_type

    @property
    def payload(self) -> bytes:
        return b"".join(chunk.payload for chunk in self.chunks)

    @property
    def size(self) -> int:
        return sum(chunk.size for chunk in self.chunks)

    @property
    def attempts(self) -> int:
        return max(chunk.attempts for chunk in self.chunks)

    @property
    def batch_id(self) -> str:
        first = self.chunks[0].sequence_number
        last = self.chunks[-1].sequence_number
        return f"chunk_{first}-chunk_{last}.attempt_{self.attempts}"


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    frames_per_buffer: int
    total_chunks: int
    peak_level: float = 0.0
    queued_bytes: int = 0
    dropped_batches: int = 0
