"""Audio capture and chunk queueing module."""

from .capture import AudioCapture
from .chunk_queue import BatchingPolicy, ChunkQueue

__all__ = [
    'AudioCapture',
    'BatchingPolicy',
    'ChunkQueue',
]
