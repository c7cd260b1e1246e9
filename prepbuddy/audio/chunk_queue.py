"""Chunk queue and batching policy for batched transcription."""

import logging
from collections import deque
from typing import Iterable, Iterator, List, Optional

from ..models.audio import AudioChunk, TranscriptionBatch

logger = logging.getLogger(__name__)

DEFAULT_MIN_BATCH_BYTES = 16000


class ChunkQueue:
    """Ordered buffer of not-yet-transcribed chunks.

    Fresh chunks go to the tail; retried chunks (attempts > 0) go to the head
    so that they are transcribed before anything captured after them.
    """

    def __init__(self):
        self._chunks = deque()
        self.total_bytes = 0

    def enqueue(self, chunk: AudioChunk) -> None:
        """Add a chunk, at the head if it is a retry."""
        if chunk.attempts > 0:
            self._chunks.appendleft(chunk)
        else:
            self._chunks.append(chunk)
        self.total_bytes += chunk.size
        logger.debug(f"Queued chunk {chunk.sequence_number}: {chunk.size} bytes "
                     f"(attempts={chunk.attempts}), queue now {len(self._chunks)} chunks "
                     f"({self.total_bytes} bytes)")

    def requeue_front(self, chunks: Iterable[AudioChunk]) -> None:
        """Put a set of chunks back at the head, keeping their relative order."""
        chunks = list(chunks)
        for chunk in reversed(chunks):
            self._chunks.appendleft(chunk)
            self.total_bytes += chunk.size
        logger.debug(f"Requeued {len(chunks)} chunks at head, queue now "
                     f"{len(self._chunks)} chunks ({self.total_bytes} bytes)")

    def pop_front(self) -> AudioChunk:
        chunk = self._chunks.popleft()
        self.total_bytes -= chunk.size
        return chunk

    def clear(self) -> int:
        """Drop everything. Returns the number of chunks dropped."""
        dropped = len(self._chunks)
        self._chunks.clear()
        self.total_bytes = 0
        return dropped

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[AudioChunk]:
        return iter(self._chunks)

    def __bool__(self) -> bool:
        return bool(self._chunks)


class BatchingPolicy:
    """Decides when the queue holds enough audio for one transcription call."""

    def __init__(self, min_batch_bytes: int = DEFAULT_MIN_BATCH_BYTES):
        if min_batch_bytes <= 0:
            raise ValueError("min_batch_bytes must be positive")
        self.min_batch_bytes = min_batch_bytes

    def is_ready(self, queue: ChunkQueue, force: bool = False) -> bool:
        if not queue:
            return False
        return force or queue.total_bytes >= self.min_batch_bytes

    def take_batch(self, queue: ChunkQueue, force: bool = False) -> Optional[TranscriptionBatch]:
        """Remove a batch from the head of the queue.

        Chunks are taken until their cumulative size meets the threshold or the
        queue runs out. Returns None when the queue is not ready.
        """
        if not self.is_ready(queue, force):
            return None

        selected: List[AudioChunk] = []
        size = 0
        while queue and size < self.min_batch_bytes:
            chunk = queue.pop_front()
            selected.append(chunk)
            size += chunk.size

        batch = TranscriptionBatch(chunks=tuple(selected), final=force and not queue)
        logger.debug(f"Formed batch {batch.batch_id}: {len(selected)} chunks, {size} bytes"
                     f"{' (flush)' if force else ''}")
        return batch
