"""Bounded retry policy for failed transcription batches."""

import logging
from typing import List, Optional

from ..models.audio import AudioChunk, TranscriptionBatch

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 0.8


class RetryController:
    """Decides whether a failed batch is retried and with which chunks."""

    def __init__(self,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS):
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds

    def reconstitute(self, batch: TranscriptionBatch) -> Optional[List[AudioChunk]]:
        """Rebuild a failed batch as retry chunks.

        All chunks share attempts = max(attempts in batch) + 1.

        Returns:
            The chunks to requeue at the head, or None if the batch is out of
            attempts and must be dropped.
        """
        attempts = batch.attempts + 1
        if attempts > self.max_attempts:
            logger.warning(f"Batch {batch.batch_id} exhausted {self.max_attempts} retries, dropping "
                           f"{len(batch.chunks)} chunks ({batch.size} bytes)")
            return None

        logger.info(f"Batch {batch.batch_id} scheduled for retry {attempts}/{self.max_attempts} "
                    f"in {self.delay_seconds:.2f}s")
        return [chunk.retried(attempts) for chunk in batch.chunks]
