"""Recording session: microphone capture, batched transcription and retries.

One RecordingSession owns, for the lifetime of an interview session:

* the capture device while recording,
* the chunk queue waiting for transcription,
* the single in-flight transcription call,
* the pending retry timer, and
* the running transcript of the current question.

Everything except the capture thread runs on one asyncio event loop. Capture
chunks and device errors are handed to the loop with ``call_soon_threadsafe``,
and releasing the device runs in the default executor. Public methods
must be called from the loop thread.

Draining is a small state machine (see ``DrainState``): IDLE, DRAINING while a
transcription call is outstanding, AWAITING_RETRY while a failed batch waits
for its backoff. A drain request is a no-op unless the machine is IDLE, which
is what keeps at most one call in flight and keeps batches in capture order.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from ..audio.chunk_queue import BatchingPolicy, ChunkQueue
from ..exceptions import DeviceUnavailable, TranscriptionError
from ..models.audio import AudioChunk, AudioStats, DrainState, RecordingState, TranscriptionBatch
from ..models.events import RecordingStateEvent, TranscriptEvent, WarningEvent
from ..transcription.accumulator import TranscriptAccumulator
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.publisher import SessionEventPublisher
from ..transcription.retry import RetryController

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[AudioChunk], None]
ErrorCallback = Callable[[Exception], None]


class RecordingSession:
    """Owns recording state, the chunk queue and the running transcript."""

    def __init__(self,
                 backend: AbstractTranscriptionBackend,
                 capture_factory: Callable[[ChunkCallback, ErrorCallback], Any],
                 policy: Optional[BatchingPolicy] = None,
                 retry: Optional[RetryController] = None,
                 publisher: Optional[SessionEventPublisher] = None):
        """Initialize recording session.

        Args:
            backend: Transcription client used for every batch
            capture_factory: Builds a capture source from a chunk callback and an
                error callback. The source must provide start() (raising
                DeviceUnavailable) and stop().
            policy: Batching policy, default 16000-byte minimum batches
            retry: Retry controller, default 3 attempts with 0.8s backoff
            publisher: Event publisher for transcript, warning and state events
        """
        self.backend = backend
        self.capture_factory = capture_factory
        self.policy = policy or BatchingPolicy()
        self.retry = retry or RetryController()
        self.publisher = publisher or SessionEventPublisher()

        self.queue = ChunkQueue()
        self.accumulator = TranscriptAccumulator()
        self.state = RecordingState.IDLE
        self.question_id: Optional[str] = None

        self._capture = None
        self._releasing: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._recording_epoch = 0
        # Bumped on question transition and teardown; in-flight results carrying
        # an older generation are discarded.
        self._generation = 0
        self._flushing = False
        self._in_flight: Optional[asyncio.Task] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._idle = asyncio.Event()
        self._idle.set()

        # Statistics
        self.batches_sent = 0
        self.batches_succeeded = 0
        self.batches_dropped = 0

    # ------------------------------------------------------------------
    # Observable state

    @property
    def transcript(self) -> str:
        return self.accumulator.text

    @property
    def is_recording(self) -> bool:
        return self.state == RecordingState.RECORDING

    @property
    def drain_state(self) -> DrainState:
        if self._in_flight is not None:
            return DrainState.DRAINING
        if self._retry_handle is not None:
            return DrainState.AWAITING_RETRY
        return DrainState.IDLE

    # ------------------------------------------------------------------
    # Lifecycle

    def begin_question(self, question_id: Optional[str]) -> None:
        """Switch to a new question.

        Stops any recording, drops queued audio and pending retries, and resets
        the transcript. A transcription still in flight for the previous
        question completes but its text is discarded.
        """
        logger.info(f"Beginning question {question_id}")
        self._abandon(reason=f"question transition to {question_id}")
        self.accumulator.reset()
        self.question_id = question_id
        self.publisher.publish_transcript(TranscriptEvent(
            question_id=question_id,
            transcript="",
            appended_text="",
        ))
        self.try_drain()

    def start_recording(self) -> Dict[str, Any]:
        """Acquire the capture device and start streaming chunks.

        Returns:
            Result dictionary with success status and details
        """
        if self.state == RecordingState.RECORDING:
            return {
                "success": False,
                "error": "Already recording",
                "question_id": self.question_id,
            }

        self._loop = asyncio.get_running_loop()
        self._cancel_retry()
        dropped = self.queue.clear()
        if dropped:
            logger.info(f"Cleared {dropped} stale chunks before recording")
        self._flushing = False
        self._recording_epoch += 1
        epoch = self._recording_epoch

        capture = self.capture_factory(
            lambda chunk: self._on_capture_chunk(chunk, epoch),
            lambda error: self._on_capture_error(error, epoch),
        )
        try:
            capture.start()
        except DeviceUnavailable as e:
            logger.error(f"Could not start recording: {e}")
            self._set_state(RecordingState.ERROR)
            self.publisher.publish_warning(WarningEvent(
                kind="device_unavailable",
                message=str(e),
                question_id=self.question_id,
            ))
            self._set_state(RecordingState.IDLE)
            self.try_drain()
            return {
                "success": False,
                "error": str(e),
            }

        self._capture = capture
        self._set_state(RecordingState.RECORDING)
        logger.info(f"Started recording for question: {self.question_id}")
        return {
            "success": True,
            "question_id": self.question_id,
        }

    def stop_recording(self) -> Dict[str, Any]:
        """Release the device and flush remaining audio as a final batch.

        Returns:
            Result dictionary with success status and queue details
        """
        if self.state != RecordingState.RECORDING:
            return {
                "success": False,
                "error": "Not recording",
            }

        self._release_device()
        self._set_state(RecordingState.IDLE)
        self._cancel_retry()
        self._flushing = True
        queued_bytes = self.queue.total_bytes
        self.try_drain()

        logger.info(f"Stopped recording for question {self.question_id}, "
                    f"flushing {queued_bytes} queued bytes")
        return {
            "success": True,
            "question_id": self.question_id,
            "flushed_bytes": queued_bytes,
            "transcript": self.transcript,
        }

    def teardown(self) -> None:
        """Release everything; late results are discarded afterwards."""
        self._abandon(reason="teardown")
        self.try_drain()
        logger.info("RecordingSession torn down")

    async def join(self) -> None:
        """Wait until no batch is in flight, no retry is pending and no
        drainable audio is queued."""
        releasing = self._releasing
        if releasing is not None:
            await asyncio.shield(releasing)
            if self._releasing is releasing:
                self._releasing = None
        # Let chunks handed over by the capture thread during stop() land first
        await asyncio.sleep(0)
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Queue and drain

    def enqueue(self, chunk: AudioChunk) -> None:
        """Queue a chunk and try to drain."""
        self.queue.enqueue(chunk)
        self.try_drain()

    def try_drain(self) -> Optional[TranscriptionBatch]:
        """Start one transcription call if the queue is ready and nothing is in flight.

        Returns:
            The batch that was started, or None
        """
        if self.drain_state != DrainState.IDLE:
            return None

        batch = self.policy.take_batch(self.queue, force=self._flushing)
        if batch is None:
            self._idle.set()
            return None

        self._idle.clear()
        self._in_flight = asyncio.get_running_loop().create_task(
            self._transcribe_batch(batch, self._generation)
        )
        return batch

    async def _transcribe_batch(self, batch: TranscriptionBatch, generation: int) -> None:
        retry_scheduled = False
        cancelled = False
        self.batches_sent += 1
        logger.info(f"Transcribing batch {batch.batch_id}: {len(batch.chunks)} chunks, "
                    f"{batch.size} bytes via {self.backend.get_display_info()}")
        try:
            text = await self.backend.transcribe(batch)
        except asyncio.CancelledError:
            cancelled = True
            raise
        except TranscriptionError as e:
            retry_scheduled = self._handle_failure(batch, generation, e)
        except Exception as e:
            logger.error(f"Unhandled exception transcribing batch {batch.batch_id}: {e}", exc_info=True)
            self._drop_batch(batch, generation, kind="unexpected_error",
                             message=f"Transcription failed unexpectedly: {e}")
        else:
            self.batches_succeeded += 1
            self._apply_result(batch, generation, text)
        finally:
            self._in_flight = None
            if retry_scheduled:
                self._schedule_retry()
            elif not cancelled:
                self.try_drain()

    def _apply_result(self, batch: TranscriptionBatch, generation: int, text: str) -> None:
        if generation != self._generation:
            logger.info(f"Discarding late transcription of batch {batch.batch_id}: "
                        f"session moved on")
            return

        if self.accumulator.append(text):
            logger.info(f"Transcript +'{text.strip()[:50]}'")
            self.publisher.publish_transcript(TranscriptEvent(
                question_id=self.question_id,
                transcript=self.accumulator.text,
                appended_text=text.strip(),
                batch_id=batch.batch_id,
            ))

    def _handle_failure(self, batch: TranscriptionBatch, generation: int,
                        error: TranscriptionError) -> bool:
        """Requeue or drop a failed batch. Returns True if a retry is scheduled."""
        logger.warning(f"Transcription of batch {batch.batch_id} failed: {error}")
        if generation != self._generation:
            logger.info(f"Not retrying batch {batch.batch_id}: session moved on")
            return False

        retry_chunks = self.retry.reconstitute(batch)
        if retry_chunks is None:
            self._drop_batch(batch, generation, kind="transcription_failed",
                             message=f"Part of your answer could not be transcribed: {error.message}",
                             status=error.status)
            return False

        self.queue.requeue_front(retry_chunks)
        return True

    def _drop_batch(self, batch: TranscriptionBatch, generation: int, kind: str,
                    message: str, status: Optional[int] = None) -> None:
        self.batches_dropped += 1
        if generation != self._generation:
            return
        self.publisher.publish_warning(WarningEvent(
            kind=kind,
            message=message,
            question_id=self.question_id,
            status=status,
        ))

    def _schedule_retry(self) -> None:
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(self.retry.delay_seconds, self._on_retry_timer)

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        self.try_drain()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
            logger.debug("Cancelled pending retry")

    # ------------------------------------------------------------------
    # Capture

    def _on_capture_chunk(self, chunk: AudioChunk, epoch: int) -> None:
        """Capture-thread callback: hand the chunk to the event loop."""
        try:
            self._loop.call_soon_threadsafe(self._accept_chunk, chunk, epoch)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping chunk {chunk.sequence_number}")

    def _accept_chunk(self, chunk: AudioChunk, epoch: int) -> None:
        if epoch != self._recording_epoch:
            logger.debug(f"Dropping chunk {chunk.sequence_number} from a previous recording")
            return
        self.enqueue(chunk)

    def _on_capture_error(self, error: Exception, epoch: int) -> None:
        """Capture-thread callback: the device failed while recording."""
        try:
            self._loop.call_soon_threadsafe(self._capture_failed, error, epoch)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping capture error: {error}")

    def _capture_failed(self, error: Exception, epoch: int) -> None:
        if epoch != self._recording_epoch or self.state != RecordingState.RECORDING:
            return
        logger.error(f"Microphone failed during recording: {error}")
        self._release_device()
        self._set_state(RecordingState.ERROR)
        self.publisher.publish_warning(WarningEvent(
            kind="device_lost",
            message=f"Microphone stopped working: {error}",
            question_id=self.question_id,
        ))
        self._set_state(RecordingState.IDLE)
        # Transcribe what was captured before the failure
        self._cancel_retry()
        self._flushing = True
        self.try_drain()

    def _release_device(self) -> None:
        capture, self._capture = self._capture, None
        if capture is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._stop_capture(capture)
            return
        # stop() joins the capture thread, so it runs in the default executor;
        # join() waits for it.
        self._releasing = loop.run_in_executor(None, self._stop_capture, capture)

    @staticmethod
    def _stop_capture(capture) -> None:
        try:
            capture.stop()
        except Exception as e:
            logger.error(f"Error releasing capture device: {e}", exc_info=True)

    def _abandon(self, reason: str) -> None:
        """Release the device and forget queued audio and pending retries."""
        self._recording_epoch += 1
        self._generation += 1
        self._release_device()
        if self.state != RecordingState.IDLE:
            self._set_state(RecordingState.IDLE)
        self._cancel_retry()
        self._flushing = False
        dropped = self.queue.clear()
        if dropped:
            logger.info(f"Dropped {dropped} queued chunks on {reason}")

    def _set_state(self, state: RecordingState) -> None:
        previous, self.state = self.state, state
        if previous == state:
            return
        logger.debug(f"Recording state {previous.value} -> {state.value}")
        self.publisher.publish_state(RecordingStateEvent(
            previous=previous,
            current=state,
            question_id=self.question_id,
        ))

    def get_stats(self) -> AudioStats:
        """Get current recording statistics."""
        if self._capture is not None:
            stats = self._capture.get_recording_stats()
        else:
            stats = AudioStats(
                is_recording=False,
                duration_seconds=0.0,
                sample_rate=0,
                frames_per_buffer=0,
                total_chunks=0,
            )
        stats.is_recording = self.is_recording
        stats.queued_bytes = self.queue.total_bytes
        stats.dropped_batches = self.batches_dropped
        return stats
