"""Microphone capture that emits fixed-interval audio chunks."""

import pyaudio
import logging
from threading import Thread, Event, Lock
from typing import Optional, Callable
from datetime import datetime
import numpy as np

from ..exceptions import DeviceUnavailable
from ..models.audio import AudioChunk, AudioStats, pcm_mime_type


logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # paInt16


class AudioCapture:
    """Continuous microphone capture in a background thread.

    Raw frames are accumulated until one chunk interval of audio is available,
    then handed to the callback as an AudioChunk. A read failure while
    recording ends the thread and is reported to error_callback. Both callbacks
    run on the capture thread.
    """

    def __init__(
        self,
        callback: Callable[[AudioChunk], None],
        error_callback: Optional[Callable[[Exception], None]] = None,
        sample_rate: int = 16000,
        channels: int = 1,
        frames_per_buffer: int = 1024,
        chunk_interval_seconds: float = 1.5,
        input_device_index: Optional[int] = None,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives each emitted AudioChunk
            error_callback: Receives the error if the device fails mid-recording
            sample_rate: Audio sample rate (16kHz for Whisper compatibility)
            channels: Number of audio channels (1 for mono)
            frames_per_buffer: Frames per PyAudio read
            chunk_interval_seconds: Audio duration of one emitted chunk
            input_device_index: PyAudio device index, None for the default input
        """
        self.chunk_callback = callback
        self.error_callback = error_callback
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames_per_buffer = frames_per_buffer
        self.chunk_interval_seconds = chunk_interval_seconds
        self.input_device_index = input_device_index
        self.mime_type = pcm_mime_type(sample_rate, channels)
        self.bytes_per_chunk = int(sample_rate * chunk_interval_seconds) * channels * BYTES_PER_SAMPLE

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self._release_lock = Lock()

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0
        self.peak_level = 0.0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def start(self):
        """Acquire the input device and start capturing.

        Returns:
            The open PyAudio stream (the device handle)

        Raises:
            DeviceUnavailable: if the device cannot be opened
        """
        if self.is_recording:
            logger.warning("Recording already in progress")
            return self.stream

        logger.info("Starting audio capture")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0
        self.peak_level = 0.0

        self.stream = self.__open_audio_stream()

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()
        return self.stream

    def stop(self) -> None:
        """Stop capturing and release the device."""
        if not self.is_recording:
            logger.debug("No capture in progress")
            return

        logger.info("Stopping audio capture")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        self.is_recording = False
        if self.recording_thread is None or not self.recording_thread.is_alive():
            self._release_device()
        logger.info(f"Capture stopped. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self):
        self.pyaudio_instance = pyaudio.PyAudio()
        try:
            stream = self.pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.frames_per_buffer,
            )
        except OSError as e:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            raise DeviceUnavailable(f"Unable to open microphone: {e}") from e
        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.frames_per_buffer} frames/buffer, "
                    f"{self.bytes_per_chunk} bytes/chunk")
        return stream

    def __emit_chunk(self, payload: bytes) -> None:
        if not payload:
            return
        self.total_chunks += 1
        samples = np.frombuffer(payload, dtype=np.int16)
        if samples.size:
            self.peak_level = float(np.abs(samples.astype(np.int32)).max()) / 32768.0
        chunk = AudioChunk(
            payload=payload,
            mime_type=self.mime_type,
            sequence_number=self.total_chunks,
        )
        self.chunk_callback(chunk)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        pending = bytearray()
        try:
            while not self.stop_event.is_set():
                data = self.stream.read(self.frames_per_buffer, exception_on_overflow=False)
                pending.extend(data)
                if len(pending) >= self.bytes_per_chunk:
                    self.__emit_chunk(bytes(pending[:self.bytes_per_chunk]))
                    del pending[:self.bytes_per_chunk]
            # Trailing audio shorter than one interval
            self.__emit_chunk(bytes(pending))
        except OSError as e:
            logger.error(f"Audio capture read failed: {e}")
            if self.error_callback is not None:
                self.error_callback(e)
        finally:
            self._release_device()

    def _release_device(self) -> None:
        with self._release_lock:
            if self.stream is not None:
                try:
                    self.stream.stop_stream()
                    self.stream.close()
                except OSError as e:
                    logger.warning(f"Error closing audio stream: {e}")
                self.stream = None
            if self.pyaudio_instance is not None:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            frames_per_buffer=self.frames_per_buffer,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if getattr(self, "is_recording", False):
            self.stop()
