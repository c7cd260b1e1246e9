"""Builds transcription backends and recording sessions from configuration."""

import logging
from typing import Optional

from ..audio.capture import AudioCapture
from ..audio.chunk_queue import BatchingPolicy
from ..config import PrepBuddyConfig
from ..transcription import (
    AbstractTranscriptionBackend,
    OpenAIWhisperBackend,
    ProxyTranscriptionBackend,
    RetryController,
    SessionEventPublisher,
)
from .recording_session import ChunkCallback, ErrorCallback, RecordingSession

logger = logging.getLogger(__name__)


class TranscriptionService:
    """Creates the configured transcription backend and recording sessions."""

    def __init__(self, config: PrepBuddyConfig):
        """Initialize transcription service.

        Args:
            config: Application configuration
        """
        self.config = config
        self.backend: Optional[AbstractTranscriptionBackend] = None

    def get_backend(self) -> AbstractTranscriptionBackend:
        """Create the backend on first use."""
        if self.backend is None:
            self.backend = self._create_backend()
        return self.backend

    def _create_backend(self) -> AbstractTranscriptionBackend:
        backend_name = self.config.get('transcription.backend', 'openai')
        timeout = self.config.get('openai.request_timeout_seconds', 60.0)

        logger.info(f"Initializing {backend_name} transcription backend...")
        if backend_name == 'proxy':
            return ProxyTranscriptionBackend(
                base_url=self.config.get('transcription.proxy_url', 'http://localhost:3000'),
                timeout_seconds=timeout,
            )
        if backend_name == 'openai':
            return OpenAIWhisperBackend(
                api_key=self.config.get_api_key(),
                model=self.config.get('openai.transcription_model', 'whisper-1'),
                base_url=self.config.get('openai.base_url', 'https://api.openai.com/v1'),
                timeout_seconds=timeout,
                language=self.config.get('transcription.language'),
            )
        raise ValueError(f"Unknown transcription backend: {backend_name}")

    def create_capture(self, callback: ChunkCallback,
                       error_callback: Optional[ErrorCallback] = None) -> AudioCapture:
        """Create a microphone capture source from the audio settings."""
        return AudioCapture(
            callback=callback,
            error_callback=error_callback,
            sample_rate=self.config.get('audio.sample_rate', 16000),
            channels=self.config.get('audio.channels', 1),
            frames_per_buffer=self.config.get('audio.frames_per_buffer', 1024),
            chunk_interval_seconds=self.config.get('audio.chunk_interval_seconds', 1.5),
            input_device_index=self.config.get('audio.input_device_index'),
        )

    def create_recording_session(self,
                                 publisher: Optional[SessionEventPublisher] = None) -> RecordingSession:
        """Create a recording session wired to the configured backend and microphone."""
        min_batch_bytes = self.config.get('transcription.min_batch_bytes', 16000)
        max_attempts = self.config.get('transcription.max_attempts', 3)
        retry_delay = self.config.get('transcription.retry_delay_seconds', 0.8)

        logger.info(f"Recording session: batches >= {min_batch_bytes} bytes, "
                    f"{max_attempts} retries every {retry_delay}s")
        return RecordingSession(
            backend=self.get_backend(),
            capture_factory=self.create_capture,
            policy=BatchingPolicy(min_batch_bytes),
            retry=RetryController(max_attempts=max_attempts, delay_seconds=retry_delay),
            publisher=publisher,
        )
