"""Pytest configuration and fixtures for PrepBuddy tests."""

import asyncio
import itertools
import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import numpy as np
import pytest
import yaml
from pubsub import pub

from prepbuddy.config import PrepBuddyConfig
from prepbuddy.exceptions import DeviceUnavailable
from prepbuddy.models.audio import AudioChunk, AudioStats, pcm_mime_type
from prepbuddy.services.recording_session import RecordingSession
from prepbuddy.audio.chunk_queue import BatchingPolicy
from prepbuddy.transcription.base import AbstractTranscriptionBackend
from prepbuddy.transcription.publisher import RECORDING_STATE_TOPIC, TRANSCRIPT_TOPIC, WARNING_TOPIC
from prepbuddy.transcription.retry import RetryController


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PCM_MIME = pcm_mime_type(16000, 1)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: tests that wire several components together")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(temp_data_dir):
    """Write a config file that keeps all data inside the temp directory."""
    path = Path(temp_data_dir) / "prepbuddy.yaml"
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump({
            "storage": {"data_directory": "data"},
            "logging": {"file_path": "data/logs/test.log", "console_output": False},
        }, f)
    return str(path)


@pytest.fixture
def test_config(config_file, monkeypatch):
    """Configuration rooted in a temp directory with no API key in the environment."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AI_API_KEY", raising=False)
    return PrepBuddyConfig(config_file)


@pytest.fixture
def restore_root_logging():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def make_chunk():
    """Build AudioChunks with increasing sequence numbers."""
    counter = itertools.count(1)

    def _make(size, mime_type=PCM_MIME, attempts=0, fill=b"\x01"):
        return AudioChunk(
            payload=fill * size,
            mime_type=mime_type,
            attempts=attempts,
            sequence_number=next(counter),
        )

    return _make


class ScriptedBackend(AbstractTranscriptionBackend):
    """Transcription backend that replays scripted outcomes.

    Each outcome is a string (returned), an exception (raised) or a callable
    taking the batch. When ``gate`` is set to an asyncio.Event, calls block
    until it is set.
    """

    service_name = "Scripted"

    def __init__(self, outcomes=None, default=""):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.batches = []
        self.gate = None
        self.concurrent = 0
        self.max_concurrent = 0

    async def transcribe(self, batch):
        self.batches.append(batch)
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            outcome = self.outcomes.pop(0) if self.outcomes else self.default
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                return outcome(batch)
            return outcome
        finally:
            self.concurrent -= 1


class FakeCapture:
    """Capture source driven by the test instead of a microphone."""

    def __init__(self, callback, error_callback=None, fail=False, chunks_on_start=()):
        self.callback = callback
        self.error_callback = error_callback
        self.fail = fail
        self.chunks_on_start = list(chunks_on_start)
        self.started = False
        self.stopped = False

    def start(self):
        if self.fail:
            raise DeviceUnavailable("Unable to open microphone: no input device")
        self.started = True
        for chunk in self.chunks_on_start:
            self.callback(chunk)

    def stop(self):
        self.stopped = True

    def emit(self, chunk):
        self.callback(chunk)

    def break_device(self, error):
        self.error_callback(error)

    def get_recording_stats(self):
        return AudioStats(
            is_recording=self.started and not self.stopped,
            duration_seconds=1.0,
            sample_rate=16000,
            frames_per_buffer=1024,
            total_chunks=0,
        )


class CaptureFactory:
    """Creates FakeCaptures and remembers them."""

    def __init__(self):
        self.captures = []
        self.fail = False
        self.chunks_on_start = []

    def __call__(self, callback, error_callback=None):
        capture = FakeCapture(callback, error_callback, fail=self.fail,
                              chunks_on_start=self.chunks_on_start)
        self.captures.append(capture)
        return capture

    @property
    def current(self):
        return self.captures[-1]


class EventLog:
    """Strongly referenced pubsub listeners that record every event."""

    def __init__(self):
        self.transcripts = []
        self.warnings = []
        self.states = []

    def on_transcript(self, event):
        self.transcripts.append(event)

    def on_warning(self, event):
        self.warnings.append(event)

    def on_state(self, event):
        self.states.append(event)


@pytest.fixture
def scripted_backend():
    """The ScriptedBackend class, for building backends with per-test outcomes."""
    return ScriptedBackend


@pytest.fixture
def capture_factory():
    return CaptureFactory()


@pytest.fixture
def event_log():
    log = EventLog()
    pub.subscribe(log.on_transcript, TRANSCRIPT_TOPIC)
    pub.subscribe(log.on_warning, WARNING_TOPIC)
    pub.subscribe(log.on_state, RECORDING_STATE_TOPIC)
    yield log
    pub.unsubscribe(log.on_transcript, TRANSCRIPT_TOPIC)
    pub.unsubscribe(log.on_warning, WARNING_TOPIC)
    pub.unsubscribe(log.on_state, RECORDING_STATE_TOPIC)


@pytest.fixture
def build_session(capture_factory):
    """Build a RecordingSession with fast retries."""
    def _build(backend, min_batch_bytes=16000, max_attempts=3, delay_seconds=0.0):
        return RecordingSession(
            backend=backend,
            capture_factory=capture_factory,
            policy=BatchingPolicy(min_batch_bytes),
            retry=RetryController(max_attempts=max_attempts, delay_seconds=delay_seconds),
        )
    return _build
