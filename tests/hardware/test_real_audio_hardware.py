"""Real hardware tests for microphone capture.

These tests require an actual input device and are skipped unless
PREPBUDDY_HARDWARE_TESTS is set.

Run with: PREPBUDDY_HARDWARE_TESTS=1 pytest tests/hardware/ -v -s -m hardware
"""

import os
import time

import pytest

from prepbuddy.audio.capture import AudioCapture
from prepbuddy.exceptions import DeviceUnavailable

pytestmark = pytest.mark.skipif(
    not os.environ.get("PREPBUDDY_HARDWARE_TESTS"),
    reason="set PREPBUDDY_HARDWARE_TESTS=1 to run against a real microphone",
)


@pytest.mark.hardware
class TestRealAudioHardware:
    """Tests that require real audio hardware to run."""

    def test_real_microphone_chunks(self):
        """Record three seconds and check chunk sizes and timing."""
        chunks = []
        capture = AudioCapture(callback=chunks.append, chunk_interval_seconds=1.0)

        try:
            capture.start()
        except DeviceUnavailable as e:
            pytest.skip(f"No usable microphone: {e}")

        time.sleep(3.0)
        capture.stop()

        stats = capture.get_recording_stats()
        print(f"\nCaptured {len(chunks)} chunks, peak level {stats.peak_level:.3f}")

        # One chunk per second of 16 kHz mono 16-bit audio, plus a trailing partial
        assert len(chunks) >= 2
        assert all(chunk.size == 32000 for chunk in chunks[:-1])
        assert chunks[-1].size <= 32000
        assert capture.stream is None
