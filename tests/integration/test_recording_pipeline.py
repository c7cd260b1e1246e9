"""Integration tests for the microphone-to-transcript pipeline."""

import asyncio
import base64
import io
import time
import wave
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp import test_utils

from prepbuddy.models.audio import RecordingState
from prepbuddy.services.transcription_service import TranscriptionService


@asynccontextmanager
async def transcription_proxy(responder):
    """Run a /transcribe endpoint; responder(body, call_number) returns a web.Response."""
    received = []

    async def handler(request):
        body = await request.json()
        received.append(body)
        return responder(body, len(received))

    app = web.Application()
    app.router.add_post('/transcribe', handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}", received
    finally:
        await server.close()


def wav_frames(body):
    with wave.open(io.BytesIO(base64.b64decode(body["audioBase64"])), 'rb') as wf:
        return wf.readframes(wf.getnframes())


@pytest.fixture
def microphone(mock_pyaudio, sample_audio_chunk):
    """Mocked input stream that delivers a sine buffer every 5ms."""
    def slow_read(*args, **kwargs):
        time.sleep(0.005)
        return sample_audio_chunk

    mock_pyaudio['stream'].read.side_effect = slow_read
    return mock_pyaudio['stream']


@pytest.fixture
def pipeline_config(test_config):
    test_config.set('transcription.backend', 'proxy')
    # One chunk per 1024-sample read, four chunks per batch
    test_config.set('audio.chunk_interval_seconds', 0.064)
    test_config.set('transcription.min_batch_bytes', 8192)
    test_config.set('transcription.retry_delay_seconds', 0.01)
    return test_config


@pytest.mark.integration
class TestRecordingPipeline:
    """End-to-end recording, batching and transcription over HTTP."""

    @pytest.mark.asyncio
    async def test_record_and_transcribe(self, pipeline_config, microphone, event_log):
        def responder(body, call_number):
            return web.json_response({"text": f"part{call_number}"})

        async with transcription_proxy(responder) as (url, received):
            pipeline_config.set('transcription.proxy_url', url)
            session = TranscriptionService(pipeline_config).create_recording_session()
            session.begin_question("q1")

            assert session.start_recording()["success"] is True
            await asyncio.sleep(0.2)
            session.stop_recording()
            await asyncio.wait_for(session.join(), timeout=5.0)
            session.teardown()

        assert received
        assert all(body["mimeType"] == "audio/wav" for body in received)
        uploaded = b"".join(wav_frames(body) for body in received)
        assert len(uploaded) == microphone.read.call_count * 2048

        expected = " ".join(f"part{n}" for n in range(1, len(received) + 1))
        assert session.transcript == expected
        assert event_log.transcripts[-1].transcript == expected
        assert [e.current for e in event_log.states] == [RecordingState.RECORDING, RecordingState.IDLE]

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, pipeline_config, microphone, event_log):
        def responder(body, call_number):
            if call_number == 1:
                return web.json_response({"error": "Transcription failed", "detail": "busy"}, status=500)
            return web.json_response({"text": "ok"})

        async with transcription_proxy(responder) as (url, received):
            pipeline_config.set('transcription.proxy_url', url)
            session = TranscriptionService(pipeline_config).create_recording_session()
            session.begin_question("q1")

            session.start_recording()
            await asyncio.sleep(0.15)
            session.stop_recording()
            await asyncio.wait_for(session.join(), timeout=5.0)
            session.teardown()

        assert len(received) >= 2
        assert received[0]["audioBase64"] == received[1]["audioBase64"]
        assert event_log.warnings == []
        assert session.transcript == " ".join(["ok"] * (len(received) - 1))
        uploaded = b"".join(wav_frames(body) for body in received[1:])
        assert len(uploaded) == microphone.read.call_count * 2048
