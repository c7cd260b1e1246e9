"""Transcription module for PrepBuddy."""

from .base import AbstractTranscriptionBackend, clean_mime_type, encode_batch
from .accumulator import TranscriptAccumulator
from .proxy_backend import ProxyTranscriptionBackend
from .publisher import SessionEventPublisher
from .retry import RetryController
from .whisper_backend import OpenAIWhisperBackend

__all__ = [
    "AbstractTranscriptionBackend",
    "OpenAIWhisperBackend",
    "ProxyTranscriptionBackend",
    "RetryController",
    "SessionEventPublisher",
    "TranscriptAccumulator",
    "clean_mime_type",
    "encode_batch",
]
