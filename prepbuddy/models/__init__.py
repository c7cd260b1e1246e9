"""Data models for the PrepBuddy application."""

from .audio import (
    AudioChunk,
    AudioStats,
    DrainState,
    RecordingState,
    TranscriptionBatch,
    pcm_mime_type,
)
from .events import RecordingStateEvent, TranscriptEvent, WarningEvent
from .interview import (
    ExperienceLevel,
    Feedback,
    QAResult,
    Question,
    SessionRecord,
    SessionType,
    UserProfile,
)

__all__ = [
    "AudioChunk",
    "AudioStats",
    "DrainState",
    "RecordingState",
    "TranscriptionBatch",
    "pcm_mime_type",
    # Events
    "RecordingStateEvent",
    "TranscriptEvent",
    "WarningEvent",
    # Interview models
    "ExperienceLevel",
    "Feedback",
    "QAResult",
    "Question",
    "SessionRecord",
    "SessionType",
    "UserProfile",
]
