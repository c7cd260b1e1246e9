"""Event models published on the pub/sub channels."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .audio import RecordingState


@dataclass
class TranscriptEvent:
    """The running transcript changed."""
    question_id: Optional[str]
    transcript: str
    appended_text: str
    batch_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class WarningEvent:
    """User-visible warning: a dropped batch or a device failure."""
    kind: str  # "transcription_failed", "device_unavailable", "unexpected_error"
    message: str
    question_id: Optional[str] = None
    status: Optional[int] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class RecordingStateEvent:
    """Recording state machine transition."""
    previous: RecordingState
    current: RecordingState
    question_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
