"""Services layer for PrepBuddy application logic."""

from .interview_service import InterviewService, parse_feedback_response
from .recording_session import RecordingSession
from .session_manager import SessionManager, average_score
from .transcription_service import TranscriptionService

__all__ = [
    "InterviewService",
    "RecordingSession",
    "SessionManager",
    "TranscriptionService",
    "average_score",
    "parse_feedback_response",
]
