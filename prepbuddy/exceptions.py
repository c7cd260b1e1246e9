"""Exceptions raised by the PrepBuddy pipeline and services."""

from typing import Optional


class PrepBuddyError(Exception):
    """Base class for PrepBuddy errors."""


class DeviceUnavailable(PrepBuddyError):
    """The capture device could not be acquired (missing microphone, no permission)."""


class MalformedBatch(PrepBuddyError):
    """A transcription batch violated the queue invariants."""


class ApiKeyMissing(PrepBuddyError):
    """No OpenAI API key is configured."""


class TranscriptionError(PrepBuddyError):
    """The transcription service rejected or failed a batch."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.status} {self.message}"


class ChatCompletionError(PrepBuddyError):
    """The chat completion API call failed or returned no content."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.status} {self.message}"


class FeedbackParseError(PrepBuddyError):
    """The evaluation response was not valid feedback JSON."""
