"""Publishes recording-session events over pubsub.pub."""

import logging
from pubsub import pub

from ..models.events import RecordingStateEvent, TranscriptEvent, WarningEvent

logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "interview.transcript"
WARNING_TOPIC = "interview.warning"
RECORDING_STATE_TOPIC = "interview.recording_state"


class SessionEventPublisher:
    """Publishes transcript, warning and state events for the UI layer.

    Every message is sent with a single ``event`` keyword argument, so
    listeners are plain ``def listener(event)`` callables. A listener that
    raises is logged and does not reach the recording session.
    """

    def __init__(self,
                 transcript_topic: str = TRANSCRIPT_TOPIC,
                 warning_topic: str = WARNING_TOPIC,
                 state_topic: str = RECORDING_STATE_TOPIC):
        self.transcript_topic = transcript_topic
        self.warning_topic = warning_topic
        self.state_topic = state_topic
        logger.info(f"SessionEventPublisher initialized with topics: "
                    f"{transcript_topic}, {warning_topic}, {state_topic}")

    def publish_transcript(self, event: TranscriptEvent) -> None:
        self._send(self.transcript_topic, event)
        logger.debug(f"Published transcript update ({len(event.transcript)} chars)")

    def publish_warning(self, event: WarningEvent) -> None:
        self._send(self.warning_topic, event)
        logger.debug(f"Published warning: {event.kind}")

    def publish_state(self, event: RecordingStateEvent) -> None:
        self._send(self.state_topic, event)
        logger.debug(f"Published state change: {event.previous.value} -> {event.current.value}")

    def _send(self, topic: str, event) -> None:
        try:
            pub.sendMessage(topic, event=event)
        except Exception as e:
            logger.error(f"Listener for {topic} failed: {e}", exc_info=True)
