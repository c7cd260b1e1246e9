"""Session manager for practice sessions and their scored answers."""

import logging
from typing import Optional

from ..config import PrepBuddyConfig
from ..models.interview import Feedback, QAResult, Question, SessionRecord, UserProfile
from ..storage.session_store import SessionStore

logger = logging.getLogger(__name__)


def average_score(session: SessionRecord) -> Optional[float]:
    """Mean score over all answered questions, rounded to one decimal."""
    if not session.results:
        return None
    total = sum(result.feedback.score for result in session.results)
    return round(total / len(session.results), 1)


class SessionManager:
    """Creates sessions and records answers through the session store."""

    def __init__(self, config: PrepBuddyConfig):
        """Initialize session manager.

        Args:
            config: Application configuration
        """
        self.config = config
        self.store = SessionStore(config.get_data_directory())
        logger.info(f"SessionManager initialized with data dir: {config.get_data_directory()}")

    def create_session(self, profile: UserProfile) -> SessionRecord:
        return self.store.create_session(profile)

    def save_result(self, session_id: str, question: Question, answer_text: str,
                    feedback: Feedback) -> SessionRecord:
        result = QAResult(question=question, answer_text=answer_text, feedback=feedback)
        return self.store.append_result(session_id, result)

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return self.store.get_session(session_id)

    def list_sessions(self):
        return self.store.load_sessions()
