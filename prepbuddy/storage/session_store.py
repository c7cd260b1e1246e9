"""JSON file storage for practice sessions."""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from ..models.interview import QAResult, SessionRecord, UserProfile, now_ms


logger = logging.getLogger(__name__)

SESSIONS_FILENAME = "sessions.json"


class SessionStore:
    """Stores all practice sessions, newest first, in one JSON file."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize session store with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_file = self.data_dir / SESSIONS_FILENAME
        self.logs_dir = self.data_dir / "logs"

        self._ensure_directories()

        logger.info(f"SessionStore initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def load_sessions(self) -> List[SessionRecord]:
        """Load all sessions. Missing or unreadable files load as empty.

        Returns:
            Sessions, newest first
        """
        if not self.sessions_file.exists():
            return []

        try:
            with open(self.sessions_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading sessions file {self.sessions_file}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Sessions file {self.sessions_file} does not hold a list, ignoring")
            return []

        sessions = []
        for item in data:
            try:
                sessions.append(SessionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed session record: {e}")
        return sessions

    def save_sessions(self, sessions: List[SessionRecord]) -> str:
        """Write all sessions atomically.

        Returns:
            Path to the sessions file
        """
        tmp_file = self.sessions_file.with_suffix(".json.tmp")
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump([session.to_dict() for session in sessions], f, indent=2)
        os.replace(tmp_file, self.sessions_file)

        logger.debug(f"Saved {len(sessions)} sessions to {self.sessions_file}")
        return str(self.sessions_file)

    def create_session(self, profile: UserProfile) -> SessionRecord:
        """Create and persist a new session at the front of the list."""
        session = SessionRecord(id=str(uuid.uuid4()), user_profile=profile)
        sessions = self.load_sessions()
        sessions.insert(0, session)
        self.save_sessions(sessions)

        logger.info(f"Created session {session.id} ({profile.domain}, "
                    f"{profile.experience_level.value}, {profile.session_type.value})")
        return session

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        for session in self.load_sessions():
            if session.id == session_id:
                return session
        return None

    def latest_session(self) -> Optional[SessionRecord]:
        sessions = self.load_sessions()
        return sessions[0] if sessions else None

    def append_result(self, session_id: str, result: QAResult) -> SessionRecord:
        """Add a scored answer to a session.

        Raises:
            KeyError: if the session does not exist
        """
        sessions = self.load_sessions()
        for session in sessions:
            if session.id == session_id:
                session.results.append(result)
                session.updated_at = now_ms()
                self.save_sessions(sessions)
                logger.info(f"Saved result for question {result.question.id} in session {session_id}")
                return session

        raise KeyError(f"Session not found: {session_id}")
