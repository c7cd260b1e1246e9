"""Unit tests for SessionStore and SessionManager."""

import json
from pathlib import Path

import pytest

from prepbuddy.models.interview import (
    ExperienceLevel,
    Feedback,
    QAResult,
    Question,
    SessionRecord,
    SessionType,
    UserProfile,
)
from prepbuddy.services.session_manager import SessionManager, average_score
from prepbuddy.storage.session_store import SessionStore


@pytest.fixture
def profile():
    return UserProfile("data science", ExperienceLevel.MID, SessionType.MIXED)


def make_result(question_id, score):
    question = Question(
        id=question_id,
        text=f"Question {question_id}?",
        domain="data science",
        experience_level=ExperienceLevel.MID,
        session_type=SessionType.MIXED,
        asked_at=1700000000000,
    )
    feedback = Feedback(score=score, strengths=["Good"], improvements=["More detail"], model_answer="Answer")
    return QAResult(question=question, answer_text="My answer", feedback=feedback)


@pytest.mark.unit
class TestSessionStore:
    """Test cases for SessionStore class."""

    def test_initialization(self, temp_data_dir):
        """Test SessionStore initialization."""
        store = SessionStore(temp_data_dir)

        assert store.data_dir == Path(temp_data_dir)
        assert store.sessions_file == Path(temp_data_dir) / "sessions.json"
        assert store.logs_dir.exists()

    def test_load_without_file(self, temp_data_dir):
        assert SessionStore(temp_data_dir).load_sessions() == []

    def test_create_session_is_newest_first(self, temp_data_dir, profile):
        store = SessionStore(temp_data_dir)

        first = store.create_session(profile)
        second = store.create_session(profile)

        sessions = store.load_sessions()
        assert [s.id for s in sessions] == [second.id, first.id]
        assert store.latest_session().id == second.id
        assert store.get_session(first.id).user_profile == profile

    def test_append_result(self, temp_data_dir, profile):
        store = SessionStore(temp_data_dir)
        session = store.create_session(profile)

        updated = store.append_result(session.id, make_result("q1", 8))

        assert len(updated.results) == 1
        assert updated.updated_at >= session.updated_at
        reloaded = store.get_session(session.id)
        assert reloaded.results[0].feedback.score == 8
        assert reloaded.previous_questions[0].id == "q1"

    def test_append_result_unknown_session(self, temp_data_dir):
        store = SessionStore(temp_data_dir)
        with pytest.raises(KeyError):
            store.append_result("missing", make_result("q1", 5))

    def test_file_uses_camel_case_layout(self, temp_data_dir, profile):
        store = SessionStore(temp_data_dir)
        session = store.create_session(profile)
        store.append_result(session.id, make_result("q1", 6))

        with open(store.sessions_file, 'r', encoding='utf-8') as f:
            data = json.load(f)

        record = data[0]
        assert record["userProfile"]["experienceLevel"] == "mid"
        assert "startedAt" in record and "updatedAt" in record
        assert record["results"][0]["answerText"] == "My answer"
        assert record["results"][0]["feedback"]["modelAnswer"] == "Answer"
        assert record["results"][0]["question"]["askedAt"] == 1700000000000

    def test_corrupt_file_loads_empty(self, temp_data_dir):
        store = SessionStore(temp_data_dir)
        store.sessions_file.write_text("{not json", encoding='utf-8')

        assert store.load_sessions() == []

    def test_non_list_file_loads_empty(self, temp_data_dir):
        store = SessionStore(temp_data_dir)
        store.sessions_file.write_text('{"id": "x"}', encoding='utf-8')

        assert store.load_sessions() == []

    def test_malformed_records_skipped(self, temp_data_dir, profile):
        store = SessionStore(temp_data_dir)
        good = store.create_session(profile)
        data = json.loads(store.sessions_file.read_text(encoding='utf-8'))
        data.append({"id": "broken"})
        store.sessions_file.write_text(json.dumps(data), encoding='utf-8')

        assert [s.id for s in store.load_sessions()] == [good.id]


@pytest.mark.unit
class TestSessionManager:

    def test_save_result_and_average(self, test_config, profile):
        manager = SessionManager(test_config)
        session = manager.create_session(profile)

        manager.save_result(session.id, make_result("q1", 7).question, "answer one",
                            make_result("q1", 7).feedback)
        updated = manager.save_result(session.id, make_result("q2", 8).question, "answer two",
                                      make_result("q2", 8).feedback)

        assert len(updated.results) == 2
        assert average_score(updated) == 7.5
        assert manager.list_sessions()[0].id == session.id
        assert manager.get_session(session.id).results[1].answer_text == "answer two"

    def test_average_score_empty(self, profile):
        assert average_score(SessionRecord(id="s", user_profile=profile)) is None

    def test_average_score_rounds(self, profile):
        session = SessionRecord(id="s", user_profile=profile,
                                results=[make_result("a", 7), make_result("b", 8), make_result("c", 8)])
        assert average_score(session) == 7.7
