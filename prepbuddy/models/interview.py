"""Interview session data models.

Question, result and session records round-trip to the camelCase JSON layout
used by the session store. Feedback is a pydantic model because it is parsed
straight out of a language-model response and its shape has to be validated.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class SessionType(Enum):
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"
    MIXED = "mixed"
    QUICK_DRILL = "quick_drill"


class ExperienceLevel(Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"


class Feedback(BaseModel):
    """Scored evaluation of one answer."""
    model_config = ConfigDict(populate_by_name=True)

    score: Union[StrictInt, StrictFloat]
    strengths: List[str]
    improvements: List[str]
    model_answer: str = Field(alias="modelAnswer")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class UserProfile:
    """What the candidate is practicing for."""
    domain: str
    experience_level: ExperienceLevel
    session_type: SessionType
    target_company: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "domain": self.domain,
            "experienceLevel": self.experience_level.value,
            "sessionType": self.session_type.value,
        }
        if self.target_company:
            data["targetCompany"] = self.target_company
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            domain=data["domain"],
            experience_level=ExperienceLevel(data["experienceLevel"]),
            session_type=SessionType(data["sessionType"]),
            target_company=data.get("targetCompany"),
        )


@dataclass
class Question:
    """A generated interview question."""
    id: str
    text: str
    domain: str
    experience_level: ExperienceLevel
    session_type: SessionType
    asked_at: int  # epoch milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "domain": self.domain,
            "experienceLevel": self.experience_level.value,
            "sessionType": self.session_type.value,
            "askedAt": self.asked_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        return cls(
            id=data["id"],
            text=data["text"],
            domain=data["domain"],
            experience_level=ExperienceLevel(data["experienceLevel"]),
            session_type=SessionType(data["sessionType"]),
            asked_at=data["askedAt"],
        )


@dataclass
class QAResult:
    """A question, the candidate's answer and its feedback."""
    question: Question
    answer_text: str
    feedback: Feedback

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question": self.question.to_dict(),
            "answerText": self.answer_text,
            "feedback": self.feedback.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QAResult":
        return cls(
            question=Question.from_dict(data["question"]),
            answer_text=data["answerText"],
            feedback=Feedback.model_validate(data["feedback"]),
        )


@dataclass
class SessionRecord:
    """A practice session and all answered questions."""
    id: str
    user_profile: UserProfile
    results: List[QAResult] = field(default_factory=list)
    started_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    @property
    def previous_questions(self) -> List[Question]:
        return [result.question for result in self.results]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userProfile": self.user_profile.to_dict(),
            "results": [result.to_dict() for result in self.results],
            "startedAt": self.started_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        return cls(
            id=data["id"],
            user_profile=UserProfile.from_dict(data["userProfile"]),
            results=[QAResult.from_dict(item) for item in data.get("results", [])],
            started_at=data["startedAt"],
            updated_at=data["updatedAt"],
        )
