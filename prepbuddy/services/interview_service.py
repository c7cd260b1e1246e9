"""Question generation and answer evaluation."""

import json
import logging
import re
import uuid
from typing import Sequence

from pydantic import ValidationError

from ..exceptions import FeedbackParseError
from ..llm.chat_client import ChatCompletionClient
from ..llm.prompts import build_evaluation_prompt, build_question_prompt
from ..models.interview import Feedback, Question, UserProfile, now_ms

logger = logging.getLogger(__name__)

QUESTION_TEMPERATURE = 0.7
EVALUATION_TEMPERATURE = 0.2

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_FENCE_LANG = re.compile(r"```json", re.IGNORECASE)


def parse_feedback_response(raw: str) -> Feedback:
    """Extract and validate feedback JSON from a model response.

    Markdown code fences are stripped and the outermost {...} is parsed.

    Raises:
        FeedbackParseError: if no valid feedback object can be read
    """
    cleaned = _FENCE_LANG.sub("```", raw or "").replace("```", "").strip()
    match = _JSON_OBJECT.search(cleaned)
    target = match.group(0) if match else cleaned

    try:
        data = json.loads(target)
    except json.JSONDecodeError as e:
        raise FeedbackParseError(f"Failed to parse evaluation JSON: {e}") from e

    if not isinstance(data, dict):
        raise FeedbackParseError("Failed to parse evaluation JSON: Invalid feedback structure")

    try:
        return Feedback.model_validate(data)
    except ValidationError as e:
        raise FeedbackParseError(f"Failed to parse evaluation JSON: Invalid feedback structure ({e.error_count()} errors)") from e


class InterviewService:
    """Generates questions and scores answers through a chat model."""

    def __init__(self, client: ChatCompletionClient):
        self.client = client

    async def generate_question(self, profile: UserProfile,
                                previous_questions: Sequence[Question] = ()) -> Question:
        """Ask the model for one new question for this profile."""
        messages = build_question_prompt(profile, previous_questions)
        text = await self.client.complete(messages, temperature=QUESTION_TEMPERATURE)
        question = Question(
            id=str(uuid.uuid4()),
            text=text,
            domain=profile.domain,
            experience_level=profile.experience_level,
            session_type=profile.session_type,
            asked_at=now_ms(),
        )
        logger.info(f"Generated question {question.id}: '{text[:60]}'")
        return question

    async def evaluate_answer(self, question: Question, answer_text: str,
                              profile: UserProfile) -> Feedback:
        """Score an answer.

        Raises:
            ValueError: if the answer is blank
            ChatCompletionError: if the model call fails
            FeedbackParseError: if the model does not return valid feedback
        """
        if not answer_text or not answer_text.strip():
            raise ValueError("Answer text is empty")

        messages = build_evaluation_prompt(question, answer_text, profile)
        response = await self.client.complete(messages, temperature=EVALUATION_TEMPERATURE)
        feedback = parse_feedback_response(response)
        logger.info(f"Evaluated answer to {question.id}: score {feedback.score}")
        return feedback
