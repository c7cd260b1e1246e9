"""Prompt templates for interview questions and answer evaluation."""

from typing import List, Sequence

from ..models.interview import Question, SessionType, UserProfile
from .chat_client import Message

DOMAIN_GUIDES = {
    "software engineering": (
        "Prioritize algorithms, systems thinking, code quality, debugging approach, "
        "trade-offs, and clear communication of complexity."
    ),
    "data science": (
        "Emphasize statistical rigor, experiment design, data storytelling, "
        "and model evaluation clarity."
    ),
    "aerospace": (
        "Highlight safety, reliability, systems integration, verification/validation, "
        "and adherence to standards."
    ),
    "finance": (
        "Stress risk controls, quantitative rigor, regulatory awareness, "
        "and precision with data/figures."
    ),
}

QUESTION_SYSTEM_PROMPT = (
    "You generate realistic interview questions. Keep them concise, professional, "
    "and tuned to the seniority and domain. Do not include explanations, numbering, "
    "or follow-ups."
)

EVALUATION_SYSTEM_PROMPT = (
    "You are a meticulous interviewer evaluating answers. Always respond ONLY with strict JSON: "
    '{"score":number,"strengths":[string],"improvements":[string],"modelAnswer":string}. '
    "No markdown."
)


def domain_guide(domain: str) -> str:
    return DOMAIN_GUIDES.get(domain.strip().lower(), "")


def build_question_prompt(profile: UserProfile, previous_questions: Sequence[Question]) -> List[Message]:
    """Messages asking for one new question that avoids the ones already asked."""
    previous = "\n".join(f"{idx}. {q.text}" for idx, q in enumerate(previous_questions, 1))
    history = f"Avoid repeating these asked questions:\n{previous}\n" if previous else ""
    tone = "behavioral interview" if profile.session_type == SessionType.BEHAVIORAL else "technical interview"
    hint = domain_guide(profile.domain)

    lines = [
        f"You are an expert interviewer crafting a single {tone} question.",
        f"Domain: {profile.domain}.",
        f"Seniority: {profile.experience_level.value}.",
        f"Session type: {profile.session_type.value}.",
    ]
    user = "\n".join(lines) + "\n" + history
    if hint:
        user += f"Domain guidance: {hint}\n"
    user += "Respond with one clear question sentence only."

    return [
        {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def build_evaluation_prompt(question: Question, answer_text: str, profile: UserProfile) -> List[Message]:
    """Messages asking for a JSON score of one answer."""
    rubric = (
        "Score from 1-10 weighting: structure/clarity, correctness for technical domains, "
        "specificity and impact, domain-appropriate expectations for "
        f"{profile.experience_level.value}, conciseness without missing key info."
    )
    hint = domain_guide(question.domain)

    lines = [
        f"Question: {question.text}",
        f"Domain: {question.domain}",
        f"Seniority: {question.experience_level.value}",
        f"Session type: {question.session_type.value}",
        f"Target company: {profile.target_company or 'N/A'}",
    ]
    if hint:
        lines.append(f"Domain guidance: {hint}")
    lines.extend([
        f"Answer: {answer_text}",
        rubric,
        "Return JSON only.",
    ])

    return [
        {"role": "system", "content": EVALUATION_SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(lines)},
    ]
