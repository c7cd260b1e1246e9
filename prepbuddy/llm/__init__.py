"""Language-model client and prompts."""

from .chat_client import ChatCompletionClient
from .prompts import DOMAIN_GUIDES, build_evaluation_prompt, build_question_prompt

__all__ = [
    "ChatCompletionClient",
    "DOMAIN_GUIDES",
    "build_evaluation_prompt",
    "build_question_prompt",
]
