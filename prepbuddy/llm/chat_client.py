"""Chat completion client for question generation and answer scoring."""

import asyncio
import logging
import aiohttp
from typing import Dict, List

from ..exceptions import ChatCompletionError

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class ChatCompletionClient:
    """Sends chat messages to the OpenAI chat completions API."""

    def __init__(self,
                 api_key: str,
                 model: str = "gpt-4o-mini",
                 base_url: str = "https://api.openai.com/v1",
                 timeout_seconds: float = 60.0):
        """Initialize chat completion client.

        Args:
            api_key: OpenAI API key
            model: Chat model to use
            base_url: API root, without the trailing endpoint
            timeout_seconds: Total timeout for one request
        """
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"ChatCompletionClient initialized with model: {model}")

    async def complete(self, messages: List[Message], temperature: float = 0.4) -> str:
        """Send messages and return the first choice's content.

        Args:
            messages: Chat messages ({"role": ..., "content": ...})
            temperature: Sampling temperature (0.0 to 1.0)

        Returns:
            Response text, stripped

        Raises:
            ChatCompletionError: If the API call fails or returns no content
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "temperature": temperature,
            "messages": messages,
            "response_format": {"type": "text"},
        }

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(self.url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ChatCompletionError(f"OpenAI request failed: {error_text}",
                                                  status=response.status)

                    result = await response.json()
        except aiohttp.ClientError as e:
            raise ChatCompletionError(f"OpenAI request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ChatCompletionError("OpenAI request timed out") from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise ChatCompletionError("OpenAI response missing content", status=502)
        return content.strip()
