"""
LLM service for OpenAI-compatible completion endpoints.
"""

import openai
import logging

from ..config import LLMConfig
from ..errors import LLMServiceError

logger = logging.getLogger(__name__)

TRUNCATION_NOTE = "\n\n[Response was truncated due to length limits. Consider asking for a shorter response or breaking your question into smaller parts.]"


class LLMService:
    """Sends one assembled prompt, returns one answer."""

    def __init__(self, config: LLMConfig):
        self.config = config
        self.client = openai.OpenAI(
            api_key=config.api_key,
            base_url=config.base_url
        )

    def complete(self, prompt: str) -> str:
        """Run a single-turn completion and return the answer text."""
        kwargs = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
        }

        if self.config.model.startswith("gpt-5"):
            kwargs["max_completion_tokens"] = self.config.max_tokens
        else:
            kwargs["max_tokens"] = self.config.max_tokens
            kwargs["temperature"] = self.config.temperature

        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            logger.error(f"LLM request failed: {e}")
            raise LLMServiceError(f"LLM request failed: {e}") from e

        if not response.choices:
            raise LLMServiceError("Unexpected LLM response format: no choices")

        choice = response.choices[0]
        content = (choice.message.content or "") if choice.message else ""

        if choice.finish_reason == "length" and content.strip():
            # Keep what we got and say so
            if not content.rstrip().endswith(('.', '!', '?', ':', ';')):
                content = content.rstrip() + "..."
            content += TRUNCATION_NOTE

        if not content.strip():
            raise LLMServiceError(f"Empty LLM response (finish_reason={choice.finish_reason})")

        if response.usage:
            logger.debug(
                f"LLM usage: prompt={response.usage.prompt_tokens} completion={response.usage.completion_tokens}"
            )

        return content
