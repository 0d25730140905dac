# portfolio_bot/llm/client.py
import logging
from typing import Dict, List, Optional

from openai import OpenAI

from portfolio_bot.config import (
    LLM_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    get_api_key,
)

logger = logging.getLogger(__name__)


class ChatClient:
    """
    Client for the chat-completion API.

    Talks to Groq through its OpenAI-compatible endpoint, so the
    official OpenAI SDK does the HTTP work.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = LLM_MODEL,
        base_url: str = LLM_BASE_URL,
        temperature: float = LLM_TEMPERATURE,
    ):
        """
        Initialize the completion client.

        Args:
            api_key: Completion API key (default: read from the environment)
            model: Model to use
            base_url: OpenAI-compatible API root
            temperature: Sampling temperature
        """
        api_key = api_key or get_api_key()
        if not api_key:
            raise ValueError(
                "GROQ_API_KEY environment variable not set. "
                "Please set it before running the application."
            )

        self.client = OpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.temperature = temperature

    def generate(self, messages: List[Dict[str, str]]) -> str:
        """
        Generate a reply for a list of chat messages.

        Args:
            messages: ``[{"role": ..., "content": ...}, ...]``

        Returns:
            Generated text response

        Raises:
            RuntimeError: If the API call fails
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(
                "Completion API call failed",
                extra={"model": self.model, "error": str(e)}
            )
            raise RuntimeError(f"Completion API call failed: {e}") from e

        return response.choices[0].message.content or ""
