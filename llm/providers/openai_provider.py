"""
OpenAI-compatible LLM Provider.

Works against OpenAI or any compatible gateway (Azure, GitHub Models)
through `base_url`.
"""

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from .base import GenerationError, build_system_prompt

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    OpenAI chat-completions provider.

    Every call carries an explicit request timeout and no SDK retries, so
    a slow upstream degrades to the caller's fallback instead of blocking.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_id: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        max_tokens: int = 300,
        temperature: float = 0.3,
        timeout: float = 10.0,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model_id: Model ID
            base_url: Optional compatible endpoint
            max_tokens: Maximum tokens
            temperature: Generation temperature
            timeout: Per-request timeout in seconds
        """
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"OpenAI provider initialized: {model_id}")

    async def generate(self, system_policy: str, context: str, user_message: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model_id,
                messages=[
                    {"role": "system", "content": build_system_prompt(system_policy, context)},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI generation failed: {e}")
            raise GenerationError(str(e)) from e

        if not response.choices:
            raise GenerationError("OpenAI returned no choices")
        return (response.choices[0].message.content or "").strip()
