"""
Generative reply provider protocol.

Abstracts the language model so the orchestrator and the proactive
prompt generator work with any backend, including fakes in tests.
"""

from typing import Protocol, runtime_checkable


class GenerationError(Exception):
    """Raised when a provider cannot produce a reply."""


def build_system_prompt(system_policy: str, context: str) -> str:
    return f"{system_policy}\nContext: {context}"


@runtime_checkable
class ReplyProvider(Protocol):
    """Protocol for generative reply backends."""

    async def generate(self, system_policy: str, context: str, user_message: str) -> str:
        """Return generated text or raise GenerationError."""
        ...


class UnavailableProvider:
    """Stand-in used when no provider credentials are configured."""

    def __init__(self, reason: str = "no LLM provider configured"):
        self.reason = reason

    async def generate(self, system_policy: str, context: str, user_message: str) -> str:
        raise GenerationError(self.reason)
