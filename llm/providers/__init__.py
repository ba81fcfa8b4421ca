"""
LLM Provider implementations.
"""

from .base import GenerationError, ReplyProvider, UnavailableProvider
from .bedrock import BedrockProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "BedrockProvider",
    "OpenAIProvider",
    "GenerationError",
    "ReplyProvider",
    "UnavailableProvider",
]
