"""
LLM Orchestration Module for the order support chatbot.

This module handles:
- Reply provider abstraction (OpenAI-compatible, Bedrock)
- Prompt template management
- The chat pipeline with heuristic fallbacks
"""

from .orchestrator import (
    ChatOrchestrator, ChatRequest, ChatResponse, ConversationNotFound, PersistenceError,
)
from .prompt_templates import PromptTemplates, PromptType

__all__ = [
    "ChatOrchestrator",
    "ChatRequest",
    "ChatResponse",
    "ConversationNotFound",
    "PersistenceError",
    "PromptTemplates",
    "PromptType",
]
