"""
Behaviour Module for the order support chatbot.

This module watches passive storefront behaviour:
- Append-only event log
- Time-windowed rule classification
- Proactive prompt generation
- Prompt engagement tracking
"""

from .classifier import BehaviorClassifier, BehaviorSummary, Classification, EventType
from .event_log import BehaviorEventLog
from .prompt_generator import ProactivePromptGenerator, PromptDecision
from .engagement import EngagementTracker

__all__ = [
    "BehaviorClassifier",
    "BehaviorSummary",
    "Classification",
    "EventType",
    "BehaviorEventLog",
    "ProactivePromptGenerator",
    "PromptDecision",
    "EngagementTracker",
]
