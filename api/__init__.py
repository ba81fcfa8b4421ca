"""
API Module for the order support chatbot.

FastAPI application with routes for:
- Chat turns, history and escalation
- Behaviour events and proactive prompts
- Admin escalation queue
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
