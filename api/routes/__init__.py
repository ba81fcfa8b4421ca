"""
API Routes for the order support chatbot.
"""

from . import chat, behavior, admin, storefront

__all__ = ["chat", "behavior", "admin", "storefront"]
