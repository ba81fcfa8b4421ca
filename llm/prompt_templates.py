"""
Prompt Templates for the order support chatbot.

Manages policies, fixed replies and heuristic fallback templates.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional


class PromptType(Enum):
    """Types of prompts."""
    SUPPORT = "support"
    PROACTIVE = "proactive"


class PromptTemplates:
    """
    Manages prompt templates for the chatbot.

    Support replies lead with empathy and stay short; proactive prompts
    are at most two sentences.
    """

    SYSTEM_PROMPTS = {
        PromptType.SUPPORT: " ".join([
            "You are a compassionate customer support assistant.",
            "Tone: very warm, human, and reassuring. Lead with empathy in the first sentence.",
            "Acknowledge feelings explicitly: e.g., \"I completely understand how frustrating this is\" "
            "or \"I'm really sorry for the inconvenience\".",
            "Keep responses short: 1-3 short sentences max.",
            "Focus on next steps or concrete info. Avoid blame. Never overpromise.",
            "If data is missing or sensitive, offer a safe next step or escalate politely.",
        ]),
        PromptType.PROACTIVE: (
            "Write a very short, warm, proactive message (<=2 sentences) "
            "that reassures and guides next step."
        ),
    }

    HANDOFF_REPLY = "Thanks for reaching out. I am escalating this to a human agent for secure assistance."
    ESCALATION_NOTICE = "I have escalated your request to a human agent. We will follow up shortly."
    NO_ORDER_CONTEXT = "No order context."

    # Canned texts some gateways return instead of failing outright
    FAILURE_SENTINELS = (
        "Sorry, our AI assistant is temporarily unavailable.",
        "Sorry, I could not generate a response at the moment.",
    )

    FALLBACK_WITH_ORDER = (
        "I completely understand how important this is. Order {order_id} is {status}{eta}. "
        "I'm here to help with anything else you need.{recommendations}"
    )
    FALLBACK_WITHOUT_ORDER = (
        "I'm really sorry for the hiccup. If you share your Order ID or what you need, "
        "I'll jump on it right away."
    )

    RECENT_ORDERS = "I found your recent orders:\n{listing}\n\nPlease reply with the Order ID you want me to check."

    PROACTIVE_REQUEST = (
        "Generate a short, friendly proactive message for a customer showing this behavioral context: {summary}"
    )
    PROACTIVE_GREETING = (
        "I completely understand it can be hard to choose. "
        "Would you like help finding the right item or placing an order?"
    )
    PROACTIVE_FALLBACKS = {
        "Anxious Browser": (
            "It looks like you're weighing a few options, and that's completely fine. "
            "Want me to compare them for you or check delivery times?"
        ),
        "Hesitant Buyer": (
            "Thanks for taking a good look around. "
            "If anything is holding you back, I'm happy to answer questions on sizing, shipping or returns."
        ),
    }

    @classmethod
    def get_system_prompt(cls, prompt_type: PromptType = PromptType.SUPPORT) -> str:
        return cls.SYSTEM_PROMPTS[prompt_type]

    @classmethod
    def is_failure_text(cls, text: Optional[str]) -> bool:
        """True for empty output or a recognized provider failure sentinel."""
        if not text or not text.strip():
            return True
        return any(sentinel in text for sentinel in cls.FAILURE_SENTINELS)

    @classmethod
    def build_support_context(
        cls,
        order_context: Optional[Dict[str, Any]],
        faq_context: Optional[str],
        recommendations_text: str = "",
    ) -> str:
        """
        Assemble the generation context.

        Args:
            order_context: Resolved order, if any
            faq_context: Rendered FAQ match, if any
            recommendations_text: Rendered upsell block

        Returns:
            Context string passed alongside the support policy
        """
        parts: List[str] = []
        if order_context:
            parts.append(f"Order: {json.dumps(order_context, default=str)}")
        if faq_context:
            parts.append(faq_context)
        return ("\n\n".join(parts) or cls.NO_ORDER_CONTEXT) + recommendations_text

    @classmethod
    def heuristic_reply(cls, order_context: Optional[Dict[str, Any]], recommendations_text: str = "") -> str:
        if not order_context:
            return cls.FALLBACK_WITHOUT_ORDER
        eta = order_context.get("delivery_eta")
        return cls.FALLBACK_WITH_ORDER.format(
            order_id=order_context.get("id"),
            status=order_context.get("status") or "processing",
            eta=f" with an estimated delivery on {eta}" if eta else "",
            recommendations=recommendations_text,
        )

    @classmethod
    def recent_orders_reply(cls, orders: List[Dict[str, Any]]) -> str:
        lines = []
        for i, order in enumerate(orders, start=1):
            eta = order.get("delivery_eta")
            lines.append(f"{i}. {order['id']} - {order['status']}" + (f" (ETA: {eta})" if eta else ""))
        return cls.RECENT_ORDERS.format(listing="\n".join(lines))

    @classmethod
    def proactive_request(cls, summary: Dict[str, Any]) -> str:
        return cls.PROACTIVE_REQUEST.format(summary=json.dumps(summary))

    @classmethod
    def proactive_fallback(cls, classification: str) -> str:
        return cls.PROACTIVE_FALLBACKS.get(classification, cls.PROACTIVE_GREETING)
