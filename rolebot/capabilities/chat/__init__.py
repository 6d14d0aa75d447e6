"""
Chat completion capability.

Answers requests through an OpenAI-compatible chat completion endpoint.
"""

from .capability import EMPTY_COMPLETION_MESSAGE, ChatCapability
from .models import ChatSettings
from .prompts import DEFAULT_SYSTEM_PROMPT, build_chat_messages

__all__ = [
    "ChatCapability",
    "ChatSettings",
    "EMPTY_COMPLETION_MESSAGE",
    "DEFAULT_SYSTEM_PROMPT",
    "build_chat_messages",
]
