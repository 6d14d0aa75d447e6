"""
Capabilities system for pluggable bot roles.

This package provides a plugin-like architecture for request handling. Each
capability is a self-contained module with its own settings model; the
registry indexes capabilities by id and tag and answers "who can handle this
request" in priority order.
"""

from .base import DEFAULT_PRIORITY, Capability, CapabilitySettings, normalize_tags
from .chat import ChatCapability, ChatSettings, build_chat_messages
from .echo import EchoCapability, EchoSettings
from .registry import (
    CapabilityFactory,
    CapabilityRegistry,
    create_default_registry,
    default_factories,
)
from .responder import ResponderCapability, ResponderSettings, classify_intent
from .summarizer import SummarizerCapability, SummarizerSettings

__all__ = [
    # Base
    "Capability",
    "CapabilitySettings",
    "DEFAULT_PRIORITY",
    "normalize_tags",
    # Registry
    "CapabilityRegistry",
    "CapabilityFactory",
    "create_default_registry",
    "default_factories",
    # Summarizer
    "SummarizerCapability",
    "SummarizerSettings",
    # Responder
    "ResponderCapability",
    "ResponderSettings",
    "classify_intent",
    # Echo
    "EchoCapability",
    "EchoSettings",
    # Chat
    "ChatCapability",
    "ChatSettings",
    "build_chat_messages",
]
