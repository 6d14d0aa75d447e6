"""
Responder capability.

Answers conversational messages using intent and tone keyword tables and
response templates.
"""

from .capability import ResponderCapability, classify_intent
from .models import ResponderSettings

__all__ = [
    "ResponderCapability",
    "ResponderSettings",
    "classify_intent",
]
