"""
Response templates and keyword tables for the responder capability.
"""

import re

# Checked in order; the first matching intent wins
INTENT_PATTERNS = [
    ("greeting", re.compile(r"\b(hello|hi|hey|greet\w*)\b")),
    ("farewell", re.compile(r"\b(bye|goodbye|exit)\b")),
    ("help_request", re.compile(r"\b(help|assist\w*|support)\b")),
    ("information_request", re.compile(r"\b(what|define|explain\w*)\b")),
    ("instruction_request", re.compile(r"\b(how|steps?|guide)\b")),
    ("gratitude", re.compile(r"\b(thank\w*|appreciate\w*)\b")),
]

TONE_PATTERNS = [
    ("urgent", re.compile(r"\b(urgent|immediate\w*|asap)\b")),
    ("polite", re.compile(r"\b(please|thank\w*|appreciate\w*)\b")),
    ("confused", re.compile(r"\b(confused|don't understand|unclear)\b")),
]

QUESTION_INDICATORS = (
    "?",
    "what",
    "how",
    "when",
    "where",
    "why",
    "can you",
    "could you",
    "please",
)

RESPONSE_TEMPLATES = {
    "greeting": [
        "Hello! Great to see you here. How can I assist you today?",
        "Hi there! I'm ready to help. What would you like to work on?",
        "Welcome! I'm here to support you. What's on your mind?",
    ],
    "help_request": [
        "I'm here to help! Could you share more details about what you need?",
        "Absolutely! I'd love to assist. What specific area would you like help with?",
        "Of course! Let me know what you're working on and I'll do my best to help.",
    ],
    "information_request": [
        "I'd be happy to provide that information. Could you be more specific?",
        "Great question! Let me help you understand that better.",
        "I can definitely explain that. What aspect would you like to focus on?",
    ],
}

FALLBACK_RESPONSES = {
    "greeting": "Hello! How can I help you today?",
    "farewell": "Goodbye! Feel free to reach out if you need anything else.",
    "help_request": (
        "I'm here to help! Could you provide more details about what you need assistance with?"
    ),
    "information_request": (
        "I'd be happy to provide information. "
        "Could you be more specific about what you'd like to know?"
    ),
    "instruction_request": "I can guide you through that process. Let me break it down step by step.",
    "gratitude": "You're very welcome! I'm glad I could help.",
    "general_inquiry": (
        "I understand you're looking for assistance. "
        "Could you provide more details so I can better help you?"
    ),
}

FOLLOWUP_SUGGESTIONS = {
    "greeting": [
        "What can I help you with?",
        "Tell me about your project",
        "Any specific questions?",
    ],
    "information_request": [
        "Would you like more details?",
        "Any other questions?",
        "Need examples?",
    ],
    "instruction_request": [
        "Need clarification on any step?",
        "Ready for the next part?",
        "Any questions so far?",
    ],
    "help_request": [
        "What else can I help with?",
        "Need additional resources?",
        "Want to explore alternatives?",
    ],
}

DEFAULT_FOLLOWUPS = [
    "Anything else I can help with?",
    "Any follow-up questions?",
    "Need more information?",
]

FORMAL_REPLACEMENTS = {
    "I'm": "I am",
    "you're": "you are",
    "can't": "cannot",
    "won't": "will not",
}

CASUAL_REPLACEMENTS = {
    "How can I help you": "What can I do for you",
    "I would be happy to": "I'd love to",
    "Please provide": "Just let me know",
}
