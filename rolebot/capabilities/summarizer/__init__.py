"""
Summarization capability.

Produces extractive summaries of long inputs, conversation history, or
session content.
"""

from .capability import SummarizerCapability, split_sentences, truncate_words
from .models import SUMMARY_WORD_LIMITS, SummarizerSettings

__all__ = [
    "SummarizerCapability",
    "SummarizerSettings",
    "SUMMARY_WORD_LIMITS",
    "split_sentences",
    "truncate_words",
]
