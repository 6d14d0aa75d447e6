"""
Extractive summarization capability.

Scores sentences by position, length and focus keywords, keeps the best ones in
their original order, and formats the result as text, bullet points or a short
report.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ...models import RequestContext, Response, utc_now
from ..base import Capability
from ..history import get_history
from .models import SummarizerSettings

logger = logging.getLogger(__name__)

TRIGGER_WORDS = ("summarize", "summary", "tldr", "brief", "overview", "key points")
AUTO_SUMMARIZE_LENGTH = 500
MIN_SUMMARY_SENTENCES = 3

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


def truncate_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


class SummarizerCapability(Capability):
    """
    Summarizes the input, the conversation history, or session content.

    Handles requests that ask for a summary, inputs longer than 500 characters,
    and conversations whose state carries a ``request_summary`` flag.
    """

    default_id = "summarizer"
    default_tags = ("summarization", "content", "analysis", "text-processing")
    default_priority = 70

    def __init__(self, capability_id: Optional[str] = None):
        super().__init__(capability_id)
        self.settings = SummarizerSettings()

    @property
    def display_name(self) -> str:
        return "Content Summarizer"

    async def on_initialize(self, config: Dict[str, Any]) -> None:
        self.settings = self.load_settings(SummarizerSettings, config)
        logger.info(
            f"Summarizer configured: length={self.settings.summary_length}, "
            f"format={self.settings.output_format}"
        )

    def can_handle(self, context: RequestContext) -> bool:
        if not context.input:
            return False

        return (
            self.contains_keywords(context, *TRIGGER_WORDS)
            or len(context.input) > AUTO_SUMMARIZE_LENGTH
            or "request_summary" in context.state
        )

    async def on_execute(self, context: RequestContext) -> Response:
        content = self._extract_content(context)

        if not content:
            return Response(content="No content found to summarize.", is_complete=False)

        summary = self.summarize(content)

        response = Response(
            content=self._format_summary(summary, context),
            response_type="summary",
            updated_state={
                "last_summary": summary,
                "summary_timestamp": utc_now().isoformat(),
                "summarized_length": len(content),
            },
        )

        response.metadata["original_length"] = len(content)
        response.metadata["summary_length"] = len(summary)
        response.metadata["compression_ratio"] = len(summary) / len(content)
        response.metadata["focus_keywords"] = list(self.settings.focus_keywords)

        return response

    def summarize(self, content: str) -> str:
        """
        Build an extractive summary of ``content``.

        Keeps the top third of the sentences (at least three), in their
        original order, truncated to the configured word limit.
        """
        sentences = split_sentences(content)
        keep = max(MIN_SUMMARY_SENTENCES, len(sentences) // 3)

        ranked = sorted(
            range(len(sentences)),
            key=lambda idx: self._score_sentence(sentences[idx], idx, len(sentences)),
            reverse=True,
        )
        selected = sorted(ranked[:keep])

        summary = " ".join(sentences[idx] for idx in selected)
        return truncate_words(summary, self.settings.max_summary_words)

    def _extract_content(self, context: RequestContext) -> str:
        content = context.input

        history = get_history(context.state)
        if history:
            content = "\n".join(history)

        session_content = context.session_data.get("content_to_summarize")
        if session_content:
            content = str(session_content)

        return content

    def _score_sentence(self, sentence: str, position: int, total: int) -> float:
        score = 0.0

        # First and last sentences tend to carry the point
        if position == 0 or position == total - 1:
            score += 2

        if 10 <= len(sentence.split()) <= 30:
            score += 1

        lowered = sentence.lower()
        for keyword in self.settings.focus_keywords:
            if keyword.lower() in lowered:
                score += 3

        return score

    def _format_summary(self, summary: str, context: RequestContext) -> str:
        if self.settings.output_format == "bullet_points":
            bullets = "\n".join(f"• {sentence}" for sentence in split_sentences(summary))
            return f"**Key Points:**\n\n{bullets}"

        if self.settings.output_format == "structured":
            return (
                "**Summary Report**\n\n"
                f"**Generated:** {utc_now():%Y-%m-%d %H:%M} UTC\n"
                f"**Length:** {self.settings.summary_length}\n"
                "**Format:** Structured\n\n"
                f"**Content:**\n{summary}\n\n"
                f"**Context:** {context.conversation_id or 'N/A'}"
            )

        return f"**Summary:**\n\n{summary}"
