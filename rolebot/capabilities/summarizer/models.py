from typing import List, Literal

from pydantic import BaseModel, field_validator

SUMMARY_WORD_LIMITS = {
    "short": 75,
    "medium": 150,
    "long": 300,
}


class SummarizerSettings(BaseModel):
    summary_length: Literal["short", "medium", "long"] = "medium"
    focus_keywords: List[str] = []
    output_format: Literal["text", "bullet_points", "structured"] = "text"

    @field_validator("summary_length", "output_format", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.lower() if isinstance(value, str) else value

    @property
    def max_summary_words(self) -> int:
        return SUMMARY_WORD_LIMITS[self.summary_length]
