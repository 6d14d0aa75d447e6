from typing import List, Literal

from pydantic import BaseModel, Field, field_validator


class ResponderSettings(BaseModel):
    response_style: Literal["formal", "casual", "technical", "friendly"] = "friendly"
    max_response_length: int = Field(default=200, ge=1)
    include_followup: bool = True
    knowledge_domains: List[str] = []
    fallback_enabled: bool = True

    @field_validator("response_style", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.lower() if isinstance(value, str) else value
