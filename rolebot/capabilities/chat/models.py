from typing import Optional

from pydantic import BaseModel, Field

from .prompts import DEFAULT_SYSTEM_PROMPT

DEFAULT_MODEL_NAME = "gpt-4o-mini"
DEFAULT_CHAT_TIMEOUT = 60.0


class ChatSettings(BaseModel):
    base_url: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    api_key: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, ge=1)
    timeout_seconds: float = Field(default=DEFAULT_CHAT_TIMEOUT, gt=0)
    max_history_messages: int = Field(default=6, ge=0)
    enable_context_memory: bool = True
