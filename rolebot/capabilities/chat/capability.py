"""
Chat completion capability.

Forwards the request to an OpenAI-compatible chat endpoint (OpenAI, vLLM, or
any server speaking the same API) and returns the model's reply.
"""

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from ...errors import ConfigurationError
from ...models import RequestContext, Response
from ..base import Capability
from ..history import HISTORY_KEY, extend_history, get_history
from .models import ChatSettings
from .prompts import build_chat_messages

logger = logging.getLogger(__name__)

EMPTY_COMPLETION_MESSAGE = "The language model returned an empty response."


class ChatCapability(Capability):
    """
    LLM-backed conversational capability.

    The client is created in ``initialize`` from the settings and closed in
    ``dispose``. A pre-built client can be passed to the constructor instead;
    it is then left open on dispose.
    """

    default_id = "chat"
    default_tags = ("ai", "conversation", "llm")
    default_priority = 95

    def __init__(
        self, capability_id: Optional[str] = None, client: Optional[AsyncOpenAI] = None
    ):
        super().__init__(capability_id)
        self.settings = ChatSettings()
        self.client = client
        self._owns_client = client is None

    @property
    def display_name(self) -> str:
        return "AI Chat Assistant"

    async def on_initialize(self, config: Dict[str, Any]) -> None:
        self.settings = self.load_settings(ChatSettings, config)

        if self.client is None:
            # Local OpenAI-compatible servers accept any key
            api_key = self.settings.api_key or ("EMPTY" if self.settings.base_url else None)
            try:
                self.client = AsyncOpenAI(
                    base_url=self.settings.base_url,
                    api_key=api_key,
                    timeout=self.settings.timeout_seconds,
                )
            except OpenAIError as e:
                raise ConfigurationError(
                    f"Could not create chat client for capability '{self.capability_id}': {e}"
                ) from e

        logger.info(
            f"Chat configured: model={self.settings.model_name}, "
            f"server={self.settings.base_url or 'default'}"
        )

    def can_handle(self, context: RequestContext) -> bool:
        return bool(context.input and context.input.strip())

    async def on_execute(self, context: RequestContext) -> Response:
        history = []
        if self.settings.enable_context_memory and self.settings.max_history_messages:
            history = get_history(context.state)[-self.settings.max_history_messages :]

        messages = build_chat_messages(context.input, self.settings.system_prompt, history)

        completion = await self.client.chat.completions.create(
            model=self.settings.model_name,
            messages=messages,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""

        metadata = {"model_used": self.settings.model_name}
        usage = getattr(completion, "usage", None)
        if usage is not None:
            metadata["total_tokens"] = usage.total_tokens

        if not content.strip():
            logger.error(f"Empty completion from {self.settings.model_name} for {context.request_id}")
            return Response(content=EMPTY_COMPLETION_MESSAGE, is_complete=False, metadata=metadata)

        logger.info(
            f"Generated chat response for user {context.user_id or '-'}: {len(content)} characters"
        )

        updated_state = {}
        if self.settings.enable_context_memory:
            updated_state[HISTORY_KEY] = extend_history(context.state, context.input, content)

        return Response(content=content, updated_state=updated_state, metadata=metadata)

    async def on_dispose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.close()
        self.client = None
