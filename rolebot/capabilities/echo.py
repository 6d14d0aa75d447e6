"""
Echo capability.

Returns its input unchanged (optionally prefixed and delayed). Used for smoke
tests, demos and for wiring up pipelines.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models import RequestContext, Response
from .base import Capability

logger = logging.getLogger(__name__)

ECHO_TRIGGER_WORDS = ("echo", "test")


class EchoSettings(BaseModel):
    response_delay: int = Field(default=0, ge=0)  # milliseconds
    prefix: str = ""
    next_roles: List[str] = []
    handle_all: bool = False


class EchoCapability(Capability):
    """Echoes the request input back."""

    default_id = "echo"
    default_tags = ("test", "demo", "validation")
    default_priority = 10

    def __init__(self, capability_id: Optional[str] = None):
        super().__init__(capability_id)
        self.settings = EchoSettings()

    @property
    def display_name(self) -> str:
        return "Echo"

    async def on_initialize(self, config: Dict[str, Any]) -> None:
        self.settings = self.load_settings(EchoSettings, config)
        logger.debug(
            f"Echo configured: delay={self.settings.response_delay}ms, "
            f"handle_all={self.settings.handle_all}"
        )

    def can_handle(self, context: RequestContext) -> bool:
        if not context.input:
            return False
        return self.settings.handle_all or self.contains_keywords(context, *ECHO_TRIGGER_WORDS)

    async def on_execute(self, context: RequestContext) -> Response:
        if self.settings.response_delay:
            await asyncio.sleep(self.settings.response_delay / 1000)

        return Response(
            content=f"{self.settings.prefix}{context.input}",
            next_roles=list(self.settings.next_roles),
            updated_state={"last_echo": context.input},
        )
