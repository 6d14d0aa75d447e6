"""
Shared pytest fixtures.

Puts the project root on ``sys.path`` so tests run without an editable install,
and provides a configurable fake capability for registry and orchestrator tests.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rolebot.capabilities.base import Capability  # noqa: E402
from rolebot.capabilities.registry import CapabilityRegistry  # noqa: E402
from rolebot.models import RequestContext, Response  # noqa: E402
from rolebot.state import MemoryStateBackend, StateStore  # noqa: E402


class ConcurrencyTracker:
    """Records the highest number of simultaneous executions."""

    def __init__(self):
        self.current = 0
        self.peak = 0

    def enter(self):
        self.current += 1
        self.peak = max(self.peak, self.current)

    def exit(self):
        self.current -= 1


class FakeCapability(Capability):
    """Capability whose behavior is fully scripted by constructor arguments."""

    def __init__(
        self,
        capability_id: str,
        tags=("test",),
        priority: int = 50,
        content: Optional[str] = None,
        is_complete: bool = True,
        updated_state: Optional[Dict[str, Any]] = None,
        next_roles: Optional[List[str]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        handles: Any = True,
        respond: Optional[Callable[[RequestContext], Response]] = None,
        mutate_state: Optional[Dict[str, Any]] = None,
        init_error: Optional[Exception] = None,
        dispose_error: Optional[Exception] = None,
        tracker: Optional[ConcurrencyTracker] = None,
    ):
        self.default_tags = tuple(tags)
        self.default_priority = priority
        super().__init__(capability_id)

        self.content = content
        self.is_complete = is_complete
        self.updated_state = updated_state or {}
        self.next_roles = next_roles or []
        self.delay = delay
        self.error = error
        self.handles = handles
        self.respond = respond
        self.mutate_state = mutate_state or {}
        self.init_error = init_error
        self.dispose_error = dispose_error
        self.tracker = tracker

        self.calls: List[str] = []
        self.seen_states: List[Dict[str, Any]] = []
        self.init_calls = 0
        self.dispose_calls = 0

    @property
    def display_name(self) -> str:
        return f"Fake {self.capability_id}"

    async def on_initialize(self, config: Dict[str, Any]) -> None:
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error

    def can_handle(self, context: RequestContext) -> bool:
        if callable(self.handles):
            return self.handles(context)
        return self.handles

    async def on_execute(self, context: RequestContext) -> Response:
        self.calls.append(context.input)
        self.seen_states.append(dict(context.state))

        if self.tracker is not None:
            self.tracker.enter()
        try:
            context.state.update(self.mutate_state)
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            if self.tracker is not None:
                self.tracker.exit()

        if self.error is not None:
            raise self.error

        if self.respond is not None:
            return self.respond(context)

        return Response(
            content=self.content if self.content is not None else f"{self.capability_id} handled",
            is_complete=self.is_complete,
            updated_state=dict(self.updated_state),
            next_roles=list(self.next_roles),
        )

    async def on_dispose(self) -> None:
        self.dispose_calls += 1
        if self.dispose_error is not None:
            raise self.dispose_error


@pytest.fixture
def make_capability():
    """Factory for scripted fake capabilities."""
    return FakeCapability


@pytest.fixture
def tracker():
    return ConcurrencyTracker()


@pytest.fixture
def registry():
    return CapabilityRegistry()


@pytest.fixture
def state_store():
    return StateStore(MemoryStateBackend())


@pytest.fixture
def context():
    return RequestContext(input="hello world", conversation_id="conv-1", user_id="user-1")
