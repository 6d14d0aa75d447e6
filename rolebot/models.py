"""
Data models for role orchestration.

This module defines the envelopes that flow through every component: the
request context, the capability response, the per-call orchestration
configuration and the persisted state record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator

DEFAULT_MAX_CONCURRENCY = 10

NO_CAPABILITY_MESSAGE = "No suitable capability found to handle this request."
EXECUTION_ERROR_MESSAGE = "An error occurred while processing your request."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionMode(str, Enum):
    """How the orchestrator runs the candidate capabilities of one call."""

    FIRST_MATCH = "first_match"
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    PIPELINE = "pipeline"

    @classmethod
    def _missing_(cls, value):
        # Accept "FirstMatch", "first-match", "FIRST_MATCH" and friends
        if isinstance(value, str):
            normalized = value.replace("-", "").replace("_", "").lower()
            for member in cls:
                if member.value.replace("_", "") == normalized:
                    return member
        return None


class RequestContext(BaseModel):
    """
    Mutable request envelope shared by every capability in one orchestration run.

    Attributes:
        request_id: Caller-supplied id, generated when absent
        conversation_id: Key for persisted state (empty = not persisted)
        user_id: Caller identity
        input: The payload to route (may be empty)
        state: Conversation-scoped key/value state, shared by reference
        session_data: Additional per-conversation data persisted with state
        timestamp: Creation time (UTC)
    """

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    conversation_id: str = ""
    user_id: str = ""
    input: str = ""
    state: Dict[str, Any] = Field(default_factory=dict)
    session_data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("request_id", mode="before")
    @classmethod
    def _generate_request_id(cls, value):
        return value or str(uuid.uuid4())

    @field_validator("conversation_id", "user_id", "input", mode="before")
    @classmethod
    def _none_to_empty_string(cls, value):
        return "" if value is None else value

    @field_validator("state", "session_data", mode="before")
    @classmethod
    def _none_to_empty_dict(cls, value):
        return {} if value is None else value

    def snapshot(self) -> "RequestContext":
        """Deep copy used for isolated (parallel) execution."""
        return self.model_copy(deep=True)


class Response(BaseModel):
    """
    Output of a capability or of a whole orchestration run.

    Attributes:
        content: Human-facing output (may be empty when not complete)
        is_complete: False signals a soft failure ("could not help")
        updated_state: State delta merged into the context after this step
        next_roles: Pipeline only; non-empty means "feed my output forward"
        metadata: Diagnostic payload, never semantically required
        response_type: Free-form content kind (text, summary, ...)
    """

    content: str = ""
    is_complete: bool = True
    updated_state: Dict[str, Any] = Field(default_factory=dict)
    next_roles: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    response_type: str = "text"

    @field_validator("content", mode="before")
    @classmethod
    def _none_to_empty_string(cls, value):
        return "" if value is None else value

    @field_validator("updated_state", "metadata", mode="before")
    @classmethod
    def _none_to_empty_dict(cls, value):
        return {} if value is None else value

    @field_validator("next_roles", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value):
        return [] if value is None else value

    @classmethod
    def failure(cls, content: str, **metadata: Any) -> "Response":
        return cls(content=content, is_complete=False, metadata=metadata)


class OrchestrationConfig(BaseModel):
    """
    Per-call orchestration options.

    Attributes:
        execution_mode: Strategy applied to the candidate list
        specific_roles: Explicit ordered capability ids (bypasses filtering)
        required_tags: Candidates must own at least one of these tags
        excluded_tags: Candidates owning any of these tags are removed
        stop_on_first_failure: Stop Sequential/Pipeline runs on an incomplete step
        max_concurrency: Upper bound of simultaneous Parallel executions
        timeout_seconds: Budget for the whole call (None = orchestrator default)
    """

    execution_mode: ExecutionMode = ExecutionMode.FIRST_MATCH
    specific_roles: Optional[List[str]] = None
    required_tags: Optional[List[str]] = None
    excluded_tags: Optional[List[str]] = None
    stop_on_first_failure: bool = False
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    @field_validator("execution_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value):
        return ExecutionMode(value) if isinstance(value, str) else value


class StateRecord(BaseModel):
    """Durable record persisted per conversation id."""

    conversation_id: str
    user_id: str = ""
    state: Dict[str, Any] = Field(default_factory=dict)
    session_data: Dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime = Field(default_factory=utc_now)

    @field_validator("last_updated")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
