"""
Base capability interface for pluggable bot roles.

This module provides the abstract base class that all capabilities must implement,
enabling a plugin-like architecture where the orchestrator selects capabilities by
tag, priority and ``can_handle`` and runs them against a shared request context.
"""

from abc import ABC, abstractmethod
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from ..errors import CapabilityLifecycleError, ConfigurationError
from ..models import RequestContext, Response

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 50

SettingsT = TypeVar("SettingsT", bound=BaseModel)


class CapabilitySettings(BaseModel):
    """
    Configuration keys the core inspects.

    Anything else in a capability's configuration is behavior config: it is
    kept in ``model_extra`` and passed through to the capability untouched.

    Attributes:
        priority: Overrides the capability's default priority
        tags: Replaces the capability's default tags
        metadata: Free-form values merged into the capability metadata
    """

    model_config = ConfigDict(extra="allow")

    priority: Optional[int] = None
    tags: Optional[List[str]] = None
    metadata: Dict[str, Any] = {}


def normalize_tags(tags: Sequence[str]) -> Tuple[str, ...]:
    """Deduplicate tags, keeping first-seen order so iteration is deterministic."""
    return tuple(dict.fromkeys(str(tag) for tag in tags))


class Capability(ABC):
    """
    Abstract base class for bot capabilities.

    A capability is a discrete unit of request handling (summarizing, responding,
    calling an LLM, ...). It owns an immutable id, a tag set used for filtering,
    a priority used for ordering, and a metadata bag.

    Lifecycle: ``initialize`` once, ``execute`` any number of times, ``dispose``
    once. Re-initialization is a no-op; any use after ``dispose`` raises
    ``CapabilityLifecycleError``.

    Subclasses set ``default_id``, ``default_tags`` and ``default_priority``,
    implement ``display_name`` and ``on_execute``, and may override
    ``can_handle``, ``on_initialize`` and ``on_dispose``.
    """

    default_id: str = ""
    default_tags: Sequence[str] = ()
    default_priority: int = DEFAULT_PRIORITY

    def __init__(self, capability_id: Optional[str] = None):
        """
        Args:
            capability_id: Overrides ``default_id`` (lets one implementation be
                registered several times under different ids)
        """
        self._capability_id = capability_id or self.default_id
        if not self._capability_id:
            raise ValueError(f"{type(self).__name__} needs a capability id")

        self._tags = normalize_tags(self.default_tags)
        self._priority = self.default_priority
        self._metadata: Dict[str, Any] = {}
        self._initialized = False
        self._disposed = False

    @property
    def capability_id(self) -> str:
        """Unique identifier for this capability."""
        return self._capability_id

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name."""
        pass

    @property
    def tags(self) -> Tuple[str, ...]:
        return self._tags

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def metadata(self) -> Dict[str, Any]:
        return self._metadata

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def has_tag(self, tag: str) -> bool:
        return tag in self._tags

    def has_any_tag(self, tags: Sequence[str]) -> bool:
        return any(tag in self._tags for tag in tags)

    async def initialize(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the capability with its configuration.

        Common keys (priority, tags, metadata) are applied here; the full
        configuration is then handed to ``on_initialize``.

        Args:
            config: Capability configuration (may be empty)

        Raises:
            CapabilityLifecycleError: If the capability was disposed
            ConfigurationError: If the common keys are invalid
        """
        if self._disposed:
            raise CapabilityLifecycleError(
                f"Capability '{self.capability_id}' was disposed and cannot be initialized"
            )

        if self._initialized:
            logger.info(f"Capability '{self.capability_id}' is already initialized, skipping")
            return

        config = dict(config or {})

        try:
            settings = self.load_settings(CapabilitySettings, config)

            if settings.priority is not None:
                self._priority = settings.priority
            if settings.tags is not None:
                self._tags = normalize_tags(settings.tags)

            self._metadata.update(settings.model_extra or {})
            self._metadata.update(settings.metadata)

            await self.on_initialize(config)
        except Exception as e:
            logger.error(f"Failed to initialize capability '{self.capability_id}': {e}")
            raise

        self._initialized = True
        logger.info(
            f"Capability '{self.capability_id}' initialized "
            f"(priority={self._priority}, tags={', '.join(self._tags)})"
        )

    def can_handle(self, context: RequestContext) -> bool:
        """
        Whether this capability can handle the given context.

        Returns:
            True by default; subclasses narrow it
        """
        return True

    async def execute(self, context: RequestContext) -> Response:
        """
        Run the capability against a context.

        Exceptions raised by ``on_execute`` propagate; the orchestrator converts
        them into failed responses.

        Raises:
            CapabilityLifecycleError: If not initialized or already disposed
        """
        self._ensure_ready()

        if not self.can_handle(context):
            logger.debug(
                f"Capability '{self.capability_id}' cannot handle request {context.request_id}"
            )
            return Response(
                content=f"{self.display_name} cannot handle this request.",
                is_complete=False,
                metadata={"executed_capability": self.capability_id},
            )

        start = time.perf_counter()
        response = await self.on_execute(context)

        response.metadata.setdefault("executed_capability", self.capability_id)
        response.metadata["elapsed_seconds"] = time.perf_counter() - start
        return response

    async def dispose(self) -> None:
        """Release resources. Safe to call more than once."""
        if self._disposed:
            return

        try:
            await self.on_dispose()
        except Exception:
            logger.exception(f"Error disposing capability '{self.capability_id}'")
        finally:
            self._disposed = True

        logger.info(f"Capability '{self.capability_id}' disposed")

    async def on_initialize(self, config: Dict[str, Any]) -> None:
        """Hook for capability-specific configuration."""
        return None

    @abstractmethod
    async def on_execute(self, context: RequestContext) -> Response:
        """
        Core capability logic.

        Args:
            context: The shared request context

        Returns:
            Response with content, completion flag and state delta
        """
        pass

    async def on_dispose(self) -> None:
        """Hook for capability-specific cleanup."""
        return None

    def load_settings(self, settings_cls: Type[SettingsT], config: Dict[str, Any]) -> SettingsT:
        """
        Validate behavior settings for this capability.

        Raises:
            ConfigurationError: If the configuration does not match ``settings_cls``
        """
        try:
            return settings_cls.model_validate(config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration for capability '{self.capability_id}': {e}"
            ) from e

    def contains_keywords(self, context: RequestContext, *keywords: str) -> bool:
        """Case-insensitive check for any keyword in the context input."""
        if not context.input:
            return False

        text = context.input.lower()
        return any(keyword.lower() in text for keyword in keywords)

    def describe(self) -> Dict[str, Any]:
        """Summary used for listings and exports."""
        return {
            "id": self.capability_id,
            "name": self.display_name,
            "tags": list(self._tags),
            "priority": self._priority,
            "initialized": self._initialized,
        }

    def _ensure_ready(self) -> None:
        if self._disposed:
            raise CapabilityLifecycleError(f"Capability '{self.capability_id}' was disposed")
        if not self._initialized:
            raise CapabilityLifecycleError(
                f"Capability '{self.capability_id}' has not been initialized"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.capability_id!r}, priority={self._priority})"
