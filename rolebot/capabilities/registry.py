"""
Capability registry.

Manages capability registration, the tag index, and the priority-ordered
"who can handle this request" queries used by the orchestrator.
"""

import itertools
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..errors import ConfigurationError
from ..models import RequestContext
from .base import Capability

logger = logging.getLogger(__name__)

CapabilityFactory = Callable[..., Capability]


class CapabilityRegistry:
    """
    Registry of capability instances.

    Keeps an id map (in registration order) and a tag -> capabilities index.
    Mutations happen only in ``register``/``unregister``/``dispose_all`` under a
    lock; queries work on snapshots taken under the same lock, so reads are
    safe while registrations happen on other threads. The lock is never held
    while a capability is initialized, disposed or asked ``can_handle``.
    """

    def __init__(self):
        self._capabilities: Dict[str, Capability] = {}
        self._tag_index: Dict[str, List[Capability]] = {}
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    async def register(
        self, capability: Capability, config: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Register a capability, replacing any existing one with the same id.

        Args:
            capability: Capability instance to register
            config: If given, ``capability.initialize(config)`` runs first

        Raises:
            TypeError: If ``capability`` is not a Capability
        """
        if not isinstance(capability, Capability):
            raise TypeError(f"Expected a Capability, got {type(capability).__name__}")

        if config is not None:
            # Failures are logged by the capability and propagate from here
            await capability.initialize(config)

        capability_id = capability.capability_id

        with self._lock:
            previous = self._remove_locked(capability_id)

            self._capabilities[capability_id] = capability
            self._sequence[capability_id] = next(self._counter)
            for tag in capability.tags:
                self._tag_index.setdefault(tag, []).append(capability)

        if previous is not None:
            logger.warning(f"Capability '{capability_id}' already registered, replacing...")
            if previous is not capability:
                await previous.dispose()

        logger.info(
            f"Registered capability '{capability_id}' with tags: {', '.join(capability.tags)}"
        )

    async def unregister(self, capability_id: str) -> None:
        """
        Remove a capability and dispose it. No-op if the id is unknown.

        Args:
            capability_id: Capability id
        """
        with self._lock:
            capability = self._remove_locked(capability_id)

        if capability is None:
            return

        await capability.dispose()
        logger.info(f"Unregistered capability '{capability_id}'")

    def get(self, capability_id: str) -> Optional[Capability]:
        """
        Get a capability by id.

        Returns:
            Capability instance or None if not found
        """
        with self._lock:
            return self._capabilities.get(capability_id)

    def get_all(self) -> List[Capability]:
        """All capabilities in registration order."""
        with self._lock:
            return list(self._capabilities.values())

    def list_capabilities(self) -> List[str]:
        """Get list of registered capability ids."""
        with self._lock:
            return list(self._capabilities.keys())

    def get_by_tag(self, tag: str) -> List[Capability]:
        """Capabilities owning ``tag`` (empty list for unknown tags)."""
        with self._lock:
            return list(self._tag_index.get(tag, []))

    def get_by_tags(self, tags: Iterable[str]) -> List[Capability]:
        """
        Union of capabilities owning any of ``tags``.

        Each capability appears once, in order of first appearance.
        """
        seen = set()
        result = []

        with self._lock:
            for tag in tags:
                for capability in self._tag_index.get(tag, []):
                    if capability.capability_id not in seen:
                        seen.add(capability.capability_id)
                        result.append(capability)

        return result

    def get_capable(self, context: RequestContext) -> List[Capability]:
        """
        Capabilities that can handle ``context``, highest priority first.

        Ties are broken by registration order (earlier first).
        """
        with self._lock:
            candidates = [
                (capability, self._sequence[capability_id])
                for capability_id, capability in self._capabilities.items()
            ]

        capable = []
        for capability, sequence in candidates:
            try:
                if capability.can_handle(context):
                    capable.append((capability, sequence))
            except Exception as e:
                logger.warning(
                    f"can_handle failed for capability '{capability.capability_id}', "
                    f"treating it as not capable: {e}"
                )

        capable.sort(key=lambda item: (-item[0].priority, item[1]))
        return [capability for capability, _ in capable]

    async def load_from_settings(
        self, settings, factories: Mapping[str, CapabilityFactory]
    ) -> None:
        """
        Build and register capabilities from registry settings.

        Records are processed in document order. Each implementation reference
        is resolved through ``factories``; the factory receives the record id.

        Args:
            settings: ``RegistrySettings`` instance
            factories: Mapping of implementation reference -> factory

        Raises:
            ConfigurationError: If an implementation reference is unknown
        """
        for record in settings.capabilities:
            factory = factories.get(record.implementation)
            if factory is None:
                raise ConfigurationError(
                    f"Unknown implementation '{record.implementation}' "
                    f"for capability '{record.id}'"
                )

            capability = factory(capability_id=record.id)
            await self.register(capability, record.configuration)

        logger.info(f"Loaded {len(settings.capabilities)} capabilities from configuration")

    async def dispose_all(self) -> None:
        """Dispose every capability and clear all indices."""
        with self._lock:
            capabilities = list(self._capabilities.values())
            self._capabilities.clear()
            self._tag_index.clear()
            self._sequence.clear()

        for capability in capabilities:
            await capability.dispose()

        logger.info(f"Disposed {len(capabilities)} capabilities")

    def __len__(self) -> int:
        with self._lock:
            return len(self._capabilities)

    def __contains__(self, capability_id: str) -> bool:
        with self._lock:
            return capability_id in self._capabilities

    def _remove_locked(self, capability_id: str) -> Optional[Capability]:
        capability = self._capabilities.pop(capability_id, None)
        if capability is None:
            return None

        self._sequence.pop(capability_id, None)
        for tag in capability.tags:
            bucket = self._tag_index.get(tag)
            if bucket is None:
                continue
            bucket[:] = [c for c in bucket if c is not capability]
            if not bucket:
                del self._tag_index[tag]

        return capability


def default_factories() -> Dict[str, CapabilityFactory]:
    """
    Implementation reference -> factory map for the built-in capabilities.

    Returns:
        Dict usable with ``CapabilityRegistry.load_from_settings``
    """
    from .chat import ChatCapability
    from .echo import EchoCapability
    from .responder import ResponderCapability
    from .summarizer import SummarizerCapability

    return {
        "summarizer": SummarizerCapability,
        "responder": ResponderCapability,
        "echo": EchoCapability,
        "chat": ChatCapability,
    }


async def create_default_registry(
    configs: Optional[Mapping[str, Dict[str, Any]]] = None,
) -> CapabilityRegistry:
    """
    Create a registry with the offline built-in capabilities registered.

    The ``chat`` capability needs an LLM endpoint, so it is only registered
    through configuration.

    Args:
        configs: Optional per-capability configuration keyed by id

    Returns:
        CapabilityRegistry with summarizer and responder registered
    """
    from .responder import ResponderCapability
    from .summarizer import SummarizerCapability

    configs = configs or {}
    registry = CapabilityRegistry()

    for capability in (SummarizerCapability(), ResponderCapability()):
        await registry.register(capability, configs.get(capability.capability_id, {}))

    return registry
