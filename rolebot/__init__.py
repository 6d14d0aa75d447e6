"""
Role Orchestration Package
"""

from .capabilities import (
    Capability,
    CapabilityRegistry,
    ChatCapability,
    EchoCapability,
    ResponderCapability,
    SummarizerCapability,
    create_default_registry,
    default_factories,
)
from .config import (
    CapabilityConfigRecord,
    RegistrySettings,
    load_registry_settings,
    parse_registry_settings,
)
from .errors import (
    CapabilityLifecycleError,
    ConfigurationError,
    RolebotError,
    StateStoreError,
)
from .models import (
    ExecutionMode,
    OrchestrationConfig,
    RequestContext,
    Response,
    StateRecord,
)
from .orchestration import CapabilityOrchestrator
from .state import FileStateBackend, MemoryStateBackend, StateBackend, StateStore

__version__ = "1.0.0"

__all__ = [
    # Models
    "RequestContext",
    "Response",
    "OrchestrationConfig",
    "ExecutionMode",
    "StateRecord",
    # Errors
    "RolebotError",
    "ConfigurationError",
    "CapabilityLifecycleError",
    "StateStoreError",
    # Configuration
    "RegistrySettings",
    "CapabilityConfigRecord",
    "load_registry_settings",
    "parse_registry_settings",
    # Capabilities
    "Capability",
    "SummarizerCapability",
    "ResponderCapability",
    "EchoCapability",
    "ChatCapability",
    # Registry
    "CapabilityRegistry",
    "create_default_registry",
    "default_factories",
    # Orchestration
    "CapabilityOrchestrator",
    # State
    "StateStore",
    "StateBackend",
    "MemoryStateBackend",
    "FileStateBackend",
]
