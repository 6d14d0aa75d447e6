"""
Error types raised by the orchestration framework.

Capability execution errors are never raised to callers of the orchestrator;
they are converted into failed responses. The exceptions below cover the
cases that must surface: bad configuration at startup, lifecycle misuse, and
durable state I/O.
"""


class RolebotError(Exception):
    """Base class for all framework errors."""


class ConfigurationError(RolebotError, ValueError):
    """Invalid or unloadable configuration (fatal at startup)."""


class CapabilityLifecycleError(RolebotError, RuntimeError):
    """A capability was used outside of its initialize/execute/dispose lifecycle."""


class StateStoreError(RolebotError, OSError):
    """Durable state storage could not be read or written."""
