"""
Conversation state persistence.

The store hydrates and persists per-conversation state around each
orchestration run; backends provide the durable layer.
"""

from .backends import FileStateBackend, MemoryStateBackend, StateBackend
from .store import StateStore

__all__ = [
    "StateStore",
    # Backends
    "StateBackend",
    "MemoryStateBackend",
    "FileStateBackend",
]
