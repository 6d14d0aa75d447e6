"""
Conversation state store.

Hydrates a request context's state before an orchestration run and persists it
afterwards. An in-memory cache fronts the durable backend; cache access is
serialized per conversation id.
"""

from contextlib import contextmanager
from datetime import timedelta
import logging
import threading
from typing import Dict, List, Optional

from ..errors import StateStoreError
from ..models import RequestContext, StateRecord, utc_now
from .backends import MemoryStateBackend, StateBackend

logger = logging.getLogger(__name__)


class StateStore:
    """
    Cache + durable backend for per-conversation state.

    ``load`` never fails the caller: missing records give empty state and I/O
    errors degrade to empty state with a warning. ``save`` raises
    ``StateStoreError`` when the backend cannot be written.
    """

    def __init__(self, backend: Optional[StateBackend] = None):
        """
        Args:
            backend: Durable backend (defaults to an in-memory backend)
        """
        self.backend = backend or MemoryStateBackend()
        self._cache: Dict[str, StateRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def load(self, context: RequestContext) -> None:
        """
        Populate ``context.state`` and ``context.session_data``.

        Args:
            context: Context to hydrate (no-op without a conversation id)
        """
        conversation_id = context.conversation_id
        if not conversation_id:
            logger.debug("No conversation id provided, skipping state load")
            return

        with self._conversation_lock(conversation_id):
            record = self._cache.get(conversation_id)
            source = "cache"

            if record is None:
                source = "storage"
                try:
                    record = self.backend.get(conversation_id)
                except Exception as e:
                    logger.warning(
                        f"Failed to load state for conversation {conversation_id}, "
                        f"continuing with empty state: {e}"
                    )
                    record = None
                    source = "fallback"
                else:
                    if record is not None:
                        self._cache[conversation_id] = record

        if record is None:
            context.state = {}
            context.session_data = {}
            logger.debug(f"No stored state for conversation {conversation_id} ({source})")
            return

        # Copies keep the cached record independent of in-flight mutations
        restored = record.model_copy(deep=True)
        context.state = restored.state
        context.session_data = restored.session_data
        logger.debug(f"Loaded state from {source} for conversation {conversation_id}")

    def save(self, context: RequestContext) -> None:
        """
        Persist ``context.state`` and ``context.session_data``.

        Raises:
            StateStoreError: If the backend write fails
        """
        conversation_id = context.conversation_id
        if not conversation_id:
            logger.debug("No conversation id provided, skipping state save")
            return

        record = StateRecord(
            conversation_id=conversation_id,
            user_id=context.user_id,
            state=context.state,
            session_data=context.session_data,
            last_updated=utc_now(),
        ).model_copy(deep=True)

        with self._conversation_lock(conversation_id):
            try:
                self.backend.put(record)
            except StateStoreError:
                logger.error(f"Failed to save state for conversation {conversation_id}")
                raise
            except Exception as e:
                logger.error(f"Failed to save state for conversation {conversation_id}: {e}")
                raise StateStoreError(
                    f"Could not save state for conversation {conversation_id}: {e}"
                ) from e

            self._cache[conversation_id] = record

        logger.debug(f"Saved state for conversation {conversation_id}")

    def clear(self, conversation_id: str) -> None:
        """
        Remove cached and stored state for a conversation.

        Raises:
            ValueError: If ``conversation_id`` is empty
        """
        if not conversation_id:
            raise ValueError("Conversation id cannot be empty")

        with self._conversation_lock(conversation_id):
            self._cache.pop(conversation_id, None)
            self.backend.delete(conversation_id)

        logger.info(f"Cleared state for conversation {conversation_id}")

    def list_conversations(self) -> List[str]:
        """Ids of all conversations with stored state."""
        return self.backend.list_ids()

    def cleanup_older_than(self, max_age: timedelta) -> int:
        """
        Delete state not updated within ``max_age``.

        Args:
            max_age: Maximum age to keep

        Returns:
            Number of conversations removed
        """
        cutoff = utc_now() - max_age
        deleted = 0

        for conversation_id in self.backend.list_older_than(cutoff):
            with self._conversation_lock(conversation_id):
                self._cache.pop(conversation_id, None)
                try:
                    if self.backend.delete(conversation_id):
                        deleted += 1
                except StateStoreError as e:
                    logger.warning(f"Failed to delete state for {conversation_id}: {e}")

        logger.info(f"Cleaned up {deleted} old conversation states")
        return deleted

    @contextmanager
    def _conversation_lock(self, conversation_id: str):
        with self._locks_guard:
            lock = self._locks.setdefault(conversation_id, threading.Lock())
        with lock:
            yield
