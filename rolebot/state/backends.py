"""
Durable storage backends for conversation state.

A backend stores one ``StateRecord`` per conversation id. The store only needs
get/put/delete by id plus "list ids older than X" for housekeeping.
"""

from abc import ABC, abstractmethod
from datetime import datetime
import hashlib
import logging
from pathlib import Path
import re
import threading
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..errors import StateStoreError
from ..models import StateRecord

logger = logging.getLogger(__name__)

STATE_FILE_PREFIX = "state_"
STATE_FILE_SUFFIX = ".json"

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class StateBackend(ABC):
    """Abstract durable store keyed by conversation id."""

    @abstractmethod
    def get(self, conversation_id: str) -> Optional[StateRecord]:
        """Return the record or None when absent. Raises StateStoreError on I/O failure."""
        pass

    @abstractmethod
    def put(self, record: StateRecord) -> None:
        pass

    @abstractmethod
    def delete(self, conversation_id: str) -> bool:
        """Delete a record; returns whether one existed."""
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        pass

    @abstractmethod
    def list_older_than(self, cutoff: datetime) -> List[str]:
        """Ids whose ``last_updated`` is before ``cutoff``."""
        pass


class MemoryStateBackend(StateBackend):
    """Process-local backend, mainly for tests and state-less deployments."""

    def __init__(self):
        self._records: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, conversation_id: str) -> Optional[StateRecord]:
        with self._lock:
            payload = self._records.get(conversation_id)
        if payload is None:
            return None
        return StateRecord.model_validate_json(payload)

    def put(self, record: StateRecord) -> None:
        # Stored serialized so callers never share mutable state with the backend
        payload = record.model_dump_json()
        with self._lock:
            self._records[record.conversation_id] = payload

    def delete(self, conversation_id: str) -> bool:
        with self._lock:
            return self._records.pop(conversation_id, None) is not None

    def list_ids(self) -> List[str]:
        with self._lock:
            return list(self._records.keys())

    def list_older_than(self, cutoff: datetime) -> List[str]:
        with self._lock:
            payloads = list(self._records.items())
        return [
            conversation_id
            for conversation_id, payload in payloads
            if StateRecord.model_validate_json(payload).last_updated < cutoff
        ]


class FileStateBackend(StateBackend):
    """
    One JSON file per conversation in a state directory.

    File names are ``state_<sanitized id>.json``; the original id is stored
    inside the record, so listing reads records rather than parsing names.
    """

    def __init__(self, state_dir: str | Path):
        """
        Args:
            state_dir: Directory holding the state files (created if missing)
        """
        self.state_dir = Path(state_dir)
        if not self.state_dir.exists():
            self.state_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created state directory: {self.state_dir}")

    def get(self, conversation_id: str) -> Optional[StateRecord]:
        path = self._path_for(conversation_id)
        if not path.exists():
            return None

        try:
            record = StateRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise StateStoreError(f"Could not read state file {path}: {e}") from e

        if record.conversation_id != conversation_id:
            logger.warning(
                f"State file {path} belongs to conversation {record.conversation_id}, "
                f"not {conversation_id}"
            )
            return None
        return record

    def put(self, record: StateRecord) -> None:
        path = self._path_for(record.conversation_id)
        tmp_path = path.with_suffix(path.suffix + ".tmp")

        try:
            tmp_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise StateStoreError(f"Could not write state file {path}: {e}") from e

    def delete(self, conversation_id: str) -> bool:
        path = self._path_for(conversation_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StateStoreError(f"Could not delete state file {path}: {e}") from e

    def list_ids(self) -> List[str]:
        return [record.conversation_id for _, record in self._iter_records()]

    def list_older_than(self, cutoff: datetime) -> List[str]:
        return [
            record.conversation_id
            for _, record in self._iter_records()
            if record.last_updated < cutoff
        ]

    def _iter_records(self):
        for path in sorted(self.state_dir.glob(f"{STATE_FILE_PREFIX}*{STATE_FILE_SUFFIX}")):
            try:
                yield path, StateRecord.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.warning(f"Skipping unreadable state file {path}: {e}")

    def _path_for(self, conversation_id: str) -> Path:
        sanitized = _UNSAFE_FILENAME_CHARS.sub("_", conversation_id)
        if sanitized != conversation_id:
            # Distinct ids must not share a file once unsafe characters are replaced
            digest = hashlib.sha1(conversation_id.encode("utf-8")).hexdigest()[:8]
            sanitized = f"{sanitized}_{digest}"
        return self.state_dir / f"{STATE_FILE_PREFIX}{sanitized}{STATE_FILE_SUFFIX}"
