"""
State persistence for distributions.

A StateStore holds the persisted snapshot of exactly one distribution behind a
narrow commit/read/clear interface. Two implementations are provided:

- MemoryStateStore: process-local, used by the Pulumi provider and tests
- FileStateStore: one named slot inside a joblib-backed StateFile, used by the CLI
"""

import fcntl
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import joblib

from .errors import StateError
from .models import DistributionState

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Durable home of one distribution's persisted state."""

    @abstractmethod
    def commit(self, state: DistributionState) -> None:
        """Replace the persisted state with ``state``.

        Partial (anchor) and full snapshots are both accepted, in any order.
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove the distribution from persisted state."""

    @abstractmethod
    def read(self) -> Optional[DistributionState]:
        """Return a copy of the persisted state, or None if nothing is stored."""


class MemoryStateStore(StateStore):
    """In-memory store that also records every commit, in order."""

    def __init__(self, state: Optional[DistributionState] = None):
        self._state = state.model_copy(deep=True) if state else None
        self.history: List[Optional[DistributionState]] = []

    def commit(self, state: DistributionState) -> None:
        self._state = state.model_copy(deep=True)
        self.history.append(self._state.model_copy(deep=True))

    def clear(self) -> None:
        self._state = None
        self.history.append(None)

    def read(self) -> Optional[DistributionState]:
        return self._state.model_copy(deep=True) if self._state else None


class StateFile:
    """
    joblib-backed file holding the state of many distributions by name.

    Features:
    - Thread-safe operations
    - Every read and write starts from what is on disk, and writes hold an
      exclusive lock on a sidecar ".lock" file, so processes sharing the file
      never drop each other's entries
    - Atomic writes (temporary file + rename)
    - A corrupt file is an error, never silently replaced by empty state
    """

    def __init__(self, path: Path):
        """
        Initialize StateFile.

        Args:
            path: Path to the state file
        """
        self.path = Path(path)
        self._lock = threading.RLock()
        self._entries: Dict[str, dict] = {}
        self._load()
        logger.debug(f"StateFile initialized with state file: {self.path}")

    def _load(self) -> None:
        """Load entries from file."""
        if not self.path.exists():
            logger.info("State file does not exist, starting with empty state")
            self._entries = {}
            return

        try:
            data = joblib.load(self.path)
        except Exception as e:
            raise StateError(f"Could not read state file {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("distributions"), dict):
            raise StateError(f"State file {self.path} has an unexpected format")
        self._entries = data["distributions"]
        logger.debug(f"Loaded {len(self._entries)} distribution(s) from {self.path}")

    def _save(self) -> None:
        """Save entries to file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            # Write to temporary file first, then rename (atomic operation)
            temp_file = self.path.with_suffix(".tmp")
            joblib.dump({"distributions": self._entries}, temp_file)
            temp_file.replace(self.path)
            logger.debug("Saved state to file")
        except OSError as e:
            logger.error(f"Failed to save state: {e}")
            raise StateError(f"Could not save state file: {e}") from e

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the thread lock and the cross-process file lock, then reload."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                lock_file = open(self.path.with_suffix(".lock"), "a")
            except OSError as e:
                raise StateError(f"Could not lock state file {self.path}: {e}") from e
            with lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    self._load()
                    yield
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)

    def get(self, name: str) -> Optional[DistributionState]:
        with self._lock:
            self._load()
            entry = self._entries.get(name)
            return DistributionState.model_validate(entry) if entry is not None else None

    def put(self, name: str, state: DistributionState) -> None:
        with self._exclusive():
            self._entries[name] = state.model_dump(mode="json")
            self._save()

    def remove(self, name: str) -> bool:
        with self._exclusive():
            if name not in self._entries:
                return False
            del self._entries[name]
            self._save()
            return True

    def names(self) -> List[str]:
        with self._lock:
            self._load()
            return sorted(self._entries)

    def slot(self, name: str) -> "FileStateStore":
        """StateStore view of a single named entry."""
        return FileStateStore(self, name)


class FileStateStore(StateStore):
    """One named entry of a StateFile."""

    def __init__(self, state_file: StateFile, name: str):
        self.state_file = state_file
        self.name = name

    def commit(self, state: DistributionState) -> None:
        self.state_file.put(self.name, state)

    def clear(self) -> None:
        self.state_file.remove(self.name)

    def read(self) -> Optional[DistributionState]:
        return self.state_file.get(self.name)
