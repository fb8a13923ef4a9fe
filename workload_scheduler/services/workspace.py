"""
Workspace: the one in-memory store owned by the process, written through to
disk after every mutation.
"""

import copy
import threading
from typing import Callable, List, Optional, TypeVar

from workload_scheduler.models import Store, Diagnostic
from workload_scheduler.services.migrations import recover
from workload_scheduler.services.persistence import SnapshotRepository
from workload_scheduler.services.validator import validate
from workload_scheduler.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Workspace:
    """
    Serializes mutations behind a single-writer lock.

    Each mutation runs against a deep copy of the store; the copy is saved and
    then replaces the live store, but only if the mutator returns normally.
    A refused mutation or a failed save therefore never leaves a partial change.
    """

    def __init__(self, repository: SnapshotRepository, store: Optional[Store] = None):
        self._repository = repository
        self._store = store if store is not None else Store()
        self._lock = threading.RLock()

    @classmethod
    def open(cls, repository: Optional[SnapshotRepository] = None) -> "Workspace":
        """
        Load and migrate the persisted snapshot, then write the normalized form back once.
        A snapshot that cannot be recovered is moved aside before the default store replaces it.
        """
        repository = repository or SnapshotRepository()
        raw = repository.load()
        store = recover(raw) if raw is not None else None
        if store is None:
            if raw is not None:
                repository.quarantine()
            store = Store()
        repository.save(store)
        logger.info(
            f"Loaded {len(store.schedules)} schedule(s), {len(store.course_catalog)} course(s), "
            f"{len(store.instructors)} instructor(s) from {repository.path}"
        )
        return cls(repository, store)

    @property
    def store(self) -> Store:
        """The live store. Treat it as read-only; mutate through ``apply``."""
        return self._store

    def apply(self, mutator: Callable[..., T], *args, **kwargs) -> T:
        """Run ``mutator(store, *args, **kwargs)`` atomically and persist the result."""
        with self._lock:
            candidate = copy.deepcopy(self._store)
            result = mutator(candidate, *args, **kwargs)
            self._repository.save(candidate)
            self._store = candidate
            return result

    def validate(self, variant_name: Optional[str] = None) -> List[Diagnostic]:
        with self._lock:
            return validate(self._store, variant_name or self._store.current_schedule)


# Global singleton instance
_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    """Get or open the process-wide workspace."""
    global _workspace
    if _workspace is None:
        _workspace = Workspace.open()
    return _workspace
