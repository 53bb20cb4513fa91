"""Per-diagram mutual exclusion for read-modify-write cycles."""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class DiagramLocks:
    """One lock per diagram id, created on first use.

    Commands on the same diagram run one at a time; commands on different
    diagrams never wait on each other.

    Usage:
        locks = DiagramLocks()
        with locks.hold(diagram_id):
            state = store.load(diagram_id)
            ...
            store.save(diagram_id, state)
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, diagram_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(diagram_id)
            if lock is None:
                lock = self._locks[diagram_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, diagram_id: str) -> Iterator[None]:
        lock = self.lock_for(diagram_id)
        lock.acquire()
        logger.debug("Acquired lock for diagram '%s'", diagram_id)
        try:
            yield
        finally:
            lock.release()

    def discard(self, diagram_id: str) -> None:
        """Forget the lock of a deleted diagram."""
        with self._registry_lock:
            self._locks.pop(diagram_id, None)
