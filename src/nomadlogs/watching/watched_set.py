from __future__ import annotations

import threading


class WatchedSet:
    """Allocation IDs currently being streamed by one Watcher.

    Every operation takes the same lock, so membership checks and updates
    from the discovery loop and from terminating consumers are linearizable.
    """

    def __init__(self) -> None:
        self._ids: set[str] = set()
        self._lock = threading.Lock()

    def try_add(self, alloc_id: str) -> bool:
        """Add `alloc_id`; return False if it was already a member."""
        with self._lock:
            if alloc_id in self._ids:
                return False
            self._ids.add(alloc_id)
            return True

    def remove(self, alloc_id: str) -> None:
        with self._lock:
            self._ids.discard(alloc_id)

    def contains(self, alloc_id: str) -> bool:
        with self._lock:
            return alloc_id in self._ids

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._ids)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    def __contains__(self, alloc_id: object) -> bool:
        return isinstance(alloc_id, str) and self.contains(alloc_id)
