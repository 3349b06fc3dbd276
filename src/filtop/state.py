"""Shared state handed from the poller to the renderer."""

import threading
from collections import deque

from filtop.models import Snapshot
from filtop.settings import HISTORY_SIZE


class SnapshotStore:
    """
    Single-writer cell holding the last known snapshot and a short history.

    The poller is the only writer. The renderer reads ``last`` and
    ``history()``. The lock makes each publish appear atomic to readers.
    """

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._lock = threading.Lock()
        self._history: deque[Snapshot] = deque(maxlen=capacity)
        self._last: Snapshot | None = None

    @property
    def capacity(self) -> int:
        return self._history.maxlen or 0

    @property
    def last(self) -> Snapshot | None:
        """The most recently published snapshot, or None before the first one."""
        return self._last

    def publish(self, snapshot: Snapshot) -> None:
        """Append to history (evicting the oldest when full) and replace ``last``."""
        with self._lock:
            self._history.append(snapshot)
            self._last = snapshot

    def history(self) -> list[Snapshot]:
        """Get the retained snapshots, oldest first."""
        with self._lock:
            return list(self._history)

    def __len__(self) -> int:
        return len(self._history)
