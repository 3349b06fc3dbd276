"""Polling engine for filtop."""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from queue import Full, Queue
from typing import Protocol

from filtop.errors import FetchError
from filtop.models import Input, Snapshot
from filtop.settings import DEFAULT_INTERVAL
from filtop.state import SnapshotStore

LOGGER = logging.getLogger(__name__)

SNAPSHOT_READY = "snapshot-ready"


class StatsSource(Protocol):
    """Anything that can fetch stats and inputs, e.g. AgentClient."""

    def fetch_stats(self) -> Snapshot: ...

    def fetch_inputs(self) -> tuple[Input, ...]: ...


def new_notification_queue() -> Queue[str]:
    """Create a channel that holds at most one pending notification."""
    return Queue(maxsize=1)


class AgentMonitor:
    """
    Poller that fetches agent snapshots on a fixed cadence.

    Runs in a separate daemon thread. Each successful cycle is published to
    the SnapshotStore and announced on ``notifications``. A pending
    notification absorbs later ones, so a slow renderer only ever sees the
    newest snapshot.
    """

    def __init__(
        self,
        source: StatsSource,
        store: SnapshotStore,
        notifications: Queue[str],
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        """
        Initialize the AgentMonitor.

        Args:
            source: Client used to fetch ``/stats`` and ``/inputs``.
            store: State cell the monitor is the only writer of.
            notifications: Channel read by the renderer.
            interval: Seconds between cycles. Must be positive.
        """
        self._source = source
        self._store = store
        self._notifications = notifications
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"interval must be positive, got {value}")
        self._interval = value

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the polling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="AgentMonitor",
        )
        self._thread.start()
        LOGGER.info("Polling every %ss", self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the polling thread.

        A request already in flight is not cancelled; it is bounded by the
        client's timeout.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                LOGGER.exception("Unexpected error in poll cycle")

            self._stop_event.wait(timeout=self._interval)

    def poll_once(self) -> Snapshot | None:
        """
        Run one fetch-decode-publish cycle.

        Returns:
            The published snapshot, or None when the stats fetch failed and
            the last known snapshot was left as it was.
        """
        try:
            snapshot = self._source.fetch_stats()
        except FetchError as exc:
            LOGGER.error("Error fetching stats: %s", exc)
            return None

        try:
            inputs = self._source.fetch_inputs()
        except FetchError as exc:
            # Keep whatever inputs the stats payload carried
            LOGGER.error("Error fetching inputs: %s", exc)
        else:
            snapshot = replace(snapshot, inputs=tuple(inputs))

        snapshot = replace(snapshot, timestamp=datetime.now())
        self._store.publish(snapshot)
        self._notify()
        return snapshot

    def _notify(self) -> None:
        try:
            self._notifications.put_nowait(SNAPSHOT_READY)
        except Full:
            pass  # Coalesced with the pending notification
