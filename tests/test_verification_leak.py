"""Verification Test: Memory Leak Check.

Polls a local agent over real HTTP for a few seconds and checks that the
process RSS stays flat. The history window is bounded, so memory must not
grow with the number of cycles.

Note: thresholds are relaxed for test environments where pytest and the
HTTP server thread add their own noise.
"""

import gc
import os
import time
from dataclasses import replace
from queue import Empty

import psutil

from conftest import make_input_payload
from filtop.client import AgentClient
from filtop.monitor import AgentMonitor, new_notification_queue
from filtop.models import decode_inputs, decode_stats
from filtop.settings import MonitorConfig
from filtop.state import SnapshotStore


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    process = psutil.Process()
    return process.memory_info().rss / (1024 * 1024)


class TestMemoryLeakCheck:
    """Memory leak verification suite tests."""

    def test_monitor_memory_stability_short(self, agent_server):
        """Test the poll loop does not leak over a few hundred cycles."""
        port, state = agent_server
        state.inputs = [make_input_payload(id=f"in-{i}") for i in range(50)]
        is_ci = os.environ.get("CI", "false").lower() == "true"
        test_duration = 10.0 if is_ci else 5.0
        max_delta_mb = 8.0 if is_ci else 5.0

        config = MonitorConfig(host="127.0.0.1", port=port, interval=0.01, timeout_s=2.0)
        store = SnapshotStore()
        notifications = new_notification_queue()

        gc.collect()
        initial_memory = get_current_memory_mb()

        with AgentClient(config) as client:
            monitor = AgentMonitor(client, store, notifications, interval=config.interval)
            monitor.start()
            try:
                start_time = time.time()
                snapshots_processed = 0
                while time.time() - start_time < test_duration:
                    try:
                        notifications.get(timeout=1.0)
                        snapshots_processed += 1
                        # Simulate a render pass
                        for item in store.last.inputs:
                            _ = item.throughput_bytes
                    except Empty:
                        pass

                assert snapshots_processed > 30, "Should have processed many snapshots"
            finally:
                monitor.stop()

        gc.collect()
        time.sleep(0.5)

        memory_delta = get_current_memory_mb() - initial_memory
        assert len(store.history()) == 30
        assert memory_delta < max_delta_mb, (
            f"Memory increased by {memory_delta:.2f}MB, "
            f"expected < {max_delta_mb}MB over {test_duration}s"
        )

    def test_history_eviction_releases_snapshots(self, stats_payload):
        """Test snapshots evicted from the history are not retained anywhere."""
        inputs = [make_input_payload(id=f"in-{i}") for i in range(200)]
        store = SnapshotStore()

        def publish() -> None:
            store.publish(replace(decode_stats(stats_payload), inputs=decode_inputs(inputs)))

        # Fill the window first so the retained 30 snapshots are in the baseline
        for _ in range(60):
            publish()

        gc.collect()
        initial_memory = get_current_memory_mb()

        for _ in range(2000):
            publish()

        gc.collect()
        memory_delta = get_current_memory_mb() - initial_memory

        assert len(store.history()) == 30
        assert memory_delta < 10.0, f"Memory increased by {memory_delta:.2f}MB"
