"""Data models for filtop and decoding of the agent's JSON payloads."""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from filtop.errors import DecodeError

UINT64_MAX = 2**64 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


@dataclass(slots=True, frozen=True)
class CpuTimes:
    """Tick count and accumulated milliseconds for one CPU mode."""

    ticks: int = 0
    time_ms: int = 0


@dataclass(slots=True, frozen=True)
class CpuStats:
    system: CpuTimes = CpuTimes()
    user: CpuTimes = CpuTimes()
    total: CpuTimes = CpuTimes()
    total_value: int = 0


@dataclass(slots=True, frozen=True)
class MemoryStats:
    memory_alloc: int = 0  # Bytes
    rss: int = 0  # Bytes


@dataclass(slots=True, frozen=True)
class QueueStats:
    """Pipeline queue occupancy, in events."""

    filled_events: int = 0
    max_events: int = 0


@dataclass(slots=True, frozen=True)
class PipelineEvents:
    total: int = 0
    dropped: int = 0
    failed: int = 0
    filtered: int = 0


@dataclass(slots=True, frozen=True)
class HarvesterStats:
    running: int = 0
    open_files: int = 0
    closed: int = 0
    started: int = 0
    terminated: int = 0  # Reported by the agent as "skipped"


@dataclass(slots=True, frozen=True)
class ModuleStatus:
    name: str = ""
    enabled: bool = False
    errors: int = 0


@dataclass(slots=True, frozen=True)
class LoadAverage:
    """Normalized 1/5/15 minute load averages."""

    load1: float = 0.0
    load5: float = 0.0
    load15: float = 0.0


@dataclass(slots=True, frozen=True)
class Input:
    """One configured data source as reported by the agent."""

    id: str = ""
    type: str = ""
    device: str = ""
    packets: int = 0
    bytes: int = 0
    events: int = 0
    files: int = 0
    active: bool = False
    throughput_events: float = 0.0  # Events per second
    throughput_bytes: float = 0.0  # Bytes per second
    arrival_histogram: Mapping[str, Any] = field(default_factory=dict)
    processing_histogram: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable sample of the agent's state, stamped locally at fetch time."""

    timestamp: datetime | None = None
    cpu: CpuStats = CpuStats()
    memory: MemoryStats = MemoryStats()
    uptime_ms: int = 0
    queue: QueueStats = QueueStats()
    pipeline_events: PipelineEvents = PipelineEvents()
    harvester: HarvesterStats = HarvesterStats()
    inputs: tuple[Input, ...] = ()
    modules: tuple[ModuleStatus, ...] = ()
    load: LoadAverage = LoadAverage()


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _section(data: Mapping[str, Any], key: str, path: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise DecodeError(f"{_join(path, key)}: expected object, got {type(value).__name__}")
    return value


def _list(data: Mapping[str, Any], key: str, path: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DecodeError(f"{_join(path, key)}: expected array, got {type(value).__name__}")
    return value


def _number(data: Mapping[str, Any], key: str, path: str) -> int | float:
    value = data.get(key)
    if value is None:
        return 0
    # bool is an int subclass but never a valid counter
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"{_join(path, key)}: expected number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise DecodeError(f"{_join(path, key)}: expected finite number, got {value}")
    return value


def _int(data: Mapping[str, Any], key: str, path: str, *, signed: bool = False) -> int:
    """Decode an integer counter; unsigned counters must fit in 64 bits."""
    value = int(_number(data, key, path))
    low, high = (INT64_MIN, INT64_MAX) if signed else (0, UINT64_MAX)
    if not low <= value <= high:
        raise DecodeError(f"{_join(path, key)}: {value} out of range [{low}, {high}]")
    return value


def _float(data: Mapping[str, Any], key: str, path: str) -> float:
    return float(_number(data, key, path))


def _bool(data: Mapping[str, Any], key: str, path: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise DecodeError(f"{_join(path, key)}: expected boolean, got {type(value).__name__}")
    return value


def _str(data: Mapping[str, Any], key: str, path: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"{_join(path, key)}: expected string, got {type(value).__name__}")
    return value


def _histogram(data: Mapping[str, Any], key: str, path: str) -> dict[str, Any]:
    """Return the ``<key>.histogram`` mapping, or an empty one."""
    holder = _section(data, key, path)
    return dict(_section(holder, "histogram", _join(path, key)))


def _cpu_times(data: Mapping[str, Any], path: str) -> CpuTimes:
    return CpuTimes(
        ticks=_int(data, "ticks", path),
        time_ms=_int(_section(data, "time", path), "ms", _join(path, "time")),
    )


def decode_input(data: Any, path: str = "inputs[]") -> Input:
    """Decode a single input object."""
    if not isinstance(data, Mapping):
        raise DecodeError(f"{path}: expected object, got {type(data).__name__}")

    throughput = _section(data, "throughput", path)
    throughput_path = _join(path, "throughput")
    return Input(
        id=_str(data, "id", path),
        type=_str(data, "input", path),
        device=_str(data, "device", path),
        packets=_int(data, "packets", path),
        bytes=_int(data, "bytes", path),
        events=_int(data, "events", path),
        files=_int(data, "files", path),
        active=_bool(data, "active", path),
        throughput_events=_float(throughput, "events", throughput_path),
        throughput_bytes=_float(throughput, "bytes", throughput_path),
        arrival_histogram=_histogram(data, "arrival_period", path),
        processing_histogram=_histogram(data, "processing_time", path),
    )


def decode_inputs(payload: Any) -> tuple[Input, ...]:
    """Decode the body of the ``/inputs`` endpoint (a JSON array)."""
    if payload is None:
        return ()
    if not isinstance(payload, list):
        raise DecodeError(f"inputs: expected array, got {type(payload).__name__}")
    return tuple(decode_input(item, f"inputs[{i}]") for i, item in enumerate(payload))


def decode_stats(payload: Any) -> Snapshot:
    """
    Decode the body of the ``/stats`` endpoint.

    Unknown fields are ignored and missing values fall back to zero/empty.
    A section present with the wrong JSON type raises DecodeError. The
    timestamp is left unset; it is stamped by the poller.
    """
    if not isinstance(payload, Mapping):
        raise DecodeError(f"stats: expected object, got {type(payload).__name__}")

    beat = _section(payload, "beat", "")
    cpu = _section(beat, "cpu", "beat")
    total = _section(cpu, "total", "beat.cpu")
    memstats = _section(beat, "memstats", "beat")
    uptime = _section(_section(beat, "info", "beat"), "uptime", "beat.info")

    pipeline = _section(_section(payload, "libbeat", ""), "pipeline", "libbeat")
    queue = _section(pipeline, "queue", "libbeat.pipeline")
    filled = _section(queue, "filled", "libbeat.pipeline.queue")
    events = _section(pipeline, "events", "libbeat.pipeline")

    filebeat = _section(payload, "filebeat", "")
    harvester = _section(filebeat, "harvester", "filebeat")
    modules = _section(filebeat, "modules", "filebeat")

    norm = _section(_section(_section(payload, "system", ""), "load", "system"), "norm", "system.load")

    module_list = []
    for i, item in enumerate(_list(modules, "list", "filebeat.modules")):
        item_path = f"filebeat.modules.list[{i}]"
        if not isinstance(item, Mapping):
            raise DecodeError(f"{item_path}: expected object, got {type(item).__name__}")
        module_list.append(
            ModuleStatus(
                name=_str(item, "name", item_path),
                enabled=_bool(item, "enabled", item_path),
                errors=_int(item, "errors", item_path, signed=True),
            )
        )

    inputs = tuple(
        decode_input(item, f"filebeat.inputs[{i}]")
        for i, item in enumerate(_list(filebeat, "inputs", "filebeat"))
    )

    return Snapshot(
        cpu=CpuStats(
            system=_cpu_times(_section(cpu, "system", "beat.cpu"), "beat.cpu.system"),
            user=_cpu_times(_section(cpu, "user", "beat.cpu"), "beat.cpu.user"),
            total=_cpu_times(total, "beat.cpu.total"),
            total_value=_int(total, "value", "beat.cpu.total"),
        ),
        memory=MemoryStats(
            memory_alloc=_int(memstats, "memory_alloc", "beat.memstats"),
            rss=_int(memstats, "rss", "beat.memstats"),
        ),
        uptime_ms=_int(uptime, "ms", "beat.info.uptime"),
        queue=QueueStats(
            filled_events=_int(filled, "events", "libbeat.pipeline.queue.filled"),
            max_events=_int(queue, "max_events", "libbeat.pipeline.queue"),
        ),
        pipeline_events=PipelineEvents(
            total=_int(events, "total", "libbeat.pipeline.events"),
            dropped=_int(events, "dropped", "libbeat.pipeline.events"),
            failed=_int(events, "failed", "libbeat.pipeline.events"),
            filtered=_int(events, "filtered", "libbeat.pipeline.events"),
        ),
        harvester=HarvesterStats(
            running=_int(harvester, "running", "filebeat.harvester"),
            open_files=_int(harvester, "open_files", "filebeat.harvester"),
            closed=_int(harvester, "closed", "filebeat.harvester"),
            started=_int(harvester, "started", "filebeat.harvester"),
            terminated=_int(harvester, "skipped", "filebeat.harvester"),
        ),
        inputs=inputs,
        modules=tuple(module_list),
        load=LoadAverage(
            load1=_float(norm, "1", "system.load.norm"),
            load5=_float(norm, "5", "system.load.norm"),
            load15=_float(norm, "15", "system.load.norm"),
        ),
    )
