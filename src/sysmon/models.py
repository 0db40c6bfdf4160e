"""Data models for sysmon."""

from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(slots=True, frozen=True)
class SystemInfo:
    """Immutable snapshot of host identity and uptime."""

    hostname: str
    os_name: str
    os_version: str
    kernel_version: str
    uptime: int  # Seconds
    boot_time: datetime


@dataclass(slots=True, frozen=True)
class CpuInfo:
    """Immutable snapshot of CPU identity and load."""

    name: str
    brand: str
    frequency_mhz: int | None
    cores: int  # Logical cores
    physical_cores: int | None
    usage_percent: float  # 0.0 - 100.0
    temperature: float | None  # Celsius
    load_average: tuple[float, float, float] | None


@dataclass(slots=True, frozen=True)
class MemoryInfo:
    """Immutable snapshot of RAM and swap usage, in bytes."""

    total: int
    used: int
    free: int
    available: int
    swap_total: int
    swap_used: int
    swap_free: int
    usage_percent: float
    swap_usage_percent: float


@dataclass(slots=True, frozen=True)
class DiskInfo:
    """Immutable snapshot of one mounted filesystem."""

    name: str
    mount_point: str
    file_system: str
    total: int
    used: int
    free: int
    usage_percent: float


@dataclass(slots=True, frozen=True)
class NetworkInfo:
    """Immutable snapshot of one network interface's counters."""

    interface: str
    ip_address: str | None
    mac_address: str | None
    bytes_received: int
    bytes_transmitted: int
    packets_received: int
    packets_transmitted: int
    errors_received: int
    errors_transmitted: int


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    command: str
    cpu_percent: float
    memory_bytes: int  # Resident set size
    memory_percent: float
    status: str  # 'R', 'S', 'Z', 'D', etc.
    start_time: datetime | None
    user: str
    priority: int | None


@dataclass(slots=True, frozen=True)
class SystemMetrics:
    """Complete point-in-time bundle of every collected record."""

    timestamp: datetime
    system: SystemInfo
    cpu: CpuInfo
    memory: MemoryInfo
    disks: list[DiskInfo]
    networks: list[NetworkInfo]
    processes: list[ProcessInfo]


class MonitoringState(Enum):
    """States of the monitoring session."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(slots=True, frozen=True)
class MonitoringStatus:
    """Read-only view of the monitoring session."""

    state: MonitoringState
    interval: float
    started_at: datetime | None
    last_sample_at: datetime | None
    sample_count: int

    @property
    def is_running(self) -> bool:
        return self.state is MonitoringState.RUNNING


def percentage(part: float, total: float) -> float:
    """Return part/total as a percentage rounded to two places, 0.0 for empty totals."""
    if total <= 0:
        return 0.0
    return round(min(max(part / total * 100.0, 0.0), 100.0), 2)


def to_payload(value: Any) -> Any:
    """Convert records into JSON-ready structures."""
    if is_dataclass(value) and not isinstance(value, type):
        payload = {f.name: to_payload(getattr(value, f.name)) for f in fields(value)}
        if isinstance(value, MonitoringStatus):
            payload["monitoring_active"] = value.is_running
        return payload
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    if isinstance(value, dict):
        return {key: to_payload(item) for key, item in value.items()}
    return value
