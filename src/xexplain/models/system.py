"""Frozen dataclass models for one sampling tick of system telemetry."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from xexplain.models.enums import (
    CoreType,
    MemoryPressureLevel,
    ProcessCategory,
    ThermalStateLevel,
    ThrottleReason,
)

GIB = 1_073_741_824
MIB = 1_048_576


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CoreUsage:
    """Usage of a single CPU core."""

    core_index: int
    core_type: CoreType
    usage: float
    frequency_mhz: float | None = None


@dataclass(frozen=True, slots=True)
class NormalizedMetrics:
    """System-wide readings for one tick. Percentages are 0-100, rates in MB/s."""

    # CPU
    cpu_usage: float = 0.0
    cpu_user_usage: float = 0.0
    cpu_system_usage: float = 0.0
    core_usages: tuple[CoreUsage, ...] = ()

    # Memory
    memory_usage_percent: float = 0.0
    memory_used_bytes: int = 0
    memory_total_bytes: int = 0
    memory_pressure: MemoryPressureLevel = MemoryPressureLevel.NORMAL
    swap_used_bytes: int = 0
    compressed_bytes: int = 0

    # Disk
    disk_read_rate: float = 0.0
    disk_write_rate: float = 0.0
    disk_usage_percent: float = 0.0

    # Thermal
    cpu_temperature: float = 0.0
    gpu_temperature: float = 0.0
    thermal_state: ThermalStateLevel = ThermalStateLevel.NOMINAL
    fan_speed: int = 0

    # Power
    cpu_frequency_mhz: float | None = None
    max_frequency_mhz: float | None = None
    power_watts: float | None = None
    battery_level: float | None = None
    is_on_battery: bool = False

    # GPU
    gpu_usage: float = 0.0
    gpu_memory_used: int | None = None
    is_using_metal: bool = False
    is_using_ane: bool = False

    # Network
    network_download_rate: float = 0.0
    network_upload_rate: float = 0.0

    timestamp: datetime = field(default_factory=_now)

    @property
    def total_disk_io(self) -> float:
        return self.disk_read_rate + self.disk_write_rate


@dataclass(frozen=True, slots=True)
class ProcessSnapshot:
    """A process as observed during one tick. ``pid`` is unique within a tick."""

    pid: int
    name: str
    display_name: str = ""
    bundle_identifier: str | None = None
    cpu_usage: float = 0.0
    memory_bytes: int = 0
    disk_read_bytes: int = 0
    disk_write_bytes: int = 0
    category: ProcessCategory = ProcessCategory.OTHER
    is_system_process: bool = False
    parent_pid: int | None = None
    thread_count: int = 1
    core_affinity: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if not self.display_name:
            object.__setattr__(self, "display_name", self.name)

    @property
    def memory_gb(self) -> float:
        return self.memory_bytes / GIB

    @property
    def disk_bytes(self) -> int:
        return self.disk_read_bytes + self.disk_write_bytes


@dataclass(frozen=True, slots=True)
class ThrottleInfo:
    """Explicit CPU throttle status, supplied by a caller or inferred."""

    is_throttling: bool
    frequency_reduction: float = 0.0  # percent, 0-100
    reason: ThrottleReason = ThrottleReason.NONE
    detected_at: datetime = field(default_factory=_now)
