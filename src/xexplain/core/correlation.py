"""Attribute elevated metrics to the processes most likely responsible."""

from __future__ import annotations

from collections.abc import Sequence

from xexplain.models.context import MetricCorrelation
from xexplain.models.enums import MemoryPressureLevel, ProcessCategory
from xexplain.models.system import MIB, NormalizedMetrics, ProcessSnapshot

CPU_METRIC = "CPU Usage"
MEMORY_METRIC = "Memory Pressure"
DISK_METRIC = "Disk I/O"

# A metric must exceed these before any process is blamed for it
CPU_RELEVANCE = 50.0
DISK_RELEVANCE_MBPS = 50.0

# A candidate must contribute at least this much to be reported
CPU_FLOOR = 10.0
MEMORY_RATIO_FLOOR = 0.05
DISK_BYTES_FLOOR = 10_000_000

CPU_CANDIDATES = 5
MEMORY_CANDIDATES = 5
DISK_CANDIDATES = 3

DISK_STRENGTH = 0.8


class CorrelationEngine:
    """Ranks candidate processes per elevated metric."""

    def correlate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
    ) -> list[MetricCorrelation]:
        correlations: list[MetricCorrelation] = []

        if metrics.cpu_usage > CPU_RELEVANCE:
            correlations.extend(self._correlate_cpu(metrics.cpu_usage, processes))

        if metrics.memory_pressure != MemoryPressureLevel.NORMAL:
            correlations.extend(
                self._correlate_memory(processes, metrics.memory_total_bytes)
            )

        if (
            metrics.disk_read_rate > DISK_RELEVANCE_MBPS
            or metrics.disk_write_rate > DISK_RELEVANCE_MBPS
        ):
            correlations.extend(self._correlate_disk(processes))

        return correlations

    # -- CPU ---------------------------------------------------------------

    def _correlate_cpu(
        self, usage: float, processes: Sequence[ProcessSnapshot]
    ) -> list[MetricCorrelation]:
        top = sorted(processes, key=lambda p: p.cpu_usage, reverse=True)[:CPU_CANDIDATES]
        return [
            MetricCorrelation(
                metric=CPU_METRIC,
                process=proc,
                strength=min(proc.cpu_usage / usage, 1.0),
                description=describe_cpu_usage(proc),
            )
            for proc in top
            if proc.cpu_usage > CPU_FLOOR
        ]

    # -- Memory ------------------------------------------------------------

    def _correlate_memory(
        self, processes: Sequence[ProcessSnapshot], total_memory: int
    ) -> list[MetricCorrelation]:
        if total_memory <= 0:
            return []

        top = sorted(processes, key=lambda p: p.memory_bytes, reverse=True)[
            :MEMORY_CANDIDATES
        ]
        correlations = []
        for proc in top:
            ratio = proc.memory_bytes / total_memory
            if ratio <= MEMORY_RATIO_FLOOR:
                continue
            correlations.append(
                MetricCorrelation(
                    metric=MEMORY_METRIC,
                    process=proc,
                    strength=min(ratio * 2, 1.0),
                    description=describe_memory_usage(proc, ratio),
                )
            )
        return correlations

    # -- Disk --------------------------------------------------------------

    def _correlate_disk(
        self, processes: Sequence[ProcessSnapshot]
    ) -> list[MetricCorrelation]:
        top = sorted(processes, key=lambda p: p.disk_bytes, reverse=True)[:DISK_CANDIDATES]
        return [
            MetricCorrelation(
                metric=DISK_METRIC,
                process=proc,
                strength=DISK_STRENGTH,
                description=describe_disk_usage(proc),
            )
            for proc in top
            if proc.disk_bytes > DISK_BYTES_FLOOR
        ]


def describe_cpu_usage(proc: ProcessSnapshot) -> str:
    name = proc.display_name
    usage = int(proc.cpu_usage)
    lowered = name.lower()

    if proc.category == ProcessCategory.BROWSER:
        return f"{name} is using {usage}% CPU, likely many tabs or heavy extensions"
    if proc.category == ProcessCategory.DEVELOPER:
        if "xcode" in lowered:
            return f"{name} is using {usage}% CPU, probably building or indexing"
        if "docker" in lowered:
            return f"Docker is using {usage}% CPU, containers are busy"
        return f"{name} is using {usage}% CPU"
    if proc.category == ProcessCategory.SYSTEM:
        if name == "kernel_task":
            return f"kernel_task is using {usage}% CPU, the system may be thermal throttling"
        if "mds" in name or "Spotlight" in name:
            return f"Spotlight is indexing, using {usage}% CPU"
        return f"{name} is using {usage}% CPU"
    if proc.category == ProcessCategory.AIML:
        return f"{name} is running an AI/ML workload at {usage}% CPU"
    if proc.category == ProcessCategory.CONTAINER:
        return f"{name} container is active at {usage}% CPU"
    return f"{name} is using {usage}% CPU"


def describe_memory_usage(proc: ProcessSnapshot, ratio: float) -> str:
    name = proc.display_name
    if proc.memory_gb >= 1:
        return f"{name} holds {proc.memory_gb:.1f}GB RAM ({int(ratio * 100)}% of total memory)"
    return f"{name} is using {int(proc.memory_bytes / MIB)}MB RAM"


def describe_disk_usage(proc: ProcessSnapshot) -> str:
    name = proc.display_name
    if "mds" in name or "Spotlight" in name:
        return "Spotlight is indexing files, causing heavy disk I/O"
    if "backupd" in name or "Time Machine" in name:
        return "Time Machine is backing up, disk I/O will stay high for a while"
    if "bird" in name or "cloudd" in name:
        return "iCloud is syncing files, which can cause disk I/O"
    return f"{name} is reading and writing the disk heavily"
