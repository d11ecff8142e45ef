"""Enumerations for xexplain system and insight models."""

from enum import Enum


class MemoryPressureLevel(str, Enum):
    """Kernel-reported memory pressure."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class ThermalStateLevel(str, Enum):
    """Four-level thermal state as reported by the OS."""

    NOMINAL = "nominal"
    FAIR = "fair"
    SERIOUS = "serious"
    CRITICAL = "critical"


class CoreType(str, Enum):
    """Performance or efficiency core."""

    PERFORMANCE = "P"
    EFFICIENCY = "E"
    UNKNOWN = "?"


class ProcessCategory(str, Enum):
    """Coarse classification of a running process."""

    BROWSER = "browser"
    DEVELOPER = "developer"
    PRODUCTIVITY = "productivity"
    MEDIA = "media"
    COMMUNICATION = "communication"
    SYSTEM = "system"
    UTILITIES = "utilities"
    AIML = "ai-ml"
    CONTAINER = "container"
    OTHER = "other"


class ThrottleReason(str, Enum):
    """Why the CPU frequency is being reduced."""

    NONE = "none"
    THERMAL = "thermal"
    POWER = "power-limit"
    BATTERY_HEALTH = "battery-health"
    UNKNOWN = "unknown"


class InsightCategory(str, Enum):
    """Grouping used when rendering insights."""

    PERFORMANCE = "performance"
    STORAGE = "storage"
    NETWORK = "network"
    EFFICIENCY = "efficiency"
    DEVELOPER = "developer"
    THERMAL = "thermal"


class InsightType(str, Enum):
    """Closed set of findings the engine can report. One per type per analysis."""

    CPU_SATURATION = "cpu_saturation"
    MEMORY_PRESSURE = "memory_pressure"
    IO_BOTTLENECK = "io_bottleneck"
    THERMAL_THROTTLING = "thermal_throttling"
    CORE_IMBALANCE = "core_imbalance"
    DEV_LOOP_DETECTED = "dev_loop_detected"
    IO_AMPLIFICATION = "io_amplification"
    ML_WORKLOAD_FALLBACK = "ml_workload_fallback"
    BUILD_IN_PROGRESS = "build_in_progress"
    SILENT_THROTTLING = "silent_throttling"
    ENERGY_INEFFICIENCY = "energy_inefficiency"
    ENVIRONMENTAL_HEAT = "environmental_heat"
    THERMAL_FORECAST = "thermal_forecast"
    BACKGROUND_MISBEHAVIOR = "background_misbehavior"
    NETWORK_HOG = "network_hog"
    BATTERY_DRAIN = "battery_drain"
    DISK_FULL = "disk_full"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]

    @property
    def category(self) -> InsightCategory:
        return _TYPE_CATEGORIES[self]


_TYPE_LABELS: dict[InsightType, str] = {
    InsightType.CPU_SATURATION: "CPU Saturation",
    InsightType.MEMORY_PRESSURE: "Memory Pressure",
    InsightType.IO_BOTTLENECK: "I/O Bottleneck",
    InsightType.THERMAL_THROTTLING: "Thermal Throttling",
    InsightType.CORE_IMBALANCE: "Core Imbalance",
    InsightType.DEV_LOOP_DETECTED: "Dev Loop Detected",
    InsightType.IO_AMPLIFICATION: "I/O Amplification",
    InsightType.ML_WORKLOAD_FALLBACK: "ML Workload Fallback",
    InsightType.BUILD_IN_PROGRESS: "Build In Progress",
    InsightType.SILENT_THROTTLING: "Silent Throttling",
    InsightType.ENERGY_INEFFICIENCY: "Energy Inefficiency",
    InsightType.ENVIRONMENTAL_HEAT: "Environmental Heat",
    InsightType.THERMAL_FORECAST: "Thermal Forecast",
    InsightType.BACKGROUND_MISBEHAVIOR: "Background Misbehavior",
    InsightType.NETWORK_HOG: "Network Hog",
    InsightType.BATTERY_DRAIN: "Battery Drain",
    InsightType.DISK_FULL: "Disk Full",
}

_TYPE_CATEGORIES: dict[InsightType, InsightCategory] = {
    InsightType.CPU_SATURATION: InsightCategory.PERFORMANCE,
    InsightType.MEMORY_PRESSURE: InsightCategory.PERFORMANCE,
    InsightType.THERMAL_THROTTLING: InsightCategory.PERFORMANCE,
    InsightType.CORE_IMBALANCE: InsightCategory.PERFORMANCE,
    InsightType.IO_BOTTLENECK: InsightCategory.STORAGE,
    InsightType.DISK_FULL: InsightCategory.STORAGE,
    InsightType.IO_AMPLIFICATION: InsightCategory.STORAGE,
    InsightType.NETWORK_HOG: InsightCategory.NETWORK,
    InsightType.BACKGROUND_MISBEHAVIOR: InsightCategory.EFFICIENCY,
    InsightType.BATTERY_DRAIN: InsightCategory.EFFICIENCY,
    InsightType.ENERGY_INEFFICIENCY: InsightCategory.EFFICIENCY,
    InsightType.DEV_LOOP_DETECTED: InsightCategory.DEVELOPER,
    InsightType.ML_WORKLOAD_FALLBACK: InsightCategory.DEVELOPER,
    InsightType.BUILD_IN_PROGRESS: InsightCategory.DEVELOPER,
    InsightType.SILENT_THROTTLING: InsightCategory.THERMAL,
    InsightType.ENVIRONMENTAL_HEAT: InsightCategory.THERMAL,
    InsightType.THERMAL_FORECAST: InsightCategory.THERMAL,
}


class Severity(str, Enum):
    """Insight severity. Ordered info < warning < critical via ``priority``."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def priority(self) -> int:
        return _SEVERITY_PRIORITY[self]


_SEVERITY_PRIORITY: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
}


class ActionSafety(str, Enum):
    """How safe it is to carry out a suggested action."""

    SAFE = "safe"
    CAUTION = "caution"
    DANGEROUS = "dangerous"


class InsightAudience(str, Enum):
    """Who an insight (and the rule bundle producing it) is meant for."""

    GENERAL = "general"
    DEVELOPER = "developer"
    POWER = "power"


class ActionKind(str, Enum):
    """What a suggested action does when carried out."""

    QUIT_APP = "quit_app"
    FORCE_QUIT_APP = "force_quit_app"
    PAUSE_PROCESS = "pause_process"
    REDUCE_LOAD = "reduce_load"
    OPEN_SYSTEM_SETTINGS = "open_system_settings"
    OPEN_ACTIVITY_MONITOR = "open_activity_monitor"
    RUN_TERMINAL_COMMAND = "run_terminal_command"
    NONE = "none"


class MetricTrend(str, Enum):
    """Coarse direction of a metric over the last few samples."""

    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"
