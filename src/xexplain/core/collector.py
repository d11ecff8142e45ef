"""System metrics and process capture via psutil."""

from __future__ import annotations

import logging
import time

import psutil

from xexplain.config import CollectorConfig
from xexplain.models.enums import (
    CoreType,
    MemoryPressureLevel,
    ProcessCategory,
    ThermalStateLevel,
)
from xexplain.models.system import MIB, CoreUsage, NormalizedMetrics, ProcessSnapshot

logger = logging.getLogger("xexplain.collector")

_PROC_ATTRS = ["pid", "name", "username", "ppid", "num_threads", "memory_info"]

_CATEGORY_KEYWORDS: tuple[tuple[ProcessCategory, tuple[str, ...]], ...] = (
    (ProcessCategory.BROWSER, ("safari", "chrome", "firefox", "edge", "brave", "arc")),
    (ProcessCategory.AIML, ("ollama", "llama", "mlx", "lmstudio")),
    (
        ProcessCategory.DEVELOPER,
        ("xcode", "swift", "clang", "lldb", "simulat", "node", "npm", "python",
         "ruby", "cargo", "gradle", "java", "code"),
    ),
    (ProcessCategory.CONTAINER, ("docker", "podman", "containerd")),
    (ProcessCategory.COMMUNICATION, ("slack", "teams", "zoom", "discord", "telegram")),
    (ProcessCategory.MEDIA, ("spotify", "music", "vlc", "iina")),
    (ProcessCategory.SYSTEM, ("kernel", "launchd", "windowserver", "systemd")),
)

_SYSTEM_USERS = frozenset({"root", "SYSTEM", "NT AUTHORITY\\SYSTEM"})

# Preferred sensor groups, most specific first
_CPU_SENSORS = ("coretemp", "k10temp", "cpu_thermal", "cpu-thermal", "zenpower", "acpitz")


def detect_category(name: str) -> ProcessCategory:
    """Classify a process by keywords in its name."""
    lowered = name.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in lowered for k in keywords):
            return category
    return ProcessCategory.OTHER


def memory_pressure_for(percent: float) -> MemoryPressureLevel:
    if percent >= 90:
        return MemoryPressureLevel.CRITICAL
    if percent >= 75:
        return MemoryPressureLevel.WARNING
    return MemoryPressureLevel.NORMAL


def thermal_state_for(temperature: float) -> ThermalStateLevel:
    if temperature >= 95:
        return ThermalStateLevel.CRITICAL
    if temperature >= 85:
        return ThermalStateLevel.SERIOUS
    if temperature >= 70:
        return ThermalStateLevel.FAIR
    return ThermalStateLevel.NOMINAL


def _read_temperature() -> float:
    """Hottest CPU sensor reading in °C, or 0.0 when sensors are unavailable."""
    reader = getattr(psutil, "sensors_temperatures", None)
    if reader is None:
        return 0.0
    try:
        groups = reader()
    except (OSError, RuntimeError):
        logger.debug("Temperature sensors unreadable", exc_info=True)
        return 0.0
    if not groups:
        return 0.0

    entries = next((groups[k] for k in _CPU_SENSORS if groups.get(k)), None)
    if entries is None:
        entries = [e for group in groups.values() for e in group]
    readings = [e.current for e in entries if e.current is not None]
    return float(max(readings)) if readings else 0.0


def _read_fan_speed() -> int:
    reader = getattr(psutil, "sensors_fans", None)
    if reader is None:
        return 0
    try:
        groups = reader()
    except (OSError, RuntimeError):
        logger.debug("Fan sensors unreadable", exc_info=True)
        return 0
    speeds = [f.current for group in (groups or {}).values() for f in group]
    return int(max(speeds)) if speeds else 0


def _read_battery() -> tuple[float | None, bool]:
    reader = getattr(psutil, "sensors_battery", None)
    if reader is None:
        return None, False
    try:
        battery = reader()
    except (OSError, RuntimeError):
        logger.debug("Battery status unreadable", exc_info=True)
        return None, False
    if battery is None:
        return None, False
    return float(battery.percent), not battery.power_plugged


def _read_frequency() -> tuple[float | None, float | None]:
    try:
        freq = psutil.cpu_freq()
    except (OSError, NotImplementedError):
        logger.debug("CPU frequency unreadable", exc_info=True)
        return None, None
    if freq is None:
        return None, None
    return float(freq.current), (float(freq.max) if freq.max else None)


def _disk_counters() -> tuple[int, int] | None:
    try:
        counters = psutil.disk_io_counters()
    except (OSError, RuntimeError):
        logger.debug("Disk counters unreadable", exc_info=True)
        return None
    if counters is None:
        return None
    return counters.read_bytes, counters.write_bytes


def _net_counters() -> tuple[int, int] | None:
    try:
        counters = psutil.net_io_counters()
    except OSError:
        logger.debug("Network counters unreadable", exc_info=True)
        return None
    if counters is None:
        return None
    return counters.bytes_recv, counters.bytes_sent


def _rates(
    before: tuple[int, int] | None,
    after: tuple[int, int] | None,
    seconds: float,
) -> tuple[float, float]:
    """MB/s for two counter pairs taken ``seconds`` apart."""
    if before is None or after is None or seconds <= 0:
        return 0.0, 0.0
    return (
        max(0, after[0] - before[0]) / MIB / seconds,
        max(0, after[1] - before[1]) / MIB / seconds,
    )


def collect_metrics(config: CollectorConfig | None = None) -> NormalizedMetrics:
    """Sample system-wide metrics, blocking for ``cpu_sample_interval`` seconds."""
    cfg = config or CollectorConfig()

    disk_before = _disk_counters()
    net_before = _net_counters()
    per_core = psutil.cpu_percent(interval=cfg.cpu_sample_interval, percpu=True)
    disk_after = _disk_counters()
    net_after = _net_counters()

    disk_read, disk_write = _rates(disk_before, disk_after, cfg.cpu_sample_interval)
    net_down, net_up = _rates(net_before, net_after, cfg.cpu_sample_interval)

    cores = tuple(
        CoreUsage(core_index=i, core_type=CoreType.UNKNOWN, usage=float(u))
        for i, u in enumerate(per_core)
    )
    cpu = sum(per_core) / len(per_core) if per_core else 0.0
    times = psutil.cpu_times_percent(interval=None)

    vm = psutil.virtual_memory()
    swap = psutil.swap_memory()
    try:
        disk_percent = psutil.disk_usage("/").percent
    except OSError:
        logger.warning("Cannot read disk usage for /")
        disk_percent = 0.0

    temperature = _read_temperature()
    frequency, max_frequency = _read_frequency()
    battery_level, on_battery = _read_battery()

    return NormalizedMetrics(
        cpu_usage=round(cpu, 1),
        cpu_user_usage=float(times.user),
        cpu_system_usage=float(times.system),
        core_usages=cores,
        memory_usage_percent=float(vm.percent),
        memory_used_bytes=vm.used,
        memory_total_bytes=vm.total,
        memory_pressure=memory_pressure_for(vm.percent),
        swap_used_bytes=swap.used,
        disk_read_rate=round(disk_read, 2),
        disk_write_rate=round(disk_write, 2),
        disk_usage_percent=float(disk_percent),
        cpu_temperature=temperature,
        thermal_state=thermal_state_for(temperature),
        fan_speed=_read_fan_speed(),
        cpu_frequency_mhz=frequency,
        max_frequency_mhz=max_frequency,
        battery_level=battery_level,
        is_on_battery=on_battery,
        network_download_rate=round(net_down, 2),
        network_upload_rate=round(net_up, 2),
    )


def _to_snapshot(info: dict, cpu: float, io: tuple[int, int] = (0, 0)) -> ProcessSnapshot:
    pid = info["pid"]
    name = info.get("name") or f"pid-{pid}"
    mem = info.get("memory_info")
    username = info.get("username") or ""
    return ProcessSnapshot(
        pid=pid,
        name=name,
        cpu_usage=round(cpu, 1),
        memory_bytes=mem.rss if mem is not None else 0,
        disk_read_bytes=io[0],
        disk_write_bytes=io[1],
        category=detect_category(name),
        is_system_process=username in _SYSTEM_USERS or username.startswith("_"),
        parent_pid=info.get("ppid"),
        thread_count=info.get("num_threads") or 1,
    )


def _io_bytes(proc: psutil.Process) -> tuple[int, int]:
    if not hasattr(proc, "io_counters"):
        return 0, 0
    try:
        counters = proc.io_counters()
    except (psutil.AccessDenied, OSError):
        return 0, 0
    return counters.read_bytes, counters.write_bytes


def collect_processes(config: CollectorConfig | None = None) -> list[ProcessSnapshot]:
    """Top processes by CPU over one sampling interval."""
    cfg = config or CollectorConfig()

    # First cpu_percent call per process only primes the counter
    tracked = []
    for proc in psutil.process_iter(_PROC_ATTRS):
        try:
            proc.cpu_percent(None)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
        tracked.append(proc)

    time.sleep(cfg.cpu_sample_interval)

    snapshots = []
    for proc in tracked:
        try:
            cpu = proc.cpu_percent(None)
            snapshots.append(_to_snapshot(proc.info, cpu, _io_bytes(proc)))
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            logger.debug("Process %s exited during sampling", proc.pid)
        except psutil.AccessDenied:
            logger.debug("Access denied reading process %s", proc.pid)

    snapshots.sort(key=lambda s: s.cpu_usage, reverse=True)
    return snapshots[: cfg.top_processes]


def find_process(pid: int, config: CollectorConfig | None = None) -> ProcessSnapshot | None:
    """Snapshot a single process. Returns None if it is gone or unreadable."""
    cfg = config or CollectorConfig()
    try:
        proc = psutil.Process(pid)
        cpu = proc.cpu_percent(interval=cfg.cpu_sample_interval)
        info = proc.as_dict(attrs=_PROC_ATTRS)
        return _to_snapshot(info, cpu, _io_bytes(proc))
    except psutil.ZombieProcess:
        logger.warning("Zombie process %d", pid)
    except psutil.NoSuchProcess:
        logger.warning("Process %d does not exist", pid)
    except psutil.AccessDenied:
        logger.warning("Access denied reading process %d", pid)
    return None
