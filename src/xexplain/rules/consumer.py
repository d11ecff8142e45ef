"""Always-on rules: CPU, memory, disk I/O and thermal throttling."""

from __future__ import annotations

from collections.abc import Sequence

from xexplain.core.correlation import DISK_METRIC
from xexplain.models.context import EvaluationContext, MetricCorrelation
from xexplain.models.enums import (
    ActionKind,
    ActionSafety,
    InsightType,
    MemoryPressureLevel,
    ProcessCategory,
    Severity,
    ThermalStateLevel,
)
from xexplain.models.insight import ExplainAction, ExplainInsight, MetricSnapshot
from xexplain.models.system import GIB, MIB, NormalizedMetrics, ProcessSnapshot
from xexplain.rules.base import BaseRule

CPU_SATURATION_THRESHOLD = 80.0
CPU_CRITICAL_THRESHOLD = 95.0
IO_BOTTLENECK_MBPS = 100.0
IO_CRITICAL_MBPS = 200.0
TOP_N = 5


class CPUSaturationRule(BaseRule):
    """Overall CPU above 80%; blames the busiest process."""

    id = "cpu_saturation"
    name = "CPU Saturation"

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if metrics.cpu_usage <= CPU_SATURATION_THRESHOLD:
            return None

        top = sorted(processes, key=lambda p: p.cpu_usage, reverse=True)[:TOP_N]
        if not top:
            return None
        leader = top[0]

        severity = (
            Severity.CRITICAL if metrics.cpu_usage > CPU_CRITICAL_THRESHOLD else Severity.WARNING
        )
        safety = ActionSafety.CAUTION if leader.is_system_process else ActionSafety.SAFE

        actions = []
        if leader.cpu_usage > 50:
            actions.append(
                ExplainAction(
                    title=f"Quit {leader.display_name}",
                    description="This app is using the most CPU",
                    impact=f"Frees ~{int(leader.cpu_usage)}% CPU",
                    safety=safety,
                    kind=ActionKind.QUIT_APP,
                    process_name=leader.name,
                    pid=leader.pid,
                )
            )
        actions.append(
            ExplainAction(
                title="Open Activity Monitor",
                description="Inspect every running process",
                kind=ActionKind.OPEN_ACTIVITY_MONITOR,
            )
        )

        return ExplainInsight(
            symptom=f"CPU is saturated ({int(metrics.cpu_usage)}%)",
            root_cause=f"{leader.display_name} is using {int(leader.cpu_usage)}% CPU",
            explanation=_describe_cpu_leader(leader),
            confidence=0.85,
            type=InsightType.CPU_SATURATION,
            severity=severity,
            action_safety=safety,
            suggested_actions=tuple(actions),
            affected_processes=tuple(p.name for p in top),
            related_metrics=(
                MetricSnapshot("CPU Usage", metrics.cpu_usage, "%"),
                MetricSnapshot("Top Process CPU", leader.cpu_usage, "%"),
            ),
        )


def _describe_cpu_leader(proc: ProcessSnapshot) -> str:
    name = proc.display_name
    cpu = int(proc.cpu_usage)

    if name == "kernel_task" and cpu > 30:
        return (
            "The system is thermal throttling to cool down. "
            "CPU load needs to drop to avoid overheating."
        )

    if proc.category == ProcessCategory.BROWSER:
        return f"{name} is consuming {cpu}% CPU. Many open tabs or a heavy extension are likely."
    if proc.category == ProcessCategory.DEVELOPER:
        if "xcode" in name.lower() or "clang" in name or "swift" in name:
            return f"Xcode is compiling, using {cpu}% CPU. The build should finish soon."
        if "docker" in name.lower():
            return f"Docker containers are busy, using {cpu}% CPU."
        return f"{name} is using {cpu}% CPU, probably building or processing."
    if proc.category == ProcessCategory.AIML:
        return f"{name} is running an AI/ML workload at {cpu}% CPU."
    return f"{name} is using {cpu}% CPU, most of the available processing power."


class MemoryPressureRule(BaseRule):
    """Memory pressure above normal; names the largest resident process."""

    id = "memory_pressure"
    name = "Memory Pressure"

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if metrics.memory_pressure == MemoryPressureLevel.NORMAL:
            return None

        top = sorted(processes, key=lambda p: p.memory_bytes, reverse=True)[:TOP_N]
        if not top:
            return None
        leader = top[0]

        severity = (
            Severity.CRITICAL
            if metrics.memory_pressure == MemoryPressureLevel.CRITICAL
            else Severity.WARNING
        )

        actions = []
        if leader.memory_gb > 1:
            actions.append(
                ExplainAction(
                    title=f"Quit {leader.display_name}",
                    description="This app holds the most RAM",
                    impact=f"Frees ~{leader.memory_gb:.1f}GB RAM",
                    safety=ActionSafety.CAUTION if leader.is_system_process else ActionSafety.SAFE,
                    kind=ActionKind.QUIT_APP,
                    process_name=leader.name,
                    pid=leader.pid,
                )
            )

        return ExplainInsight(
            symptom=f"Memory is under {metrics.memory_pressure.value} pressure",
            root_cause=f"{leader.display_name} holds {leader.memory_gb:.1f}GB RAM",
            explanation=_describe_memory(leader, metrics),
            confidence=0.9,
            type=InsightType.MEMORY_PRESSURE,
            severity=severity,
            suggested_actions=tuple(actions),
            affected_processes=tuple(p.name for p in top),
            related_metrics=(
                MetricSnapshot("Memory Usage", metrics.memory_usage_percent, "%"),
                MetricSnapshot("Swap Used", metrics.swap_used_bytes / MIB, "MB"),
            ),
        )


def _describe_memory(leader: ProcessSnapshot, metrics: NormalizedMetrics) -> str:
    total_gb = metrics.memory_total_bytes / GIB
    used_gb = metrics.memory_used_bytes / GIB
    swap_mb = metrics.swap_used_bytes / MIB

    parts = [f"Using {used_gb:.1f}GB / {total_gb:.0f}GB RAM."]
    if swap_mb > 100:
        parts.append(f"The system is using {swap_mb:.0f}MB of swap, which slows things down.")
    if leader.memory_gb > 2:
        parts.append(f"{leader.display_name} holds {leader.memory_gb:.1f}GB.")
    return " ".join(parts)


class IOBottleneckRule(BaseRule):
    """Combined disk throughput above 100 MB/s."""

    id = "io_bottleneck"
    name = "I/O Bottleneck"

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        total_io = metrics.total_disk_io
        if total_io <= IO_BOTTLENECK_MBPS:
            return None

        severity = Severity.CRITICAL if total_io > IO_CRITICAL_MBPS else Severity.WARNING

        return ExplainInsight(
            symptom=f"Heavy disk I/O ({total_io:.0f} MB/s)",
            root_cause=(
                f"Read: {metrics.disk_read_rate:.0f}MB/s, "
                f"Write: {metrics.disk_write_rate:.0f}MB/s"
            ),
            explanation=_describe_io(metrics, context.correlations),
            confidence=0.8,
            type=InsightType.IO_BOTTLENECK,
            severity=severity,
            suggested_actions=(
                ExplainAction(
                    title="Wait for it to finish",
                    description="Disk I/O usually settles after a few minutes",
                    kind=ActionKind.REDUCE_LOAD,
                    suggestions=(
                        "Avoid copying other large files",
                        "Let Spotlight finish indexing",
                    ),
                ),
            ),
            related_metrics=(
                MetricSnapshot("Disk Read", metrics.disk_read_rate, "MB/s"),
                MetricSnapshot("Disk Write", metrics.disk_write_rate, "MB/s"),
            ),
        )


def _describe_io(
    metrics: NormalizedMetrics, correlations: Sequence[MetricCorrelation]
) -> str:
    for correlation in correlations:
        if correlation.metric == DISK_METRIC:
            return correlation.description

    if metrics.disk_write_rate > metrics.disk_read_rate * 2:
        return "Writing a lot of data. Possibly a backup, a download, or an app saving large files."
    if metrics.disk_read_rate > metrics.disk_write_rate * 2:
        return "Reading a lot of data. Possibly an app loading files or Spotlight indexing."
    return "The disk is busy with both reads and writes. The system may feel slower."


class ThermalThrottlingRule(BaseRule):
    """Thermal state serious or critical."""

    id = "thermal_throttling"
    name = "Thermal Throttling"

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if metrics.thermal_state not in (ThermalStateLevel.SERIOUS, ThermalStateLevel.CRITICAL):
            return None

        severity = (
            Severity.CRITICAL
            if metrics.thermal_state == ThermalStateLevel.CRITICAL
            else Severity.WARNING
        )

        return ExplainInsight(
            symptom="The machine is overheating and the CPU is throttling",
            root_cause=f"CPU temperature: {metrics.cpu_temperature:.0f}°C",
            explanation=_describe_thermal(metrics),
            confidence=0.95,
            type=InsightType.THERMAL_THROTTLING,
            severity=severity,
            suggested_actions=(
                ExplainAction(
                    title="Reduce CPU load",
                    description="Close apps you do not need",
                    impact="Helps the CPU cool down",
                    kind=ActionKind.REDUCE_LOAD,
                    suggestions=(
                        "Close unused browser tabs",
                        "Pause downloads and uploads",
                        "Quit heavy apps",
                    ),
                ),
                ExplainAction(
                    title="Improve airflow",
                    description="Give the machine room to breathe",
                    impact="Better heat dissipation",
                    kind=ActionKind.REDUCE_LOAD,
                    suggestions=(
                        "Do not rest it on blankets or pillows",
                        "Use a laptop stand",
                        "Keep it out of direct sunlight",
                    ),
                ),
            ),
            related_metrics=(
                MetricSnapshot("CPU Temperature", metrics.cpu_temperature, "°C"),
                MetricSnapshot("Fan Speed", float(metrics.fan_speed), "RPM"),
            ),
        )


def _describe_thermal(metrics: NormalizedMetrics) -> str:
    desc = f"Thermal state is {metrics.thermal_state.value}. "
    if metrics.thermal_state == ThermalStateLevel.CRITICAL:
        desc += "The CPU is being slowed down hard to cool off. Performance will drop noticeably."
    else:
        desc += "The CPU may lose performance to avoid overheating."
    if metrics.fan_speed > 0:
        desc += f" Fans are running at {metrics.fan_speed} RPM."
    return desc
