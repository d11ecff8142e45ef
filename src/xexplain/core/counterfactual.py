"""Back-fill "what if" projections for insights that lack one."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence

from xexplain.models.enums import CoreType, InsightType
from xexplain.models.insight import Counterfactual, ExplainInsight
from xexplain.models.system import GIB, NormalizedMetrics, ProcessSnapshot
from xexplain.rules.base import mean

REBUILD_TOOL_NAMES = ("node", "esbuild", "vite", "webpack")

_Generator = Callable[[NormalizedMetrics, Sequence[ProcessSnapshot]], "Counterfactual | None"]


def cpu_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    if not processes or metrics.cpu_usage <= 0:
        return None
    top = max(processes, key=lambda p: p.cpu_usage)
    if top.cpu_usage <= 20:
        return None

    reduction = top.cpu_usage
    new_cpu = max(0.0, metrics.cpu_usage - reduction)
    return Counterfactual(
        action=f"Quit {top.display_name}",
        expected_outcome=f"CPU drops from {metrics.cpu_usage:.0f}% to ~{new_cpu:.0f}%",
        quantified_impact=f"-{reduction:.0f}%",
        confidence=min(0.9, reduction / metrics.cpu_usage),
        time_to_effect=2.0,
    )


def memory_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    if not processes:
        return None
    top = max(processes, key=lambda p: p.memory_bytes)
    memory_gb = top.memory_bytes / GIB
    if memory_gb <= 0.5:
        return None
    return Counterfactual(
        action=f"Quit {top.display_name}",
        expected_outcome=f"Frees {memory_gb:.1f}GB RAM",
        quantified_impact=f"+{memory_gb:.1f}GB",
        confidence=0.95,
        time_to_effect=1.0,
    )


def thermal_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    return Counterfactual(
        action="Reduce workload by 50%",
        expected_outcome=(
            f"Temperature drops ~{metrics.cpu_temperature * 0.15:.0f}°C within 2-3 minutes"
        ),
        quantified_impact="-15%",
        confidence=0.7,
        time_to_effect=180.0,
    )


def io_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    return Counterfactual(
        action="Wait for completion or pause heavy tasks",
        expected_outcome=f"Disk I/O drops from {metrics.total_disk_io:.0f}MB/s",
        confidence=0.6,
        time_to_effect=60.0,
    )


def dev_loop_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    if not any(
        needle in p.name.lower() for p in processes for needle in REBUILD_TOOL_NAMES
    ):
        return None
    return Counterfactual(
        action="Optimize file watcher config (ignore node_modules, .git)",
        expected_outcome="Fewer rebuild loops and CPU spikes",
        quantified_impact="-30% CPU",
        confidence=0.75,
        time_to_effect=0.0,
    )


def core_imbalance_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    p_cores = [c.usage for c in metrics.core_usages if c.core_type == CoreType.PERFORMANCE]
    e_cores = [c.usage for c in metrics.core_usages if c.core_type == CoreType.EFFICIENCY]
    if not p_cores or not e_cores:
        return None
    if mean(p_cores) < 30 and mean(e_cores) > 70:
        return Counterfactual(
            action="Move the workload onto P-cores",
            expected_outcome="Performance cores get used and throughput rises",
            quantified_impact="~2x faster",
            confidence=0.65,
        )
    return None


def ml_workload_counterfactual(
    metrics: NormalizedMetrics, processes: Sequence[ProcessSnapshot]
) -> Counterfactual | None:
    return Counterfactual(
        action="Use Metal/ANE instead of the CPU",
        expected_outcome="Faster AI inference and longer battery life",
        quantified_impact="~5x faster, -60% power",
        confidence=0.8,
    )


GENERATORS: dict[InsightType, _Generator] = {
    InsightType.CPU_SATURATION: cpu_counterfactual,
    InsightType.MEMORY_PRESSURE: memory_counterfactual,
    InsightType.THERMAL_THROTTLING: thermal_counterfactual,
    InsightType.SILENT_THROTTLING: thermal_counterfactual,
    InsightType.IO_BOTTLENECK: io_counterfactual,
    InsightType.IO_AMPLIFICATION: io_counterfactual,
    InsightType.DEV_LOOP_DETECTED: dev_loop_counterfactual,
    InsightType.CORE_IMBALANCE: core_imbalance_counterfactual,
    InsightType.ML_WORKLOAD_FALLBACK: ml_workload_counterfactual,
}


class CounterfactualAnalyzer:
    """Attaches a type-specific counterfactual to insights that have none."""

    def enhance(
        self,
        insight: ExplainInsight,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
    ) -> ExplainInsight:
        if insight.counterfactual is not None:
            return insight
        generator = GENERATORS.get(insight.type)
        if generator is None:
            return insight
        counterfactual = generator(metrics, processes)
        if counterfactual is None:
            return insight
        return dataclasses.replace(insight, counterfactual=counterfactual)
