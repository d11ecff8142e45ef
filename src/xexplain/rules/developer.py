"""Developer-audience rules: core scheduling, rebuild loops, I/O and ML backends."""

from __future__ import annotations

from collections.abc import Sequence

from xexplain.models.context import EvaluationContext
from xexplain.models.enums import (
    CoreType,
    InsightAudience,
    InsightType,
    ProcessCategory,
    Severity,
)
from xexplain.models.insight import (
    Counterfactual,
    ExplainAction,
    ExplainInsight,
    MetricSnapshot,
)
from xexplain.models.system import NormalizedMetrics, ProcessSnapshot
from xexplain.rules.base import BaseRule, mean

DEV_TOOL_NAMES = ("node", "esbuild", "vite", "webpack", "tsc", "swc", "turbopack")
ML_PROCESS_NAMES = ("python", "mlc", "ollama", "llama")
WATCHER_NAMES = ("fsevents", "watchman", "fs.watch")

SPIKE_RATIO = 1.3
SPIKE_WINDOW = 10
MIN_SPIKE_SAMPLES = 5
MIN_SPIKES = 2


def _name_matches(proc: ProcessSnapshot, needles: Sequence[str]) -> bool:
    name = proc.name.lower()
    return any(n in name for n in needles)


def is_watcher_process(proc: ProcessSnapshot) -> bool:
    """File-watcher by name, or any developer-category process."""
    return _name_matches(proc, WATCHER_NAMES) or proc.category == ProcessCategory.DEVELOPER


def count_spikes(values: Sequence[float]) -> int:
    """Count interior samples more than 1.3x both neighbours."""
    return sum(
        1
        for prev, curr, nxt in zip(values, values[1:], values[2:])
        if curr > prev * SPIKE_RATIO and curr > nxt * SPIKE_RATIO
    )


class CoreImbalanceRule(BaseRule):
    """Work landing on the wrong core class."""

    id = "core_imbalance"
    name = "Core Imbalance"
    audience = InsightAudience.DEVELOPER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        p_cores = [c.usage for c in metrics.core_usages if c.core_type == CoreType.PERFORMANCE]
        e_cores = [c.usage for c in metrics.core_usages if c.core_type == CoreType.EFFICIENCY]
        if not p_cores or not e_cores:
            return None

        avg_p = mean(p_cores)
        avg_e = mean(e_cores)
        related = (
            MetricSnapshot("P-Core Avg", avg_p, "%"),
            MetricSnapshot("E-Core Avg", avg_e, "%"),
        )

        if avg_p < 30 and avg_e > 60 and metrics.cpu_usage > 50:
            return ExplainInsight(
                symptom="Performance cores are idle",
                root_cause="Workload is single-thread bound or not tuned for P/E scheduling",
                explanation=(
                    f"P-cores ({avg_p:.0f}%) sit idle while E-cores ({avg_e:.0f}%) are busy. "
                    "The workload may not be parallelized well."
                ),
                confidence=0.75,
                type=InsightType.CORE_IMBALANCE,
                severity=Severity.WARNING,
                counterfactual=Counterfactual(
                    action="Parallelize workload",
                    expected_outcome="Use the P-cores and roughly double throughput",
                    quantified_impact="+100% performance",
                    confidence=0.7,
                ),
                audience=InsightAudience.DEVELOPER,
                suggested_actions=(
                    ExplainAction(
                        title="Review the thread model",
                        description="The app may be running single-threaded",
                        impact="Multi-threading could give 2-4x",
                    ),
                ),
                related_metrics=related,
            )

        if avg_p > 70 and avg_e < 20 and metrics.cpu_usage < 50:
            return ExplainInsight(
                symptom="Efficiency cores are unused",
                root_cause="A light workload is running on P-cores instead of E-cores",
                explanation=(
                    "The load is light but lives on P-cores, which costs battery. "
                    "The scheduler usually fixes this, but some apps pin themselves."
                ),
                confidence=0.65,
                type=InsightType.CORE_IMBALANCE,
                severity=Severity.INFO,
                audience=InsightAudience.DEVELOPER,
                related_metrics=related,
            )

        return None


class DevLoopRule(BaseRule):
    """Hot-reload loop: dev tools busy, disk reads high and CPU spiking."""

    id = "dev_loop"
    name = "Dev Loop Detection"
    audience = InsightAudience.DEVELOPER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        dev_procs = [p for p in processes if _name_matches(p, DEV_TOOL_NAMES)]
        if not dev_procs:
            return None

        dev_cpu = sum(p.cpu_usage for p in dev_procs)
        if dev_cpu <= 30 or metrics.disk_read_rate <= 20:
            return None

        cpu_history = [m.cpu_usage for m in context.metrics_history[-SPIKE_WINDOW:]]
        if len(cpu_history) < MIN_SPIKE_SAMPLES or count_spikes(cpu_history) < MIN_SPIKES:
            return None

        return ExplainInsight(
            symptom="A hot-reload loop is causing CPU spikes",
            root_cause="Dev tools keep rebuilding",
            explanation=(
                "A repeating save, rebuild, reload pattern was detected. "
                "The file watcher may be triggering too many rebuilds."
            ),
            confidence=0.7,
            type=InsightType.DEV_LOOP_DETECTED,
            severity=Severity.WARNING,
            counterfactual=Counterfactual(
                action="Optimize file watcher (ignore node_modules, .git, dist)",
                expected_outcome="Fewer unnecessary rebuilds",
                quantified_impact="-40% CPU",
                confidence=0.75,
            ),
            audience=InsightAudience.DEVELOPER,
            suggested_actions=(
                ExplainAction(
                    title="Add ignore patterns",
                    description="Exclude node_modules, .git and dist from the watcher",
                    impact="Much lower CPU usage",
                ),
                ExplainAction(
                    title="Use incremental builds",
                    description="Enable caching in the build tool",
                    impact="Builds 2-5x faster",
                ),
            ),
            affected_processes=tuple(p.name for p in dev_procs),
        )


class IOAmplificationRule(BaseRule):
    """Reads far outpacing writes over the last five samples."""

    id = "io_amplification"
    name = "I/O Amplification"
    audience = InsightAudience.DEVELOPER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if len(context.metrics_history) < 5:
            return None

        recent = context.metrics_history[-5:]
        avg_read = mean([m.disk_read_rate for m in recent])
        avg_write = mean([m.disk_write_rate for m in recent])
        if avg_write <= 5 or avg_read <= avg_write * 10:
            return None

        watchers = [p for p in processes if is_watcher_process(p)]

        return ExplainInsight(
            symptom="I/O amplification detected",
            root_cause="A single write is triggering many reads (file watcher pattern)",
            explanation=(
                f"Write: {avg_write:.0f}MB/s but Read: {avg_read:.0f}MB/s. "
                "File watchers may be rescanning whole directories."
            ),
            confidence=0.7,
            type=InsightType.IO_AMPLIFICATION,
            severity=Severity.WARNING,
            counterfactual=Counterfactual(
                action="Limit file watcher scope",
                expected_outcome="Far fewer disk reads",
                quantified_impact=f"-{avg_read * 0.7:.0f}MB/s reads",
                confidence=0.7,
            ),
            audience=InsightAudience.DEVELOPER,
            suggested_actions=(
                ExplainAction(
                    title="Configure .watchmanconfig",
                    description="Ignore large directories",
                    impact="Fewer I/O spikes",
                ),
            ),
            affected_processes=tuple(p.name for p in watchers),
        )


class MLWorkloadRule(BaseRule):
    """ML inference burning CPU with no GPU or neural engine in use."""

    id = "ml_workload"
    name = "ML Workload Fallback"
    audience = InsightAudience.DEVELOPER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        ml_procs = [
            p
            for p in processes
            if p.category == ProcessCategory.AIML or _name_matches(p, ML_PROCESS_NAMES)
        ]
        if not ml_procs:
            return None

        ml_cpu = sum(p.cpu_usage for p in ml_procs)
        if ml_cpu <= 50 or metrics.is_using_metal or metrics.is_using_ane:
            return None

        return ExplainInsight(
            symptom="AI/ML is running on the CPU",
            root_cause="Model inference fell back to the CPU instead of Metal/ANE",
            explanation=(
                f"The ML workload uses {ml_cpu:.0f}% CPU without the GPU or Neural Engine. "
                "The model may not be built for this hardware."
            ),
            confidence=0.75,
            type=InsightType.ML_WORKLOAD_FALLBACK,
            severity=Severity.WARNING,
            counterfactual=Counterfactual(
                action="Use a Metal/CoreML backend",
                expected_outcome="Faster inference and less battery drain",
                quantified_impact="~5x faster, -60% power",
                confidence=0.8,
            ),
            audience=InsightAudience.DEVELOPER,
            suggested_actions=(
                ExplainAction(
                    title="Check Metal support",
                    description="Make sure the framework has a Metal backend",
                    impact="5-10x faster inference",
                ),
                ExplainAction(
                    title="Convert to CoreML",
                    description="Use coremltools to convert the model",
                    impact="Runs on the Neural Engine",
                ),
            ),
            affected_processes=tuple(p.name for p in ml_procs),
            related_metrics=(
                MetricSnapshot("ML CPU Usage", ml_cpu, "%"),
                MetricSnapshot("GPU Usage", metrics.gpu_usage, "%"),
            ),
        )
