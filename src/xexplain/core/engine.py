"""Insight engine: rule registration, rolling histories and the analysis pipeline."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from xexplain.config import AnomalyConfig, EngineConfig, XExplainConfig
from xexplain.core.anomaly import AnomalyDetector
from xexplain.core.confidence import ConfidenceScorer
from xexplain.core.correlation import CorrelationEngine
from xexplain.core.counterfactual import CounterfactualAnalyzer
from xexplain.models.context import EvaluationContext
from xexplain.models.enums import (
    InsightAudience,
    InsightType,
    ProcessCategory,
    Severity,
    ThermalStateLevel,
)
from xexplain.models.insight import Counterfactual, ExplainInsight, ThermalPrediction
from xexplain.models.system import NormalizedMetrics, ProcessSnapshot, ThrottleInfo
from xexplain.rules.base import ExplainRule, mean
from xexplain.rules.consumer import CPUSaturationRule, ThermalThrottlingRule
from xexplain.rules.registry import audience_rules, default_rules

logger = logging.getLogger("xexplain.engine")

THROTTLE_TEMPERATURE = 90.0
SAMPLES_PER_MINUTE = 6.0
FORECAST_SAMPLES = 10
MIN_FORECAST_MINUTES = 0.5
FORECAST_ACTION = "Reduce workload or improve ventilation"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def temperature_trend(temps: Sequence[float]) -> float:
    """Mean of the second half minus mean of the first half."""
    half = len(temps) // 2
    if half == 0:
        return 0.0
    return mean(temps[-half:]) - mean(temps[:half])


def describe_process(proc: ProcessSnapshot) -> str:
    name = proc.display_name
    lowered = proc.name.lower()
    if proc.category == ProcessCategory.BROWSER:
        return f"{name} may be running many tabs or heavy extensions"
    if proc.category == ProcessCategory.DEVELOPER:
        if "xcode" in lowered:
            return "Xcode is compiling or indexing"
        if "docker" in lowered:
            return "Docker containers are active"
        return f"{name} is doing heavy work"
    if proc.category == ProcessCategory.AIML:
        return f"{name} is running an AI/ML workload"
    return f"{name} is using a lot of resources"


class ExplainEngine:
    """Turns metric and process snapshots into ranked insights.

    The engine owns its histories for its whole lifetime. All state is
    guarded by one lock so a single engine can be shared between a watch
    loop and on-demand queries.
    """

    def __init__(self, config: XExplainConfig | None = None) -> None:
        engine_config = config.engine if config else EngineConfig()
        anomaly_config = config.anomaly if config else AnomalyConfig()

        self._config = engine_config
        self._lock = threading.RLock()
        self._rules: list[ExplainRule] = []
        self._metrics_history: deque[NormalizedMetrics] = deque(
            maxlen=engine_config.metrics_history_limit
        )
        self._insight_history: deque[ExplainInsight] = deque(
            maxlen=engine_config.insight_history_limit
        )

        self._correlation = CorrelationEngine()
        self._anomaly = AnomalyDetector.from_config(anomaly_config)
        self._counterfactual = CounterfactualAnalyzer()
        self._scorer = ConfidenceScorer()

        self.register_default_rules()

    # -- registration ---------------------------------------------------------

    def register_default_rules(self) -> None:
        with self._lock:
            self._rules.extend(default_rules())

    def register_rules(self, audience: InsightAudience) -> None:
        """Append the rule bundle for ``audience``. Calling twice registers it twice."""
        bundle = audience_rules(audience)
        with self._lock:
            self._rules.extend(bundle)
        logger.debug("Registered %d %s rules", len(bundle), audience.value)

    def register_rule(self, rule: ExplainRule) -> None:
        """Append a custom rule.

        Rules run while the engine lock is held. A rule may read the engine's
        history views from the analyzing thread, but must not call ``analyze``
        or register rules, and must not wait on other threads that use the
        engine.
        """
        with self._lock:
            self._rules.append(rule)

    # -- read-only views ------------------------------------------------------

    @property
    def rules(self) -> list[ExplainRule]:
        with self._lock:
            return list(self._rules)

    @property
    def metrics_history(self) -> list[NormalizedMetrics]:
        with self._lock:
            return list(self._metrics_history)

    @property
    def insight_history(self) -> list[ExplainInsight]:
        with self._lock:
            return list(self._insight_history)

    # -- analysis -------------------------------------------------------------

    def analyze(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        throttle_info: ThrottleInfo | None = None,
    ) -> list[ExplainInsight]:
        """Run the full pipeline and return insights, most severe first."""
        with self._lock:
            # 1. Update history
            self._metrics_history.append(metrics)
            history = tuple(self._metrics_history)

            # 2. Correlations and anomalies
            correlations = self._correlation.correlate(metrics, processes)
            anomalies = self._anomaly.detect(metrics, history)

            # 3. Context
            window = self._config.recent_insights_window
            recent = tuple(self._insight_history)[-window:] if window > 0 else ()
            context = EvaluationContext(
                metrics_history=history,
                anomalies=tuple(anomalies),
                correlations=tuple(correlations),
                recent_insights=recent,
                throttle_info=throttle_info,
            )

            # 4-5. Evaluate, enhance, score
            insights = []
            for rule in self._rules:
                insight = rule.evaluate(metrics, processes, context)
                if insight is None:
                    continue
                insight = self._counterfactual.enhance(insight, metrics, processes)
                insights.append(self._scorer.score(insight, context))

            # 6. Dedup by type, first wins
            seen: set[InsightType] = set()
            unique = []
            for insight in insights:
                if insight.type in seen:
                    continue
                seen.add(insight.type)
                unique.append(insight)

            # 7. Stable sort, critical first
            unique.sort(key=lambda i: -i.severity.priority)

            # 8. Record
            self._record(unique)

            logger.debug(
                "Analyzed %d processes with %d rules: %d insights (%d anomalies)",
                len(processes), len(self._rules), len(unique), len(anomalies),
            )
            return unique

    def _record(self, insights: Sequence[ExplainInsight]) -> None:
        """Append to insight history unless the same type was recorded recently."""
        cutoff = _now() - timedelta(seconds=self._config.recurrence_window_seconds)
        for insight in insights:
            recurring = any(
                past.type == insight.type and past.timestamp > cutoff
                for past in self._insight_history
            )
            if not recurring:
                self._insight_history.append(insight)

    # -- single questions -----------------------------------------------------

    def why_cpu(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
    ) -> ExplainInsight | None:
        """Answer "why is the CPU busy?" without touching history."""
        with self._lock:
            context = EvaluationContext(metrics_history=tuple(self._metrics_history))
        insight = CPUSaturationRule().evaluate(metrics, processes, context)
        if insight is None:
            return None
        return self._counterfactual.enhance(insight, metrics, processes)

    def why_hot(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
    ) -> ExplainInsight | None:
        """Answer "why is it hot?" without touching history."""
        throttling = metrics.thermal_state in (
            ThermalStateLevel.SERIOUS,
            ThermalStateLevel.CRITICAL,
        )
        with self._lock:
            context = EvaluationContext(
                metrics_history=tuple(self._metrics_history),
                throttle_info=ThrottleInfo(is_throttling=throttling),
            )
        return ThermalThrottlingRule().evaluate(metrics, processes, context)

    def analyze_process(
        self,
        process: ProcessSnapshot,
        metrics: NormalizedMetrics,
        all_processes: Sequence[ProcessSnapshot],
    ) -> list[ExplainInsight]:
        """CPU and memory findings for one process."""
        insights = []

        if process.cpu_usage > 50:
            insights.append(
                ExplainInsight(
                    symptom=f"High CPU from {process.display_name}",
                    root_cause=(
                        f"{process.display_name} is using {process.cpu_usage:.0f}% CPU"
                    ),
                    explanation=describe_process(process),
                    confidence=0.9,
                    type=InsightType.CPU_SATURATION,
                    severity=Severity.CRITICAL if process.cpu_usage > 80 else Severity.WARNING,
                    counterfactual=Counterfactual(
                        action=f"Quit {process.display_name}",
                        expected_outcome="CPU usage drops noticeably",
                        quantified_impact=f"-{process.cpu_usage:.0f}%",
                        confidence=0.85,
                        time_to_effect=2.0,
                    ),
                    affected_processes=(process.name,),
                )
            )

        memory_gb = process.memory_gb
        if memory_gb > 2:
            insights.append(
                ExplainInsight(
                    symptom=f"High memory from {process.display_name}",
                    root_cause=f"{process.display_name} holds {memory_gb:.1f}GB RAM",
                    explanation="This app is using a lot of memory",
                    confidence=0.9,
                    type=InsightType.MEMORY_PRESSURE,
                    severity=Severity.CRITICAL if memory_gb > 4 else Severity.WARNING,
                    affected_processes=(process.name,),
                )
            )

        return insights

    def thermal_forecast(self, current_metrics: NormalizedMetrics) -> ThermalPrediction | None:
        """Predict throttling from the last ten temperatures. None until ten samples exist."""
        with self._lock:
            if len(self._metrics_history) < FORECAST_SAMPLES:
                return None
            temps = [m.cpu_temperature for m in self._metrics_history][-FORECAST_SAMPLES:]

        current = current_metrics.cpu_temperature
        trend = temperature_trend(temps)
        if trend > 0 and mean(temps) > 70:
            minutes = max(
                MIN_FORECAST_MINUTES,
                (THROTTLE_TEMPERATURE - current) / (trend * SAMPLES_PER_MINUTE),
            )
            return ThermalPrediction(
                will_throttle=True,
                current_temperature=current,
                estimated_minutes=minutes,
                recommended_action=FORECAST_ACTION,
            )
        return ThermalPrediction(will_throttle=False, current_temperature=current)


def build_engine(
    config: XExplainConfig | None = None,
    audiences: Sequence[str] | None = None,
) -> ExplainEngine:
    """Engine with the default rules plus one bundle per audience name.

    ``audiences`` defaults to ``config.watch.audiences``. Unknown names raise
    ``ValueError``.
    """
    cfg = config or XExplainConfig()
    names = cfg.watch.audiences if audiences is None else audiences
    resolved = [InsightAudience(name.strip().lower()) for name in names]

    engine = ExplainEngine(cfg)
    for audience in resolved:
        engine.register_rules(audience)
    return engine
