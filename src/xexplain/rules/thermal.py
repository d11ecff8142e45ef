"""Power-user rules: hidden frequency caps, wake-up churn and heat forecasting."""

from __future__ import annotations

from collections.abc import Sequence

from xexplain.models.context import EvaluationContext
from xexplain.models.enums import (
    ActionKind,
    InsightAudience,
    InsightType,
    Severity,
    ThermalStateLevel,
)
from xexplain.models.insight import (
    Counterfactual,
    ExplainAction,
    ExplainInsight,
    MetricSnapshot,
)
from xexplain.models.system import NormalizedMetrics, ProcessSnapshot
from xexplain.rules.base import BaseRule

THROTTLE_TEMPERATURE = 90.0
SAMPLES_PER_MINUTE = 6.0
FORECAST_WINDOW = 10


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index. 0 for fewer than 3 points."""
    n = len(values)
    if n < 3:
        return 0.0
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))
    return (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)


class SilentThrottleRule(BaseRule):
    """CPU frequency capped before the thermal state says so."""

    id = "silent_throttle"
    name = "Silent Throttling Detection"
    audience = InsightAudience.POWER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        throttle = context.throttle_info
        if throttle is not None and throttle.is_throttling:
            reduction = throttle.frequency_reduction
            if reduction <= 10:
                return None
            return ExplainInsight(
                symptom="The CPU is being silently throttled",
                root_cause=(
                    f"Frequency is down {reduction:.0f}% although the thermal state "
                    "is not critical"
                ),
                explanation=(
                    "The OS quietly lowers CPU frequency to manage heat. "
                    "Real performance is lower than it looks."
                ),
                confidence=0.85,
                type=InsightType.SILENT_THROTTLING,
                severity=Severity.WARNING if reduction > 30 else Severity.INFO,
                counterfactual=Counterfactual(
                    action="Reduce workload or improve cooling",
                    expected_outcome="Frequency recovers to its maximum",
                    quantified_impact=f"+{reduction:.0f}% performance",
                    confidence=0.8,
                    time_to_effect=60.0,
                ),
                audience=InsightAudience.POWER,
                related_metrics=(
                    MetricSnapshot("Frequency Reduction", reduction, "%"),
                    MetricSnapshot("CPU Temp", metrics.cpu_temperature, "°C"),
                ),
            )

        current = metrics.cpu_frequency_mhz
        maximum = metrics.max_frequency_mhz
        if current is None or not maximum or maximum <= 0:
            return None

        reduction = (maximum - current) / maximum * 100
        if reduction <= 15 or metrics.thermal_state == ThermalStateLevel.CRITICAL:
            return None

        return ExplainInsight(
            symptom="CPU frequency is lower than normal",
            root_cause=f"Running at {current:.0f}MHz instead of {maximum:.0f}MHz",
            explanation=(
                f"CPU frequency is capped ({reduction:.0f}%). "
                "Thermal management or a power limit is likely."
            ),
            confidence=0.7,
            type=InsightType.SILENT_THROTTLING,
            severity=Severity.INFO,
            audience=InsightAudience.POWER,
            related_metrics=(
                MetricSnapshot("Current Freq", current, "MHz"),
                MetricSnapshot("Max Freq", maximum, "MHz"),
            ),
        )


class EnergyEfficiencyRule(BaseRule):
    """Many small background processes waking the CPU while on battery."""

    id = "energy_efficiency"
    name = "Energy Inefficiency"
    audience = InsightAudience.POWER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if not metrics.is_on_battery:
            return None

        wakers = [
            p for p in processes if 0.5 < p.cpu_usage < 5 and not p.is_system_process
        ]
        total = sum(p.cpu_usage for p in wakers)
        if len(wakers) <= 5 or total <= 10:
            return None

        return ExplainInsight(
            symptom="Many apps keep waking the CPU",
            root_cause=f"{len(wakers)} apps use little CPU but wake it constantly",
            explanation=(
                "Background apps cause frequent CPU wake-ups that hurt battery life. "
                "Each wake-up costs energy even when CPU usage looks low."
            ),
            confidence=0.7,
            type=InsightType.ENERGY_INEFFICIENCY,
            severity=Severity.INFO,
            audience=InsightAudience.POWER,
            suggested_actions=(
                ExplainAction(
                    title="Quit background apps",
                    description="Close apps you are not using",
                    impact="Roughly 15% more battery life",
                    kind=ActionKind.REDUCE_LOAD,
                    suggestions=tuple(p.display_name for p in wakers[:3]),
                ),
            ),
            affected_processes=tuple(p.name for p in wakers),
        )


class ThermalForecastRule(BaseRule):
    """Projects minutes until the CPU reaches the throttle temperature."""

    id = "thermal_forecast"
    name = "Thermal Forecast"
    audience = InsightAudience.POWER

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        if len(context.metrics_history) < FORECAST_WINDOW:
            return None
        if metrics.thermal_state in (ThermalStateLevel.SERIOUS, ThermalStateLevel.CRITICAL):
            return None

        temps = [m.cpu_temperature for m in context.metrics_history[-FORECAST_WINDOW:]]
        slope = linear_slope(temps)
        if slope <= 0.5:
            return None

        current = metrics.cpu_temperature
        if not 70 < current < THROTTLE_TEMPERATURE:
            return None

        per_minute = slope * SAMPLES_PER_MINUTE
        minutes = (THROTTLE_TEMPERATURE - current) / per_minute
        if not 0 < minutes < 10:
            return None

        return ExplainInsight(
            symptom=f"Thermal throttling expected in ~{minutes:.0f} min",
            root_cause=f"Temperature is rising {per_minute:.1f}°C/min",
            explanation=(
                f"At the current load the CPU reaches its throttle point "
                f"(~{THROTTLE_TEMPERATURE:.0f}°C) in about {minutes:.0f} minutes."
            ),
            confidence=0.65,
            type=InsightType.THERMAL_FORECAST,
            severity=Severity.INFO,
            counterfactual=Counterfactual(
                action="Cut workload by 30% now",
                expected_outcome="Thermal throttling is avoided",
                quantified_impact="Maintain full performance",
                confidence=0.7,
                time_to_effect=30.0,
            ),
            audience=InsightAudience.POWER,
            suggested_actions=(
                ExplainAction(
                    title="Preemptive cooling",
                    description="Lower the load before throttling starts",
                    impact="Avoids a performance drop",
                    kind=ActionKind.REDUCE_LOAD,
                    suggestions=(
                        "Close unused apps",
                        "Pause heavy tasks temporarily",
                        "Move to a cooler location",
                    ),
                ),
            ),
            related_metrics=(
                MetricSnapshot("Current Temp", current, "°C"),
                MetricSnapshot("Trend", per_minute, "°C/min"),
                MetricSnapshot("Time to Throttle", minutes, "min"),
            ),
        )
