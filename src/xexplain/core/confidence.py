"""Adjust rule confidence using corroborating signals from the same cycle."""

from __future__ import annotations

import dataclasses
import math

from xexplain.models.context import DetectedAnomaly, EvaluationContext
from xexplain.models.enums import InsightType
from xexplain.models.insight import ExplainInsight

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 1.0
ANOMALY_BOOST = 0.10
RECURRENCE_BOOST = 0.05
THROTTLE_BOOST = 0.15
RECURRENCE_COUNT = 3
MIN_CHANGE = 0.05

_ANOMALY_KEYWORDS: dict[InsightType, tuple[str, ...]] = {
    InsightType.CPU_SATURATION: ("CPU",),
    InsightType.CORE_IMBALANCE: ("CPU",),
    InsightType.MEMORY_PRESSURE: ("Memory",),
    InsightType.THERMAL_THROTTLING: ("Temperature",),
    InsightType.SILENT_THROTTLING: ("Temperature",),
    InsightType.ENVIRONMENTAL_HEAT: ("Temperature",),
    InsightType.IO_BOTTLENECK: ("Disk", "I/O"),
    InsightType.IO_AMPLIFICATION: ("Disk", "I/O"),
}

_THROTTLE_TYPES = frozenset({InsightType.THERMAL_THROTTLING, InsightType.SILENT_THROTTLING})


def is_anomaly_relevant(anomaly: DetectedAnomaly, insight_type: InsightType) -> bool:
    """Substring match of the anomaly's metric name against the type's keywords."""
    return any(k in anomaly.metric for k in _ANOMALY_KEYWORDS.get(insight_type, ()))


def clamp(value: float) -> float:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


class ConfidenceScorer:
    """Blends correlation strength, anomalies, recurrence and throttling into confidence.

    The result is always in ``[0.1, 1.0]``. Small adjustments (0.05 or less)
    leave the insight untouched.
    """

    def score(self, insight: ExplainInsight, context: EvaluationContext) -> ExplainInsight:
        confidence = insight.confidence

        strengths = [
            c.strength
            for c in context.correlations
            if c.process.name in insight.affected_processes
        ]
        if strengths:
            confidence = (confidence + sum(strengths) / len(strengths)) / 2

        if any(is_anomaly_relevant(a, insight.type) for a in context.anomalies):
            confidence = min(MAX_CONFIDENCE, confidence + ANOMALY_BOOST)

        similar = sum(1 for past in context.recent_insights if past.type == insight.type)
        if similar > RECURRENCE_COUNT:
            confidence = min(MAX_CONFIDENCE, confidence + RECURRENCE_BOOST)

        throttle = context.throttle_info
        if throttle is not None and throttle.is_throttling and insight.type in _THROTTLE_TYPES:
            confidence = min(MAX_CONFIDENCE, confidence + THROTTLE_BOOST)

        confidence = clamp(confidence)
        delta = abs(confidence - insight.confidence)
        significant = delta > MIN_CHANGE and not math.isclose(delta, MIN_CHANGE)
        if significant or clamp(insight.confidence) != insight.confidence:
            return dataclasses.replace(insight, confidence=confidence)
        return insight
