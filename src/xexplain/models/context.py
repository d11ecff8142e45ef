"""Per-cycle analysis artefacts shared with rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from xexplain.models.insight import ExplainInsight
from xexplain.models.system import NormalizedMetrics, ProcessSnapshot, ThrottleInfo


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class DetectedAnomaly:
    """A metric whose current value is far from its rolling mean."""

    metric: str
    current_value: float
    expected_value: float
    deviation: float  # in standard deviations, signed
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class MetricCorrelation:
    """A process implicated in an elevated metric."""

    metric: str
    process: ProcessSnapshot
    strength: float  # 0-1
    description: str


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """Read-only bundle handed to every rule for one analysis cycle."""

    metrics_history: tuple[NormalizedMetrics, ...] = ()
    anomalies: tuple[DetectedAnomaly, ...] = ()
    correlations: tuple[MetricCorrelation, ...] = ()
    recent_insights: tuple[ExplainInsight, ...] = ()
    throttle_info: ThrottleInfo | None = None
