"""xexplain data models."""

from xexplain.models.context import DetectedAnomaly, EvaluationContext, MetricCorrelation
from xexplain.models.enums import (
    ActionKind,
    ActionSafety,
    CoreType,
    InsightAudience,
    InsightCategory,
    InsightType,
    MemoryPressureLevel,
    MetricTrend,
    ProcessCategory,
    Severity,
    ThermalStateLevel,
    ThrottleReason,
)
from xexplain.models.insight import (
    Counterfactual,
    ExplainAction,
    ExplainInsight,
    MetricSnapshot,
    ThermalPrediction,
)
from xexplain.models.system import (
    GIB,
    MIB,
    CoreUsage,
    NormalizedMetrics,
    ProcessSnapshot,
    ThrottleInfo,
)

__all__ = [
    "ActionKind",
    "ActionSafety",
    "CoreType",
    "InsightAudience",
    "InsightCategory",
    "InsightType",
    "MemoryPressureLevel",
    "MetricTrend",
    "ProcessCategory",
    "Severity",
    "ThermalStateLevel",
    "ThrottleReason",
    "CoreUsage",
    "NormalizedMetrics",
    "ProcessSnapshot",
    "ThrottleInfo",
    "GIB",
    "MIB",
    "Counterfactual",
    "ExplainAction",
    "ExplainInsight",
    "MetricSnapshot",
    "ThermalPrediction",
    "DetectedAnomaly",
    "MetricCorrelation",
    "EvaluationContext",
]
