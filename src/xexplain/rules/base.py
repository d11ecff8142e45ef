"""Rule contract and shared helpers for diagnostic rules."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Protocol, runtime_checkable

from xexplain.models.context import EvaluationContext
from xexplain.models.enums import InsightAudience, InsightType, MetricTrend
from xexplain.models.insight import Counterfactual, ExplainInsight
from xexplain.models.system import NormalizedMetrics, ProcessSnapshot


@runtime_checkable
class ExplainRule(Protocol):
    """Contract every rule implements. Rules must not keep state between calls."""

    id: str
    name: str
    audience: InsightAudience

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        """Return an insight when the rule's condition holds, else None."""
        ...


class BaseRule:
    """Convenience base: metadata defaults plus helpers for rule authors."""

    id: str = ""
    name: str = ""
    audience: InsightAudience = InsightAudience.GENERAL

    def evaluate(
        self,
        metrics: NormalizedMetrics,
        processes: Sequence[ProcessSnapshot],
        context: EvaluationContext,
    ) -> ExplainInsight | None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    @staticmethod
    def termination_counterfactual(
        process: ProcessSnapshot,
        metric_name: str,
        current_value: float,
        estimated_reduction: float,
    ) -> Counterfactual:
        """Projection for quitting ``process``; ``current_value`` must be non-zero."""
        new_value = current_value - estimated_reduction
        percent_reduction = estimated_reduction / current_value * 100
        return Counterfactual(
            action=f"Quit {process.display_name}",
            expected_outcome=(
                f"{metric_name} drops from {current_value:.0f}% to ~{new_value:.0f}%"
            ),
            quantified_impact=f"-{percent_reduction:.0f}%",
            confidence=min(0.9, estimated_reduction / current_value),
            time_to_effect=2.0,
        )

    @staticmethod
    def has_recent_similar_insight(
        insight_type: InsightType,
        context: EvaluationContext,
        within_seconds: float = 60.0,
    ) -> bool:
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=within_seconds)
        return any(
            i.type == insight_type and i.timestamp > cutoff
            for i in context.recent_insights
        )

    @staticmethod
    def calculate_trend(
        extract: Callable[[NormalizedMetrics], float],
        history: Sequence[NormalizedMetrics],
    ) -> MetricTrend:
        """Classify the last five samples; a move counts when it exceeds 1 unit."""
        if len(history) < 3:
            return MetricTrend.STABLE

        values = [extract(m) for m in history[-5:]]
        steps = len(values) - 1
        increases = sum(1 for a, b in zip(values, values[1:]) if b > a + 1)
        decreases = sum(1 for a, b in zip(values, values[1:]) if b < a - 1)

        if increases / steps > 0.6:
            return MetricTrend.INCREASING
        if decreases / steps > 0.6:
            return MetricTrend.DECREASING
        return MetricTrend.STABLE


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0
