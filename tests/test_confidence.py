"""Tests for confidence re-scoring."""

import pytest

from xexplain.core.confidence import ConfidenceScorer, is_anomaly_relevant
from xexplain.models import (
    DetectedAnomaly,
    EvaluationContext,
    ExplainInsight,
    InsightType,
    MetricCorrelation,
    ProcessSnapshot,
    Severity,
    ThrottleInfo,
)


def _insight(insight_type=InsightType.CPU_SATURATION, confidence=0.5, processes=()):
    return ExplainInsight(
        symptom="s",
        root_cause="r",
        explanation="e",
        confidence=confidence,
        type=insight_type,
        severity=Severity.WARNING,
        affected_processes=processes,
    )


def _anomaly(metric):
    return DetectedAnomaly(metric=metric, current_value=1.0, expected_value=0.0, deviation=3.0)


@pytest.fixture
def scorer():
    return ConfidenceScorer()


class TestRelevance:
    def test_keywords(self):
        assert is_anomaly_relevant(_anomaly("CPU Usage"), InsightType.CPU_SATURATION)
        assert is_anomaly_relevant(_anomaly("CPU Usage"), InsightType.CORE_IMBALANCE)
        assert is_anomaly_relevant(_anomaly("Memory Usage"), InsightType.MEMORY_PRESSURE)
        assert is_anomaly_relevant(_anomaly("CPU Temperature"), InsightType.THERMAL_THROTTLING)
        assert is_anomaly_relevant(_anomaly("Disk I/O"), InsightType.IO_AMPLIFICATION)

    def test_unrelated(self):
        assert not is_anomaly_relevant(_anomaly("Memory Usage"), InsightType.CPU_SATURATION)
        assert not is_anomaly_relevant(_anomaly("CPU Usage"), InsightType.ML_WORKLOAD_FALLBACK)


class TestScore:
    def test_no_signals_unchanged(self, scorer):
        insight = _insight()
        assert scorer.score(insight, EvaluationContext()) is insight

    def test_correlation_blend(self, scorer):
        proc = ProcessSnapshot(pid=1, name="app")
        ctx = EvaluationContext(correlations=(MetricCorrelation("CPU Usage", proc, 0.9, "d"),))
        scored = scorer.score(_insight(confidence=0.5, processes=("app",)), ctx)
        assert scored.confidence == pytest.approx(0.7)

    def test_unrelated_correlation_ignored(self, scorer):
        proc = ProcessSnapshot(pid=1, name="other")
        ctx = EvaluationContext(correlations=(MetricCorrelation("CPU Usage", proc, 0.9, "d"),))
        insight = _insight(processes=("app",))
        assert scorer.score(insight, ctx) is insight

    def test_anomaly_boost(self, scorer):
        ctx = EvaluationContext(anomalies=(_anomaly("CPU Usage"),))
        assert scorer.score(_insight(), ctx).confidence == pytest.approx(0.6)

    def test_recurrence_boost_alone_is_too_small(self, scorer):
        past = tuple(_insight() for _ in range(4))
        insight = _insight()
        assert scorer.score(insight, EvaluationContext(recent_insights=past)) is insight

    def test_recurrence_adds_to_anomaly(self, scorer):
        past = tuple(_insight() for _ in range(4))
        ctx = EvaluationContext(anomalies=(_anomaly("CPU Usage"),), recent_insights=past)
        assert scorer.score(_insight(), ctx).confidence == pytest.approx(0.65)

    def test_throttle_boost(self, scorer):
        ctx = EvaluationContext(throttle_info=ThrottleInfo(is_throttling=True))
        scored = scorer.score(_insight(InsightType.SILENT_THROTTLING, 0.7), ctx)
        assert scored.confidence == pytest.approx(0.85)

    def test_throttle_ignored_for_other_types(self, scorer):
        ctx = EvaluationContext(throttle_info=ThrottleInfo(is_throttling=True))
        insight = _insight(InsightType.CPU_SATURATION, 0.7)
        assert scorer.score(insight, ctx) is insight

    def test_capped_at_one(self, scorer):
        ctx = EvaluationContext(
            anomalies=(_anomaly("CPU Temperature"),),
            throttle_info=ThrottleInfo(is_throttling=True),
        )
        scored = scorer.score(_insight(InsightType.THERMAL_THROTTLING, 0.9), ctx)
        assert scored.confidence == 1.0

    def test_out_of_range_input_clamped(self, scorer):
        assert scorer.score(_insight(confidence=1.02), EvaluationContext()).confidence == 1.0
        assert scorer.score(_insight(confidence=0.08), EvaluationContext()).confidence == 0.1

    def test_floor(self, scorer):
        proc = ProcessSnapshot(pid=1, name="app")
        ctx = EvaluationContext(correlations=(MetricCorrelation("CPU Usage", proc, 0.0, "d"),))
        scored = scorer.score(_insight(confidence=0.18, processes=("app",)), ctx)
        assert scored.confidence == 0.1
