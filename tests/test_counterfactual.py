"""Tests for counterfactual back-filling."""

import pytest

from xexplain.core.counterfactual import CounterfactualAnalyzer
from xexplain.models import (
    GIB,
    CoreType,
    CoreUsage,
    Counterfactual,
    ExplainInsight,
    InsightType,
    NormalizedMetrics,
    ProcessSnapshot,
    Severity,
)


def _insight(insight_type, counterfactual=None):
    return ExplainInsight(
        symptom="s",
        root_cause="r",
        explanation="e",
        confidence=0.8,
        type=insight_type,
        severity=Severity.WARNING,
        counterfactual=counterfactual,
    )


@pytest.fixture
def analyzer():
    return CounterfactualAnalyzer()


class TestEnhance:
    def test_existing_counterfactual_kept(self, analyzer):
        cf = Counterfactual(action="keep me", expected_outcome="same", confidence=0.5)
        insight = _insight(InsightType.CPU_SATURATION, cf)
        assert analyzer.enhance(insight, NormalizedMetrics(cpu_usage=90), []) is insight

    def test_unknown_type_left_alone(self, analyzer):
        insight = _insight(InsightType.NETWORK_HOG)
        assert analyzer.enhance(insight, NormalizedMetrics(), []).counterfactual is None

    def test_new_value_keeps_identity(self, analyzer):
        insight = _insight(InsightType.THERMAL_THROTTLING)
        enhanced = analyzer.enhance(insight, NormalizedMetrics(cpu_temperature=90), [])
        assert enhanced is not insight
        assert enhanced.insight_id == insight.insight_id
        assert insight.counterfactual is None


class TestCpu:
    def test_generation(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="Heavy", cpu_usage=60)]
        enhanced = analyzer.enhance(_insight(InsightType.CPU_SATURATION), NormalizedMetrics(cpu_usage=90), procs)
        cf = enhanced.counterfactual
        assert cf.action == "Quit Heavy"
        assert cf.quantified_impact == "-60%"
        assert cf.confidence == pytest.approx(60 / 90)
        assert cf.time_to_effect == 2.0
        assert "~30%" in cf.expected_outcome

    def test_confidence_capped(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="Heavy", cpu_usage=95)]
        enhanced = analyzer.enhance(_insight(InsightType.CPU_SATURATION), NormalizedMetrics(cpu_usage=96), procs)
        assert enhanced.counterfactual.confidence == 0.9

    def test_small_top_process(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="light", cpu_usage=15)]
        enhanced = analyzer.enhance(_insight(InsightType.CPU_SATURATION), NormalizedMetrics(cpu_usage=90), procs)
        assert enhanced.counterfactual is None

    def test_zero_cpu_guarded(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="odd", cpu_usage=50)]
        enhanced = analyzer.enhance(_insight(InsightType.CPU_SATURATION), NormalizedMetrics(), procs)
        assert enhanced.counterfactual is None


class TestOtherTypes:
    def test_memory(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="Big", memory_bytes=3 * GIB)]
        cf = analyzer.enhance(_insight(InsightType.MEMORY_PRESSURE), NormalizedMetrics(), procs).counterfactual
        assert cf.quantified_impact == "+3.0GB"
        assert cf.confidence == 0.95
        assert cf.time_to_effect == 1.0

    def test_memory_small_process(self, analyzer):
        procs = [ProcessSnapshot(pid=1, name="Small", memory_bytes=GIB // 4)]
        assert analyzer.enhance(_insight(InsightType.MEMORY_PRESSURE), NormalizedMetrics(), procs).counterfactual is None

    def test_thermal_and_silent(self, analyzer):
        for t in (InsightType.THERMAL_THROTTLING, InsightType.SILENT_THROTTLING):
            cf = analyzer.enhance(_insight(t), NormalizedMetrics(cpu_temperature=80), []).counterfactual
            assert cf.confidence == 0.7
            assert cf.time_to_effect == 180.0
            assert "~12°C" in cf.expected_outcome

    def test_io(self, analyzer):
        for t in (InsightType.IO_BOTTLENECK, InsightType.IO_AMPLIFICATION):
            cf = analyzer.enhance(_insight(t), NormalizedMetrics(disk_read_rate=150), []).counterfactual
            assert cf.confidence == 0.6
            assert cf.time_to_effect == 60.0
            assert cf.quantified_impact is None

    def test_dev_loop_needs_watcher(self, analyzer):
        insight = _insight(InsightType.DEV_LOOP_DETECTED)
        assert analyzer.enhance(insight, NormalizedMetrics(), []).counterfactual is None
        procs = [ProcessSnapshot(pid=1, name="vite")]
        cf = analyzer.enhance(insight, NormalizedMetrics(), procs).counterfactual
        assert cf.quantified_impact == "-30% CPU"
        assert cf.time_to_effect == 0.0

    def test_core_imbalance(self, analyzer):
        cores = (
            CoreUsage(0, CoreType.PERFORMANCE, 10.0),
            CoreUsage(1, CoreType.EFFICIENCY, 90.0),
        )
        cf = analyzer.enhance(
            _insight(InsightType.CORE_IMBALANCE), NormalizedMetrics(core_usages=cores), []
        ).counterfactual
        assert cf.quantified_impact == "~2x faster"
        assert cf.confidence == 0.65

    def test_core_imbalance_not_skewed(self, analyzer):
        cores = (
            CoreUsage(0, CoreType.PERFORMANCE, 50.0),
            CoreUsage(1, CoreType.EFFICIENCY, 50.0),
        )
        insight = _insight(InsightType.CORE_IMBALANCE)
        assert analyzer.enhance(insight, NormalizedMetrics(core_usages=cores), []).counterfactual is None

    def test_ml(self, analyzer):
        cf = analyzer.enhance(_insight(InsightType.ML_WORKLOAD_FALLBACK), NormalizedMetrics(), []).counterfactual
        assert cf.quantified_impact == "~5x faster, -60% power"
        assert cf.confidence == 0.8
