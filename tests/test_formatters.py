"""Tests for markdown and JSON formatters."""

import json

from xexplain.mcp.formatters import (
    format_forecast,
    format_insight,
    format_insights,
    format_metrics,
    insights_to_dict,
)
from xexplain.models import (
    MIB,
    Counterfactual,
    ExplainAction,
    ExplainInsight,
    InsightType,
    MemoryPressureLevel,
    NormalizedMetrics,
    ProcessSnapshot,
    Severity,
    ThermalPrediction,
    ThermalStateLevel,
)


def _insight(**kw):
    defaults = dict(
        symptom="High CPU usage (95%)",
        root_cause="TestApp is using 80% CPU",
        explanation="TestApp is using a lot of resources",
        confidence=0.85,
        type=InsightType.CPU_SATURATION,
        severity=Severity.CRITICAL,
    )
    defaults.update(kw)
    return ExplainInsight(**defaults)


class TestFormatInsight:
    def test_basic(self):
        out = format_insight(_insight())
        assert "High CPU usage (95%)" in out
        assert "CPU Saturation" in out
        assert "critical" in out
        assert "85%" in out
        assert "TestApp is using 80% CPU" in out

    def test_counterfactual(self):
        cf = Counterfactual(
            action="Quit TestApp",
            expected_outcome="CPU drops to ~15%",
            confidence=0.85,
            quantified_impact="-80%",
            time_to_effect=2.0,
        )
        out = format_insight(_insight(counterfactual=cf))
        assert "What if" in out
        assert "Quit TestApp" in out
        assert "-80%" in out
        assert "2s" in out

    def test_actions_and_processes(self):
        action = ExplainAction(title="Quit TestApp", description="Frees 80% CPU", impact="-80% CPU")
        out = format_insight(_insight(suggested_actions=(action,), affected_processes=("TestApp",)))
        assert "Suggested actions" in out
        assert "Frees 80% CPU (-80% CPU)" in out
        assert "**Processes:** TestApp" in out

    def test_no_optional_sections(self):
        out = format_insight(_insight(severity=Severity.INFO))
        assert "What if" not in out
        assert "Suggested actions" not in out


class TestFormatInsights:
    def test_empty(self):
        assert "System is running normally" in format_insights([])

    def test_multiple(self):
        insights = [
            _insight(),
            _insight(symptom="Disk busy", type=InsightType.IO_BOTTLENECK, severity=Severity.WARNING),
        ]
        out = format_insights(insights, "Analysis")
        assert "## Analysis (2)" in out
        assert out.index("High CPU") < out.index("Disk busy")


class TestFormatMetrics:
    def test_table(self):
        m = NormalizedMetrics(
            cpu_usage=42.5,
            memory_usage_percent=80.0,
            memory_pressure=MemoryPressureLevel.WARNING,
            cpu_temperature=71.0,
            thermal_state=ThermalStateLevel.FAIR,
            fan_speed=2400,
        )
        out = format_metrics(m)
        assert "42.5%" in out
        assert "warning" in out
        assert "71°C" in out
        assert "2400 RPM" in out

    def test_passive_fan(self):
        assert "Passive" in format_metrics(NormalizedMetrics())


class TestFormatForecast:
    def test_not_enough_samples(self):
        assert "Not enough samples" in format_forecast(None)

    def test_healthy(self):
        out = format_forecast(ThermalPrediction(will_throttle=False, current_temperature=55.0))
        assert "healthy" in out
        assert "55°C" in out

    def test_will_throttle(self):
        prediction = ThermalPrediction(
            will_throttle=True,
            current_temperature=82.0,
            estimated_minutes=3.0,
            recommended_action="Reduce workload or improve ventilation",
        )
        out = format_forecast(prediction)
        assert "~3.0 minutes" in out
        assert "Reduce workload" in out


class TestInsightsToDict:
    def test_full_payload(self):
        m = NormalizedMetrics(cpu_usage=95.0, thermal_state=ThermalStateLevel.SERIOUS)
        procs = [ProcessSnapshot(pid=1, name="TestApp", cpu_usage=80.0, memory_bytes=512 * MIB)]
        cf = Counterfactual(action="Quit TestApp", expected_outcome="CPU drops", confidence=0.85)
        insight = _insight(counterfactual=cf)

        payload = insights_to_dict([insight], m, procs)

        assert payload["metrics"]["cpu"] == 95.0
        assert payload["metrics"]["thermalState"] == "serious"
        assert payload["processes"] == [{"pid": 1, "name": "TestApp", "cpu": 80.0, "memoryMB": 512.0}]
        entry = payload["insights"][0]
        assert entry["id"] == insight.insight_id
        assert entry["type"] == "cpu_saturation"
        assert entry["rootCause"] == "TestApp is using 80% CPU"
        assert entry["counterfactual"]["action"] == "Quit TestApp"
        assert payload["healthy"] is False
        json.dumps(payload)

    def test_healthy(self):
        payload = insights_to_dict([])
        assert payload == {"insights": [], "healthy": True}

    def test_process_limit(self):
        procs = [ProcessSnapshot(pid=i, name=f"p{i}") for i in range(15)]
        assert len(insights_to_dict([], processes=procs)["processes"]) == 10
