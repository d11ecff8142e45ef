"""Markdown and JSON renderers for engine output."""

from __future__ import annotations

from xexplain.models.enums import Severity
from xexplain.models.insight import Counterfactual, ExplainInsight, ThermalPrediction
from xexplain.models.system import MIB, NormalizedMetrics, ProcessSnapshot

_SEVERITY_MARK = {
    Severity.CRITICAL: "🔴",
    Severity.WARNING: "⚠️",
    Severity.INFO: "ℹ️",
}


def _counterfactual_lines(cf: Counterfactual) -> list[str]:
    lines = [
        "**What if:**",
        f"- Action: {cf.action}",
        f"- Result: {cf.expected_outcome}",
    ]
    if cf.quantified_impact:
        lines.append(f"- Impact: {cf.quantified_impact}")
    if cf.time_to_effect is not None:
        lines.append(f"- Takes effect in: {cf.time_to_effect:.0f}s")
    lines.append(f"- Confidence: {cf.confidence:.0%}")
    return lines


def format_insight(insight: ExplainInsight) -> str:
    """Format a single insight as markdown."""
    mark = _SEVERITY_MARK[insight.severity]
    lines = [
        f"### {mark} {insight.symptom}",
        f"**Type:** {insight.type.label} ({insight.type.category.value})  ",
        f"**Severity:** {insight.severity.value}  ",
        f"**Confidence:** {insight.confidence:.0%}  ",
        f"**Root cause:** {insight.root_cause}",
        "",
        insight.explanation,
    ]

    if insight.counterfactual:
        lines.append("")
        lines.extend(_counterfactual_lines(insight.counterfactual))

    if insight.suggested_actions:
        lines.extend(["", "**Suggested actions:**"])
        for action in insight.suggested_actions:
            impact = f" ({action.impact})" if action.impact else ""
            lines.append(f"- {action.title}: {action.description}{impact}")

    if insight.affected_processes:
        lines.extend(["", f"**Processes:** {', '.join(insight.affected_processes)}"])

    return "\n".join(lines)


def format_insights(insights: list[ExplainInsight], title: str = "Insights") -> str:
    """Format a ranked insight list, or a healthy message when empty."""
    if not insights:
        return f"## {title}\n\nSystem is running normally. No issues detected."
    body = "\n\n---\n\n".join(format_insight(i) for i in insights)
    return f"## {title} ({len(insights)})\n\n{body}"


def format_metrics(metrics: NormalizedMetrics) -> str:
    """Format the headline metrics as a table."""
    fan = f"{metrics.fan_speed} RPM" if metrics.fan_speed > 0 else "Passive"
    return "\n".join([
        "## System State",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| CPU | {metrics.cpu_usage:.1f}% |",
        f"| Memory | {metrics.memory_usage_percent:.1f}% ({metrics.memory_pressure.value}) |",
        f"| GPU | {metrics.gpu_usage:.1f}% |",
        f"| Disk read | {metrics.disk_read_rate:.1f} MB/s |",
        f"| Disk write | {metrics.disk_write_rate:.1f} MB/s |",
        f"| Temperature | {metrics.cpu_temperature:.0f}°C |",
        f"| Thermal state | {metrics.thermal_state.value} |",
        f"| Fan | {fan} |",
    ])


def format_forecast(prediction: ThermalPrediction | None) -> str:
    """Format a thermal forecast."""
    if prediction is None:
        return "## Thermal Forecast\n\nNot enough samples yet for a forecast."
    if not prediction.will_throttle:
        return (
            "## Thermal Forecast\n\n"
            f"Thermal status is healthy at {prediction.current_temperature:.0f}°C. "
            "No throttling expected."
        )
    lines = [
        "## Thermal Forecast",
        "",
        f"⚠️ The system may throttle in ~{prediction.estimated_minutes:.1f} minutes "
        f"(currently {prediction.current_temperature:.0f}°C).",
    ]
    if prediction.recommended_action:
        lines.append(f"**Recommended:** {prediction.recommended_action}")
    return "\n".join(lines)


def _counterfactual_to_dict(cf: Counterfactual | None) -> dict | None:
    if cf is None:
        return None
    return {
        "action": cf.action,
        "expectedOutcome": cf.expected_outcome,
        "quantifiedImpact": cf.quantified_impact,
        "confidence": cf.confidence,
        "timeToEffect": cf.time_to_effect,
    }


def insights_to_dict(
    insights: list[ExplainInsight],
    metrics: NormalizedMetrics | None = None,
    processes: list[ProcessSnapshot] | None = None,
) -> dict:
    """JSON-ready payload for ``--json`` output."""
    payload: dict = {}
    if metrics is not None:
        payload["timestamp"] = metrics.timestamp.isoformat()
        payload["metrics"] = {
            "cpu": metrics.cpu_usage,
            "memory": metrics.memory_usage_percent,
            "gpu": metrics.gpu_usage,
            "temperature": metrics.cpu_temperature,
            "thermalState": metrics.thermal_state.value,
            "diskReadMBps": metrics.disk_read_rate,
            "diskWriteMBps": metrics.disk_write_rate,
        }
    if processes is not None:
        payload["processes"] = [
            {
                "pid": p.pid,
                "name": p.name,
                "cpu": p.cpu_usage,
                "memoryMB": round(p.memory_bytes / MIB, 1),
            }
            for p in processes[:10]
        ]
    payload["insights"] = [
        {
            "id": i.insight_id,
            "type": i.type.value,
            "severity": i.severity.value,
            "symptom": i.symptom,
            "rootCause": i.root_cause,
            "explanation": i.explanation,
            "confidence": i.confidence,
            "counterfactual": _counterfactual_to_dict(i.counterfactual),
        }
        for i in insights
    ]
    payload["healthy"] = not insights
    return payload
