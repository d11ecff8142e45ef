"""Frozen dataclass models for engine output."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from xexplain.models.enums import (
    ActionKind,
    ActionSafety,
    InsightAudience,
    InsightType,
    Severity,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class Counterfactual:
    """A "what if" projection: doing ``action`` is expected to yield ``expected_outcome``."""

    action: str
    expected_outcome: str
    confidence: float
    quantified_impact: str | None = None
    time_to_effect: float | None = None  # seconds


@dataclass(frozen=True, slots=True)
class ExplainAction:
    """A concrete step the user can take."""

    title: str
    description: str
    impact: str = ""
    safety: ActionSafety = ActionSafety.SAFE
    kind: ActionKind = ActionKind.NONE
    process_name: str | None = None
    pid: int | None = None
    suggestions: tuple[str, ...] = ()
    target: str | None = None  # settings path or terminal command


@dataclass(frozen=True, slots=True)
class MetricSnapshot:
    """A named metric value attached to an insight as evidence."""

    name: str
    value: float
    unit: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class ExplainInsight:
    """One finding about system health.

    Immutable; enhancement steps build a copy with ``dataclasses.replace``.
    """

    symptom: str
    root_cause: str
    explanation: str
    confidence: float
    type: InsightType
    severity: Severity
    counterfactual: Counterfactual | None = None
    action_safety: ActionSafety = ActionSafety.SAFE
    audience: InsightAudience = InsightAudience.GENERAL
    suggested_actions: tuple[ExplainAction, ...] = ()
    affected_processes: tuple[str, ...] = ()
    related_metrics: tuple[MetricSnapshot, ...] = ()
    insight_id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class ThermalPrediction:
    """Result of the engine's thermal forecast."""

    will_throttle: bool
    current_temperature: float
    estimated_minutes: float | None = None
    recommended_action: str | None = None
