"""Rule bundles by audience."""

from __future__ import annotations

from xexplain.models.enums import InsightAudience
from xexplain.rules.base import ExplainRule
from xexplain.rules.consumer import (
    CPUSaturationRule,
    IOBottleneckRule,
    MemoryPressureRule,
    ThermalThrottlingRule,
)
from xexplain.rules.developer import (
    CoreImbalanceRule,
    DevLoopRule,
    IOAmplificationRule,
    MLWorkloadRule,
)
from xexplain.rules.thermal import (
    EnergyEfficiencyRule,
    SilentThrottleRule,
    ThermalForecastRule,
)


def default_rules() -> list[ExplainRule]:
    """Always-on rules, in evaluation order."""
    return [
        CPUSaturationRule(),
        MemoryPressureRule(),
        IOBottleneckRule(),
        ThermalThrottlingRule(),
    ]


def audience_rules(audience: InsightAudience) -> list[ExplainRule]:
    """Extra rules for ``audience``. The general audience adds none."""
    if audience == InsightAudience.DEVELOPER:
        return [
            CoreImbalanceRule(),
            DevLoopRule(),
            IOAmplificationRule(),
            MLWorkloadRule(),
        ]
    if audience == InsightAudience.POWER:
        return [
            SilentThrottleRule(),
            EnergyEfficiencyRule(),
            ThermalForecastRule(),
        ]
    return []
