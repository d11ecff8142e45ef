"""Anomaly detection via z-scores against the rolling metrics history."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence

from xexplain.config import AnomalyConfig
from xexplain.models.context import DetectedAnomaly
from xexplain.models.system import NormalizedMetrics

logger = logging.getLogger("xexplain.anomaly")

# Default threshold: flag if |value - mean| > SIGMA_THRESHOLD * stddev
SIGMA_THRESHOLD = 2.0

# Temperature moves slowly, so smaller excursions are already interesting
TEMPERATURE_SIGMA_THRESHOLD = 1.5

# Minimum history samples before anomaly detection activates
MIN_SAMPLES = 10

# Below this the history is considered flat and no z-score is computed
MIN_STDDEV = 0.001


def _total_io(m: NormalizedMetrics) -> float:
    return m.disk_read_rate + m.disk_write_rate


# (display name, extractor, uses the temperature threshold)
TRACKED_METRICS: tuple[tuple[str, Callable[[NormalizedMetrics], float], bool], ...] = (
    ("CPU Usage", lambda m: m.cpu_usage, False),
    ("Memory Usage", lambda m: m.memory_usage_percent, False),
    ("CPU Temperature", lambda m: m.cpu_temperature, True),
    ("Disk I/O", _total_io, False),
)


def compute_stats(values: Sequence[float]) -> tuple[float, float]:
    """Return population mean and standard deviation (0, 0 for no values)."""
    if not values:
        return 0.0, 0.0
    count = len(values)
    mean = sum(values) / count
    variance = sum((v - mean) ** 2 for v in values) / count
    return mean, math.sqrt(variance)


def detect_metric_anomaly(
    name: str,
    current_value: float,
    historical_values: Sequence[float],
    sigma_threshold: float = SIGMA_THRESHOLD,
) -> DetectedAnomaly | None:
    """Flag ``current_value`` if it is more than ``sigma_threshold`` σ from the mean."""
    mean, stddev = compute_stats(historical_values)
    if stddev <= MIN_STDDEV:
        return None

    deviation = (current_value - mean) / stddev
    if abs(deviation) <= sigma_threshold:
        return None

    return DetectedAnomaly(
        metric=name,
        current_value=current_value,
        expected_value=mean,
        deviation=deviation,
    )


class AnomalyDetector:
    """Stateless z-score detector over CPU, memory, temperature and disk I/O."""

    def __init__(
        self,
        min_samples: int = MIN_SAMPLES,
        sigma_threshold: float = SIGMA_THRESHOLD,
        temperature_sigma_threshold: float = TEMPERATURE_SIGMA_THRESHOLD,
    ) -> None:
        self.min_samples = min_samples
        self.sigma_threshold = sigma_threshold
        self.temperature_sigma_threshold = temperature_sigma_threshold

    @classmethod
    def from_config(cls, config: AnomalyConfig) -> AnomalyDetector:
        return cls(
            min_samples=config.min_samples,
            sigma_threshold=config.sigma_threshold,
            temperature_sigma_threshold=config.temperature_sigma_threshold,
        )

    def detect(
        self,
        current: NormalizedMetrics,
        history: Sequence[NormalizedMetrics],
    ) -> list[DetectedAnomaly]:
        """Compare ``current`` with ``history``; empty until enough samples exist."""
        if len(history) < self.min_samples:
            return []

        anomalies = []
        for name, extract, is_temperature in TRACKED_METRICS:
            threshold = (
                self.temperature_sigma_threshold if is_temperature else self.sigma_threshold
            )
            anomaly = detect_metric_anomaly(
                name,
                extract(current),
                [extract(m) for m in history],
                sigma_threshold=threshold,
            )
            if anomaly is None:
                continue
            anomalies.append(anomaly)
            logger.info(
                "Anomaly: %s = %.2f (mean=%.2f, %.1fσ)",
                anomaly.metric, anomaly.current_value,
                anomaly.expected_value, anomaly.deviation,
            )

        return anomalies
