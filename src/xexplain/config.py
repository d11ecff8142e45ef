"""Layered configuration: .xexplain/config.toml -> XEXPLAIN_* env vars -> defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib  # 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """History sizes for the insight engine."""

    metrics_history_limit: int = 60
    insight_history_limit: int = 100
    recent_insights_window: int = 20
    recurrence_window_seconds: float = 60.0


@dataclass(frozen=True, slots=True)
class AnomalyConfig:
    """Z-score anomaly detection settings."""

    min_samples: int = 10
    sigma_threshold: float = 2.0
    temperature_sigma_threshold: float = 1.5


@dataclass(frozen=True, slots=True)
class CollectorConfig:
    """psutil sampling settings."""

    cpu_sample_interval: float = 0.5
    top_processes: int = 15


@dataclass(frozen=True, slots=True)
class WatchConfig:
    """Settings for the CLI watch loop and MCP server."""

    interval: float = 2.0
    audiences: tuple[str, ...] = ("developer", "power")


@dataclass(frozen=True, slots=True)
class XExplainConfig:
    """Top-level configuration container."""

    project_path: Path = field(default_factory=Path.cwd)
    engine: EngineConfig = field(default_factory=EngineConfig)
    anomaly: AnomalyConfig = field(default_factory=AnomalyConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    @property
    def xexplain_dir(self) -> Path:
        return self.project_path / ".xexplain"

    @property
    def config_path(self) -> Path:
        return self.xexplain_dir / "config.toml"

    @classmethod
    def load(cls, project_path: Path | None = None) -> XExplainConfig:
        """Load config with layering: TOML file -> env vars -> defaults."""
        project = Path(project_path) if project_path else Path.cwd()
        toml_path = project / ".xexplain" / "config.toml"

        toml_data: dict = {}
        if toml_path.is_file():
            with open(toml_path, "rb") as f:
                toml_data = tomllib.load(f)

        engine_data = toml_data.get("engine", {})
        anomaly_data = toml_data.get("anomaly", {})
        collector_data = toml_data.get("collector", {})
        watch_data = toml_data.get("watch", {})

        # Use literal defaults (slots=True prevents class-level attribute access)
        _engine_defaults = EngineConfig()
        _anomaly_defaults = AnomalyConfig()
        _collector_defaults = CollectorConfig()
        _watch_defaults = WatchConfig()

        engine = EngineConfig(
            metrics_history_limit=int(
                os.environ.get(
                    "XEXPLAIN_METRICS_HISTORY_LIMIT",
                    engine_data.get(
                        "metrics_history_limit", _engine_defaults.metrics_history_limit
                    ),
                )
            ),
            insight_history_limit=int(
                os.environ.get(
                    "XEXPLAIN_INSIGHT_HISTORY_LIMIT",
                    engine_data.get(
                        "insight_history_limit", _engine_defaults.insight_history_limit
                    ),
                )
            ),
            recent_insights_window=int(
                os.environ.get(
                    "XEXPLAIN_RECENT_INSIGHTS_WINDOW",
                    engine_data.get(
                        "recent_insights_window", _engine_defaults.recent_insights_window
                    ),
                )
            ),
            recurrence_window_seconds=float(
                os.environ.get(
                    "XEXPLAIN_RECURRENCE_WINDOW_SECONDS",
                    engine_data.get(
                        "recurrence_window_seconds",
                        _engine_defaults.recurrence_window_seconds,
                    ),
                )
            ),
        )

        anomaly = AnomalyConfig(
            min_samples=int(
                os.environ.get(
                    "XEXPLAIN_ANOMALY_MIN_SAMPLES",
                    anomaly_data.get("min_samples", _anomaly_defaults.min_samples),
                )
            ),
            sigma_threshold=float(
                os.environ.get(
                    "XEXPLAIN_SIGMA_THRESHOLD",
                    anomaly_data.get("sigma_threshold", _anomaly_defaults.sigma_threshold),
                )
            ),
            temperature_sigma_threshold=float(
                os.environ.get(
                    "XEXPLAIN_TEMPERATURE_SIGMA_THRESHOLD",
                    anomaly_data.get(
                        "temperature_sigma_threshold",
                        _anomaly_defaults.temperature_sigma_threshold,
                    ),
                )
            ),
        )

        collector = CollectorConfig(
            cpu_sample_interval=float(
                os.environ.get(
                    "XEXPLAIN_CPU_SAMPLE_INTERVAL",
                    collector_data.get(
                        "cpu_sample_interval", _collector_defaults.cpu_sample_interval
                    ),
                )
            ),
            top_processes=int(
                os.environ.get(
                    "XEXPLAIN_TOP_PROCESSES",
                    collector_data.get("top_processes", _collector_defaults.top_processes),
                )
            ),
        )

        audiences_env = os.environ.get("XEXPLAIN_AUDIENCES")
        if audiences_env is not None:
            audiences = tuple(a.strip() for a in audiences_env.split(",") if a.strip())
        else:
            configured = watch_data.get("audiences", _watch_defaults.audiences)
            if isinstance(configured, str):
                configured = [configured]
            audiences = tuple(configured)

        watch = WatchConfig(
            interval=float(
                os.environ.get(
                    "XEXPLAIN_WATCH_INTERVAL",
                    watch_data.get("interval", _watch_defaults.interval),
                )
            ),
            audiences=audiences,
        )

        return cls(
            project_path=project,
            engine=engine,
            anomaly=anomaly,
            collector=collector,
            watch=watch,
        )
