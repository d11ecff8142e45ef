"""FastMCP server factory with 4 tools for system explanation."""

from __future__ import annotations

import psutil

from xexplain.config import XExplainConfig
from xexplain.mcp.formatters import (
    format_forecast,
    format_insight,
    format_insights,
    format_metrics,
)


def create_server(config: XExplainConfig | None = None):
    """Create and return a configured FastMCP server instance.

    All tools share one engine so histories build up across calls.

    Args:
        config: Optional pre-loaded config. If None, loads from cwd.
    """
    from mcp.server.fastmcp import FastMCP

    from xexplain.core.engine import build_engine

    mcp = FastMCP("xexplain", instructions="Explains why a machine is slow, busy or hot")
    _config = config or XExplainConfig.load()
    engine = build_engine(_config)

    @mcp.tool()
    def xexplain_analyze() -> str:
        """Sample the system and explain what is wrong, most severe issue first.

        Returns current metrics, ranked insights with root causes and
        counterfactuals ("if you quit X, CPU drops to Y").
        """
        from xexplain.core.collector import collect_metrics, collect_processes

        try:
            metrics = collect_metrics(_config.collector)
            processes = collect_processes(_config.collector)
        except (psutil.Error, OSError) as exc:
            return f"Error collecting metrics: {exc}"

        insights = engine.analyze(metrics, processes)
        return format_metrics(metrics) + "\n\n" + format_insights(insights)

    @mcp.tool()
    def xexplain_why_cpu() -> str:
        """Explain why the CPU is busy, naming the top process and what quitting it would do."""
        from xexplain.core.collector import collect_metrics, collect_processes

        try:
            metrics = collect_metrics(_config.collector)
            processes = collect_processes(_config.collector)
        except (psutil.Error, OSError) as exc:
            return f"Error collecting metrics: {exc}"

        insight = engine.why_cpu(metrics, processes)
        if insight is None:
            return f"CPU usage is normal ({metrics.cpu_usage:.0f}%)."
        return format_insight(insight)

    @mcp.tool()
    def xexplain_why_hot() -> str:
        """Explain why the machine is hot, if it is thermally throttling."""
        from xexplain.core.collector import collect_metrics, collect_processes

        try:
            metrics = collect_metrics(_config.collector)
            processes = collect_processes(_config.collector)
        except (psutil.Error, OSError) as exc:
            return f"Error collecting metrics: {exc}"

        insight = engine.why_hot(metrics, processes)
        if insight is None:
            return (
                f"Thermal state is {metrics.thermal_state.value} "
                f"({metrics.cpu_temperature:.0f}°C). No throttling."
            )
        return format_insight(insight)

    @mcp.tool()
    def xexplain_forecast() -> str:
        """Predict whether the CPU will throttle soon.

        Needs at least 10 earlier samples; call xexplain_analyze a few times first.
        """
        from xexplain.core.collector import collect_metrics

        try:
            metrics = collect_metrics(_config.collector)
        except (psutil.Error, OSError) as exc:
            return f"Error collecting metrics: {exc}"

        return format_forecast(engine.thermal_forecast(metrics))

    return mcp


def main() -> None:
    """Entry point for xexplain-mcp (stdio transport)."""
    from xexplain.logging_setup import setup_logging

    setup_logging()
    server = create_server()
    server.run()


if __name__ == "__main__":
    main()
