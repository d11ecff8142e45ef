"""Tests for MCP server tool functions."""

from unittest.mock import patch

import pytest

from xexplain.config import XExplainConfig
from xexplain.models import (
    NormalizedMetrics,
    ProcessSnapshot,
    ThermalStateLevel,
)


class TestMcpToolsDirect:
    """Test the core logic that MCP tools use, without requiring mcp package."""

    def test_analyze_flow(self):
        from xexplain.core.engine import build_engine
        from xexplain.mcp.formatters import format_insights, format_metrics

        engine = build_engine(XExplainConfig())
        metrics = NormalizedMetrics(cpu_usage=95.0)
        procs = [ProcessSnapshot(pid=1, name="TestApp", cpu_usage=80.0)]

        out = format_metrics(metrics) + "\n\n" + format_insights(engine.analyze(metrics, procs))
        assert "System State" in out
        assert "CPU Saturation" in out
        assert "Quit TestApp" in out

    def test_why_cpu_flow(self):
        from xexplain.core.engine import build_engine
        from xexplain.mcp.formatters import format_insight

        engine = build_engine(XExplainConfig())
        insight = engine.why_cpu(
            NormalizedMetrics(cpu_usage=88.0),
            [ProcessSnapshot(pid=2, name="node", cpu_usage=60.0)],
        )
        assert "node" in format_insight(insight)
        assert engine.metrics_history == []

    def test_why_hot_flow(self):
        from xexplain.core.engine import build_engine
        from xexplain.mcp.formatters import format_insight

        engine = build_engine(XExplainConfig())
        insight = engine.why_hot(
            NormalizedMetrics(cpu_temperature=99.0, thermal_state=ThermalStateLevel.CRITICAL), []
        )
        assert "Thermal Throttling" in format_insight(insight)

    def test_forecast_flow(self):
        from xexplain.core.engine import build_engine
        from xexplain.mcp.formatters import format_forecast

        engine = build_engine(XExplainConfig())
        current = NormalizedMetrics(cpu_temperature=60.0)
        assert "Not enough samples" in format_forecast(engine.thermal_forecast(current))

        for _ in range(10):
            engine.analyze(current, [])
        assert "healthy" in format_forecast(engine.thermal_forecast(current))


class TestCreateServer:
    def test_fastmcp_import_path(self):
        pytest.importorskip("mcp")
        from importlib.metadata import version

        from mcp.server.fastmcp import FastMCP

        assert int(version("mcp").split(".")[0]) == 1
        assert FastMCP is not None

    def test_builds(self):
        pytest.importorskip("mcp")
        from xexplain.mcp.server import create_server

        server = create_server(XExplainConfig())
        assert server.name == "xexplain"

    def test_loads_config_when_missing(self, tmp_path, monkeypatch):
        pytest.importorskip("mcp")
        from xexplain.mcp.server import create_server

        monkeypatch.chdir(tmp_path)
        with patch("xexplain.mcp.server.XExplainConfig.load") as mock_load:
            mock_load.return_value = XExplainConfig()
            create_server()
        mock_load.assert_called_once_with()
