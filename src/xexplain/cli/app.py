"""Typer CLI for xexplain system analysis."""

from __future__ import annotations

import json
import time
from typing import Annotated, Optional

import typer
from rich.console import Console

from xexplain.config import XExplainConfig
from xexplain.core.engine import ExplainEngine, build_engine
from xexplain.models.enums import Severity
from xexplain.models.insight import ExplainInsight
from xexplain.models.system import NormalizedMetrics

app = typer.Typer(
    name="xexplain",
    help="Explains why your machine is slow, busy or hot.",
    no_args_is_help=True,
)
console = Console(stderr=True)

_SEVERITY_STYLE = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def _config() -> XExplainConfig:
    return XExplainConfig.load()


def _engine(config: XExplainConfig, audience: list[str] | None) -> ExplainEngine:
    try:
        return build_engine(config, audience or None)
    except ValueError:
        console.print(f"[red]Unknown audience:[/red] {', '.join(audience or [])}")
        console.print("  Choose from: general, developer, power")
        raise typer.Exit(1)


def _print_metrics(metrics: NormalizedMetrics) -> None:
    from rich.table import Table

    table = Table(title="System State")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("CPU", f"{metrics.cpu_usage:.1f}%")
    table.add_row("Memory", f"{metrics.memory_usage_percent:.1f}% ({metrics.memory_pressure.value})")
    table.add_row("Disk read", f"{metrics.disk_read_rate:.1f} MB/s")
    table.add_row("Disk write", f"{metrics.disk_write_rate:.1f} MB/s")
    table.add_row("Temperature", f"{metrics.cpu_temperature:.0f}°C")
    table.add_row("Thermal state", metrics.thermal_state.value)
    table.add_row("Fan", f"{metrics.fan_speed} RPM" if metrics.fan_speed > 0 else "Passive")
    console.print(table)


def _print_insight(index: int, insight: ExplainInsight) -> None:
    style = _SEVERITY_STYLE[insight.severity]
    console.print(f"\n[{style}]#{index} [{insight.severity.value.upper()}][/{style}] [bold]{insight.symptom}[/bold]")
    console.print(f"  Root cause: {insight.root_cause}")
    console.print(f"  Confidence: {insight.confidence:.0%}")
    console.print(f"  [dim]{insight.explanation}[/dim]")
    cf = insight.counterfactual
    if cf:
        impact = f" ({cf.quantified_impact})" if cf.quantified_impact else ""
        console.print(f"  [green]What if:[/green] {cf.action} → {cf.expected_outcome}{impact}")


def _print_insights(insights: list[ExplainInsight]) -> None:
    if not insights:
        console.print("\n[green]System is running normally. No issues detected.[/green]")
        return
    console.print(f"\n[bold]Found {len(insights)} insight(s):[/bold]")
    for i, insight in enumerate(insights, start=1):
        _print_insight(i, insight)


@app.callback()
def _main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    from xexplain.logging_setup import setup_logging

    setup_logging("DEBUG" if verbose else None)


@app.command()
def analyze(
    as_json: Annotated[bool, typer.Option("--json", "-j", help="Print JSON to stdout")] = False,
    audience: Annotated[
        Optional[list[str]],
        typer.Option("--audience", "-a", help="Extra rule bundle: developer, power"),
    ] = None,
) -> None:
    """Sample the system once and explain what is going on."""
    from xexplain.core.collector import collect_metrics, collect_processes
    from xexplain.mcp.formatters import insights_to_dict

    config = _config()
    engine = _engine(config, audience)

    metrics = collect_metrics(config.collector)
    processes = collect_processes(config.collector)
    insights = engine.analyze(metrics, processes)

    if as_json:
        typer.echo(json.dumps(insights_to_dict(insights, metrics, processes), indent=2))
        return

    _print_metrics(metrics)
    _print_insights(insights)


@app.command()
def watch(
    interval: Annotated[Optional[float], typer.Option("--interval", "-i", help="Seconds between samples")] = None,
    count: Annotated[int, typer.Option("--count", "-n", help="Stop after N samples (0 = forever)")] = 0,
    audience: Annotated[
        Optional[list[str]],
        typer.Option("--audience", "-a", help="Extra rule bundle: developer, power"),
    ] = None,
) -> None:
    """Sample repeatedly and report insights as they appear."""
    from xexplain.core.collector import collect_metrics, collect_processes

    config = _config()
    engine = _engine(config, audience)
    delay = interval if interval is not None else config.watch.interval

    console.print("[dim]Watching system... (Ctrl+C to stop)[/dim]")
    samples = 0
    try:
        while count <= 0 or samples < count:
            metrics = collect_metrics(config.collector)
            processes = collect_processes(config.collector)
            insights = engine.analyze(metrics, processes)
            samples += 1

            stamp = metrics.timestamp.astimezone().strftime("%H:%M:%S")
            console.print(
                f"\n[bold]{stamp}[/bold]  CPU {metrics.cpu_usage:5.1f}%  "
                f"Mem {metrics.memory_usage_percent:5.1f}%  "
                f"Temp {metrics.cpu_temperature:4.0f}°C  "
                f"Disk {metrics.total_disk_io:5.1f} MB/s"
            )
            if insights:
                for insight in insights[:3]:
                    style = _SEVERITY_STYLE[insight.severity]
                    console.print(f"  [{style}]{insight.severity.value.upper():8}[/{style}] {insight.symptom}")
            else:
                console.print("  [green]System healthy[/green]")

            if count <= 0 or samples < count:
                time.sleep(delay)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


@app.command("why-cpu")
def why_cpu() -> None:
    """Explain why the CPU is busy."""
    from xexplain.core.collector import collect_metrics, collect_processes

    config = _config()
    engine = ExplainEngine(config)
    metrics = collect_metrics(config.collector)
    processes = collect_processes(config.collector)

    insight = engine.why_cpu(metrics, processes)
    if insight is None:
        console.print(f"[green]CPU usage is normal ({metrics.cpu_usage:.0f}%).[/green]")
        return
    _print_insight(1, insight)


@app.command("why-hot")
def why_hot() -> None:
    """Explain why the machine is hot."""
    from xexplain.core.collector import collect_metrics, collect_processes

    config = _config()
    engine = ExplainEngine(config)
    metrics = collect_metrics(config.collector)
    processes = collect_processes(config.collector)

    insight = engine.why_hot(metrics, processes)
    if insight is None:
        console.print(
            f"[green]Thermal state is {metrics.thermal_state.value} "
            f"({metrics.cpu_temperature:.0f}°C). No throttling.[/green]"
        )
        return
    _print_insight(1, insight)


@app.command()
def forecast(
    samples: Annotated[int, typer.Option("--samples", "-s", help="Samples to collect first")] = 10,
) -> None:
    """Predict whether the CPU will throttle soon."""
    from xexplain.core.collector import collect_metrics

    config = _config()
    engine = ExplainEngine(config)

    console.print(f"[dim]Collecting {samples} samples...[/dim]")
    metrics = None
    for _ in range(max(samples, 1)):
        metrics = collect_metrics(config.collector)
        engine.analyze(metrics, [])

    prediction = engine.thermal_forecast(metrics)
    if prediction is None:
        console.print("[yellow]Not enough samples for a forecast.[/yellow]")
        return
    if prediction.will_throttle:
        console.print(
            f"[yellow]The system may throttle in ~{prediction.estimated_minutes:.1f} minutes "
            f"(currently {prediction.current_temperature:.0f}°C).[/yellow]"
        )
        if prediction.recommended_action:
            console.print(f"  {prediction.recommended_action}")
    else:
        console.print(
            f"[green]Thermal status is healthy ({prediction.current_temperature:.0f}°C). "
            "No throttling expected.[/green]"
        )


@app.command()
def process(pid: int) -> None:
    """Explain the resource usage of one process."""
    from xexplain.core.collector import collect_metrics, find_process

    config = _config()
    proc = find_process(pid, config.collector)
    if proc is None:
        console.print(f"[red]Process not found:[/red] {pid}")
        raise typer.Exit(1)

    metrics = collect_metrics(config.collector)
    engine = ExplainEngine(config)
    insights = engine.analyze_process(proc, metrics, [proc])

    console.print(
        f"[bold]{proc.display_name}[/bold] (pid {proc.pid}, {proc.category.value})  "
        f"CPU {proc.cpu_usage:.1f}%  Mem {proc.memory_gb:.2f}GB  Threads {proc.thread_count}"
    )
    if not insights:
        console.print("[green]Nothing unusual about this process.[/green]")
        return
    for i, insight in enumerate(insights, start=1):
        _print_insight(i, insight)


def main() -> None:
    """Entry point for the xexplain CLI."""
    app()


if __name__ == "__main__":
    main()
