"""``attendload run``: execute the load test with live terminal output."""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from attendload._internal.config import load_config, parse_duration
from attendload._internal.errors import AttendLoadError, ConfigError, SetupError
from attendload._internal.logging import setup_logging
from attendload.engine.runner import run_load_test

if TYPE_CHECKING:
    from attendload._internal.config import DriverConfig
    from attendload.metrics.models import MetricSnapshot, RunResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich display
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None) -> Table:
    """Build a Rich table summarising the latest interval.

    Args:
        snapshot: Latest metric snapshot, or None before the first tick.

    Returns:
        Formatted Rich Table.
    """
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Logging in...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active Users", str(snapshot.active_users))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("p50 Latency", f"{snapshot.latency.p50:.1f}ms")
    table.add_row("p95 Latency", f"{snapshot.latency.p95:.1f}ms")
    table.add_row("HTTP Errors", str(snapshot.total_errors))
    return table


def _print_summary(result: RunResult) -> None:
    """Print the endpoint breakdown, the checks and the overall summary.

    Args:
        result: Completed run result.
    """
    summary = result.final_summary

    if summary is not None and summary.endpoints:
        ep_table = Table(
            title="Per-Endpoint Breakdown",
            show_header=True,
            header_style="bold cyan",
            expand=True,
        )
        ep_table.add_column("Endpoint")
        ep_table.add_column("Requests", justify="right")
        ep_table.add_column("RPS", justify="right")
        ep_table.add_column("p50", justify="right")
        ep_table.add_column("p95", justify="right")
        ep_table.add_column("p99", justify="right")
        ep_table.add_column("HTTP Errors", justify="right")

        for ep in summary.endpoints.values():
            ep_table.add_row(
                ep.name,
                str(ep.request_count),
                f"{ep.requests_per_second:.1f}",
                f"{ep.latency.p50:.1f}ms",
                f"{ep.latency.p95:.1f}ms",
                f"{ep.latency.p99:.1f}ms",
                str(ep.error_count),
            )
        console.print(ep_table)

    check_table = Table(title="Checks", show_header=True, header_style="bold cyan", expand=True)
    check_table.add_column("")
    check_table.add_column("Check")
    check_table.add_column("Passes", justify="right")
    check_table.add_column("Fails", justify="right")
    check_table.add_column("Pass Rate", justify="right")
    check_table.add_column("Failing Statuses")

    for check in result.checks:
        mark = "[green]✓[/green]" if check.fails == 0 else "[red]✗[/red]"
        statuses = ", ".join(
            f"{'error' if status == 0 else status}×{count}"
            for status, count in sorted(check.fails_by_status.items())
        )
        check_table.add_row(
            mark,
            check.name,
            str(check.passes),
            str(check.fails),
            f"{check.pass_rate * 100:.2f}%",
            statuses,
        )
    console.print(check_table)

    table = Table(title="Run Complete", show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Base URL", result.base_url)
    table.add_row("Virtual Users", str(result.virtual_users))
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    table.add_row("Iterations", str(result.iterations))
    table.add_row("Check Failure Rate", f"{result.check_failure_rate * 100:.2f}%")
    if summary is not None:
        table.add_row("Total Requests", str(summary.total_requests))
        table.add_row("Avg Requests/sec", f"{summary.requests_per_second:.1f}")
        table.add_row("p95 Latency", f"{summary.latency.p95:.1f}ms")
        table.add_row("HTTP Errors", str(summary.total_errors))
    console.print(table)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _build_config(
    *,
    users: int | None,
    duration: str | None,
    base_url: str | None,
    username: str | None,
    password: str | None,
    pause: float | None,
    timeout: float | None,
) -> DriverConfig:
    """Overlay CLI flags on the environment configuration.

    Raises:
        ConfigError: If the environment or a flag holds an invalid value.
    """
    for flag, value in (("--pause", pause), ("--timeout", timeout)):
        if value is not None and not math.isfinite(value):
            msg = f"{flag} must be a finite number, got: {value}"
            raise ConfigError(msg)

    overrides: dict[str, object] = {}
    if users is not None:
        overrides["virtual_users"] = users
    if duration is not None:
        overrides["duration_seconds"] = parse_duration(duration)
    if base_url is not None:
        overrides["base_url"] = base_url
    if username is not None:
        overrides["username"] = username
    if password is not None:
        overrides["password"] = password
    if pause is not None:
        overrides["pause_seconds"] = pause
    if timeout is not None:
        overrides["request_timeout"] = timeout
    return dataclasses.replace(load_config(), **overrides)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    users: int | None = typer.Option(
        None,
        "--users",
        "-u",
        help="Concurrent virtual users [default: ATTENDLOAD_VUS or 10].",
        min=1,
    ),
    duration: str | None = typer.Option(
        None,
        "--duration",
        "-d",
        help="Run duration, e.g. 30s, 2m, 1m30s [default: ATTENDLOAD_DURATION or 30s].",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="API root URL [default: ATTENDLOAD_BASE_URL or http://localhost:8080].",
    ),
    username: str | None = typer.Option(None, "--username", help="Login name for setup."),
    password: str | None = typer.Option(None, "--password", help="Login password for setup."),
    pause: float | None = typer.Option(
        None,
        "--pause",
        help="Seconds to pause after each request [default: 1.0].",
        min=0.0,
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds [default: 30.0].",
        min=0.001,
    ),
    fail_on_check_rate: float | None = typer.Option(
        None,
        "--fail-on-check-rate",
        help="Exit non-zero if the check failure rate exceeds this threshold (e.g., 0.05).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit logs as JSON lines.",
    ),
) -> None:
    """Log in once, then drive the attendance journey with virtual users."""
    setup_logging(logging.DEBUG if verbose else logging.INFO, json_format=json_logs)

    try:
        config = _build_config(
            users=users,
            duration=duration,
            base_url=base_url,
            username=username,
            password=password,
            pause=pause,
            timeout=timeout,
        )
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Target:[/bold]   {config.base_url}\n"
            f"[bold]User:[/bold]     {config.username}\n"
            f"[bold]VUs:[/bold]      {config.virtual_users}\n"
            f"[bold]Duration:[/bold] {config.duration_seconds:g}s",
            title="attendload",
            border_style="cyan",
        )
    )

    try:
        with Live(
            _make_live_table(None),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:
            result = run_load_test(
                config,
                on_snapshot=lambda snapshot: live.update(_make_live_table(snapshot)),
            )
    except SetupError as exc:
        console.print(f"[red]Setup failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    except AttendLoadError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if fail_on_check_rate is not None and result.check_failure_rate > fail_on_check_rate:
        console.print(
            f"[red]FAIL:[/red] Check failure rate {result.check_failure_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_check_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Load test completed.[/green]")
