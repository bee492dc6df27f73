"""CLI for procmon.

Provides a rich command-line interface using Typer for:
- Serving sampled metrics over HTTP
- Taking a one-off sample of a process
- Discovering processes by name
- Generating a sample configuration
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from procmon.core.config import apply_env_overrides, load_config
from procmon.core.constants import DEFAULT_PROC_ROOT
from procmon.core.errors import MonitorError, ProcessNotFound, ReadFailure
from procmon.core.schemas import MonitorConfig
from procmon.monitoring.deltas import bytes_to_mb, compute_deltas
from procmon.monitoring.discovery import find_processes_by_name
from procmon.monitoring.procfs_reader import ProcfsReader
from procmon.service import MonitorService
from procmon.utils.logging import setup_logging

app = typer.Typer(
    name="procmon",
    help="Per-process resource monitor",
    add_completion=False,
)

console = Console()
logger = logging.getLogger(__name__)


@app.command()
def serve(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to monitor configuration file (YAML/JSON)"
    ),
    pid: int | None = typer.Option(None, "--pid", "-p", help="Process id to monitor"),
    host: str | None = typer.Option(None, "--host", help="Bind address (overrides config)"),
    port: int | None = typer.Option(None, "--port", help="HTTP port (overrides config)"),
    log_level: str = typer.Option("INFO", "--log-level", "-l", help="Logging level"),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file in addition to console"
    ),
    json_logs: bool = typer.Option(
        False, "--json-logs", help="Output logs in JSON format (for programmatic parsing)"
    ),
) -> None:
    """Monitor a process and serve its samples at /stats."""
    setup_logging(
        level=log_level, log_file=log_file, json_format=json_logs, rich_console=not json_logs
    )

    try:
        monitor_config = _resolve_config(config, pid=pid, host=host, port=port)
    except Exception as e:
        console.print(f"[bold red]Error loading config: {e}[/]")
        raise typer.Exit(1) from e

    service = MonitorService(monitor_config)
    try:
        service.start()
    except MonitorError as e:
        console.print(f"[bold red]{e}[/]")
        service.stop()
        raise typer.Exit(1) from e

    logger.info(f"Monitor API running on {monitor_config.host}:{monitor_config.port}")
    try:
        uvicorn.run(
            service.app,
            host=monitor_config.host,
            port=monitor_config.port,
            log_level=log_level.lower(),
        )
    finally:
        service.stop()


@app.command()
def sample(
    pid: int = typer.Option(..., "--pid", "-p", help="Process id to sample"),
    interval: float = typer.Option(
        1.0, "--interval", "-i", min=0.1, help="Seconds between the two snapshots"
    ),
    owner_uid: int | None = typer.Option(
        None, "--owner-uid", help="Owning uid for per-uid network counters"
    ),
    proc_root: Path = typer.Option(DEFAULT_PROC_ROOT, "--proc-root", help="proc mount point"),
) -> None:
    """Take two snapshots of a process and print the derived usage."""
    reader = ProcfsReader(proc_root)
    try:
        first = reader.read_snapshot(pid, owner_uid=owner_uid)
        time.sleep(interval)
        second = reader.read_snapshot(pid, owner_uid=owner_uid)
    except ProcessNotFound as e:
        console.print(f"[bold red]Process {pid} not found[/]")
        raise typer.Exit(1) from e
    except ReadFailure as e:
        console.print(f"[bold red]Error reading process {pid}: {e}[/]")
        raise typer.Exit(1) from e

    deltas = compute_deltas(first, second)

    table = Table(title=escape(f"PID {pid} [{reader.read_process_name(pid)}]"))
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("CPU (share of system)", f"{deltas.cpu_percent:.2f}%")
    table.add_row("Memory (RSS)", f"{bytes_to_mb(second.rss_bytes):.2f} MB")
    table.add_row("Disk read", f"{deltas.io.read_bytes_per_second:,.0f} B/s")
    table.add_row("Disk write", f"{deltas.io.write_bytes_per_second:,.0f} B/s")
    table.add_row("Network rx", f"{deltas.network.rx_bytes_per_second:,.0f} B/s")
    table.add_row("Network tx", f"{deltas.network.tx_bytes_per_second:,.0f} B/s")
    table.add_row("Interval", f"{deltas.cpu.elapsed_ms:.0f} ms")
    console.print(table)


@app.command()
def discover(
    name: str = typer.Option(..., "--name", "-n", help="Exact process name (as in comm)"),
    proc_root: Path = typer.Option(DEFAULT_PROC_ROOT, "--proc-root", help="proc mount point"),
) -> None:
    """List processes whose name matches exactly."""
    pids = find_processes_by_name(name, proc_root)
    if not pids:
        console.print(f"[bold yellow]No '{name}' processes found[/]")
        raise typer.Exit(1)

    table = Table(title=f"Processes named '{name}'")
    table.add_column("PID", style="cyan")
    for found in pids:
        table.add_row(str(found))
    console.print(table)


@app.command()
def init_config(
    output: Path = typer.Option(
        Path("procmon.yaml"), "--output", "-o", help="Output configuration file"
    ),
) -> None:
    """Generate a sample configuration file."""
    sample_config = """\
# procmon configuration
# Environment variables MONITOR_PID, MONITOR_PORT, MONITOR_OWNER_UID,
# MONITOR_INTERVAL and MONITOR_HISTORY override these values.

# Process to monitor. When unset, the first process named `process_name` is used.
# pid: 1234
process_name: termux

# Owning uid for per-uid network counters (/proc/uid_stat). When unset,
# system-wide interface totals from /proc/net/dev are reported.
# owner_uid: 10123

host: "0.0.0.0"
port: 8080

# Number of samples kept in memory and served at /stats
history_capacity: 1000

sampling:
  interval_seconds: 5        # Active cadence
  idle_interval_seconds: 30  # Cadence while network activity is low
  idle_threshold_bps: 1024   # Combined rx+tx bytes/sec considered idle
  failure_threshold: 3       # Consecutive read failures before assuming death
  adaptive: true             # false keeps a fixed cadence
"""
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(sample_config)
    console.print(f"[bold green]Sample configuration written to {output}[/]")


def _resolve_config(
    path: Path | None,
    pid: int | None = None,
    host: str | None = None,
    port: int | None = None,
) -> MonitorConfig:
    """Config file (or defaults), then environment, then command-line options."""
    base = load_config(path) if path is not None else MonitorConfig()
    merged = apply_env_overrides(base)

    overrides = {
        key: value
        for key, value in (("pid", pid), ("host", host), ("port", port))
        if value is not None
    }
    if overrides:
        merged = MonitorConfig.model_validate({**merged.model_dump(), **overrides})
    return merged


if __name__ == "__main__":
    app()
