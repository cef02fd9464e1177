"""CLI command for system diagnostics: vidscribe doctor."""

from __future__ import annotations

import sys

import typer
from rich.table import Table

from vidscribe.cli import runtime
from vidscribe.cli.formatters import console, status_mark
from vidscribe.core.media import resolve_ffmpeg
from vidscribe.core.prerequisites import check_prerequisites, tool_specs
from vidscribe.exceptions import VidscribeError


def doctor_command() -> None:
    """Check build tools, ffmpeg and configuration."""
    console.print("[bold]vidscribe doctor[/bold]: system diagnostics\n")
    table = Table(show_header=True, header_style="bold")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    vi = sys.version_info
    py_ok = vi >= (3, 10)
    table.add_row(
        "Python version",
        status_mark(py_ok),
        f"{vi.major}.{vi.minor}.{vi.micro} ({'OK' if py_ok else 'Requires 3.10+'})",
    )

    try:
        config, env = runtime.load_settings()
    except VidscribeError as exc:
        table.add_row("Configuration", status_mark(False), f"Invalid: {exc}")
        console.print(table)
        raise typer.Exit(code=1) from exc
    table.add_row(
        "Configuration",
        status_mark(True),
        f"model={config.engine.model}, mode={env.run_mode.value}",
    )

    report = check_prerequisites(
        env.platform, timeout=config.acquisition.probe_timeout
    )
    for tool in tool_specs(env.platform):
        found = report.found.get(tool.name)
        table.add_row(tool.name, status_mark(found is not None), found or "Not found")

    try:
        ffmpeg = resolve_ffmpeg(env, report.search)
        table.add_row("ffmpeg", status_mark(True), str(ffmpeg))
    except VidscribeError as exc:
        table.add_row("ffmpeg", status_mark(False), str(exc))

    console.print(table)

    if not report.ok:
        console.print(f"\n[yellow]{report.instructions()}[/yellow]")
        raise typer.Exit(code=1)
