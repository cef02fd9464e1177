"""CLI commands for engine setup: vidscribe init, vidscribe status."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from vidscribe.cli import runtime
from vidscribe.cli.formatters import (
    console,
    format_file_size,
    print_error,
    print_success,
    status_mark,
)
from vidscribe.core.binary import launcher_path
from vidscribe.util.types import ToolPaths


def init_command(
    force_download: bool = typer.Option(
        False, "--force-download", help="Download the model even if it exists"
    ),
    skip_deps: bool = typer.Option(
        False, "--skip-deps", help="Build without checking for build tools"
    ),
    cmake: Optional[str] = typer.Option(None, "--cmake", help="Path to cmake"),
    make: Optional[str] = typer.Option(None, "--make", help="Path to make"),
    python: Optional[str] = typer.Option(None, "--python", help="Path to python3"),
    resources: Optional[Path] = typer.Option(
        None,
        "--resources",
        file_okay=False,
        help="Packaged-app resources directory (enables packaged mode)",
    ),
) -> None:
    """Acquire the engine binary and model, building from source if needed."""
    orchestrator = runtime.build_orchestrator(resources=resources)
    tool_paths = ToolPaths(cmake=cmake, make=make, python=python)

    with console.status("Initializing engine (this can take several minutes)..."):
        state = orchestrator.initialize(
            force_download,
            skip_dependency_check=skip_deps,
            tool_paths=tool_paths,
        )

    if not state.is_ready:
        print_error(state.reason or "Initialization failed", state.remediation)
        raise typer.Exit(code=1)

    acquisition = orchestrator.acquisition
    print_success(f"Engine ready: {acquisition.binary.path}")
    console.print(f"[bold]Model:[/bold] {acquisition.paths.model_path}")


def status_command(
    resources: Optional[Path] = typer.Option(
        None, "--resources", file_okay=False, help="Packaged-app resources directory"
    ),
) -> None:
    """Show where the engine and model live and whether they exist."""
    acquisition = runtime.build_acquisition(resources=resources)
    env = acquisition.env
    paths = acquisition.paths
    binary = acquisition.binary
    launcher = launcher_path(paths.engine_dir, env.platform)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Item", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    table.add_row(
        "Environment",
        "",
        f"{env.run_mode.value}, {env.platform.value}/{env.architecture}",
    )
    table.add_row("Vendor dir", status_mark(paths.vendor_dir.is_dir()), str(paths.vendor_dir))
    table.add_row(
        "Engine source",
        status_mark((paths.engine_dir / "CMakeLists.txt").is_file()),
        str(paths.engine_dir),
    )
    binary_detail = str(binary.path)
    if binary.is_legacy:
        binary_detail += " [yellow](legacy name)[/yellow]"
    table.add_row("Binary", status_mark(binary.path.is_file()), binary_detail)
    table.add_row("Launcher", status_mark(launcher.is_file()), str(launcher))

    model_ok = paths.model_path.is_file()
    model_detail = str(paths.model_path)
    if model_ok:
        model_detail += f" ({format_file_size(paths.model_path.stat().st_size)})"
    table.add_row("Model", status_mark(model_ok), model_detail)

    console.print(table)
    if not (binary.path.is_file() and model_ok):
        console.print("[dim]Run 'vidscribe init' to set up the engine.[/dim]")
