"""CLI commands for the engine binary: vidscribe engine {check,launcher,clean-source}."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from vidscribe.cli import runtime
from vidscribe.cli.formatters import console, print_error, print_info, print_success
from vidscribe.core import binary as binaries

engine_app = typer.Typer(no_args_is_help=True)

ResourcesOption = typer.Option(
    None, "--resources", file_okay=False, help="Packaged-app resources directory"
)


@engine_app.command("check")
def check_engine(resources: Optional[Path] = ResourcesOption) -> None:
    """Probe the engine binary and show linker diagnostics."""
    acquisition = runtime.build_acquisition(resources=resources)
    descriptor = acquisition.binary
    platform = acquisition.env.platform

    console.print(f"[bold]Binary:[/bold] {descriptor.path}")
    if not descriptor.path.is_file():
        print_error(
            f"Binary not found at {descriptor.path}",
            "Run 'vidscribe init' to build it.",
        )
        raise typer.Exit(code=1)
    if descriptor.is_legacy:
        console.print("[yellow]Using legacy binary name; rebuild to get whisper-cli.[/yellow]")

    for label, output in binaries.binary_diagnostics(descriptor.path, platform).items():
        console.print(f"\n[bold]{label}[/bold]")
        console.print(escape(output), highlight=False)

    outcome = binaries.check_health(
        descriptor.path, platform, timeout=acquisition.config.acquisition.probe_timeout
    )
    if not outcome.ok:
        print_error(
            f"Binary failed to run (tried: {', '.join(outcome.tried)})",
            "Rebuild with 'vidscribe init'.",
        )
        raise typer.Exit(code=1)
    print_success(f"Binary runs ({outcome.strategy})")


@engine_app.command("launcher")
def create_launcher(resources: Optional[Path] = ResourcesOption) -> None:
    """Regenerate the launcher script next to the binary."""
    acquisition = runtime.build_acquisition(resources=resources)
    descriptor = acquisition.binary
    if not descriptor.path.is_file():
        print_error(
            f"Binary not found at {descriptor.path}",
            "Run 'vidscribe init' first.",
        )
        raise typer.Exit(code=1)
    path = binaries.write_launcher(
        acquisition.paths.engine_dir, descriptor, acquisition.env.platform
    )
    print_success(f"Launcher written to {path}")


@engine_app.command("clean-source")
def clean_source(resources: Optional[Path] = ResourcesOption) -> None:
    """Remove nested git metadata from the engine checkout."""
    acquisition = runtime.build_acquisition(resources=resources)
    if binaries.strip_git_metadata(acquisition.paths.engine_dir):
        print_success("Removed nested .git directory")
    else:
        print_info("No nested .git directory found.")
