"""CLI commands for the speech model: vidscribe model {download,info}."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from vidscribe.cli import runtime
from vidscribe.cli.formatters import console, format_file_size, print_info, print_success
from vidscribe.config.paths import ensure_directories
from vidscribe.core.download import model_url
from vidscribe.util.types import ToolPaths

model_app = typer.Typer(no_args_is_help=True)


@model_app.command("download")
def download_model(
    force: bool = typer.Option(False, "--force", "-f", help="Redownload even if present"),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model name (e.g., base.en, tiny.en)"
    ),
    python: Optional[str] = typer.Option(
        None, "--python", help="Python used by the fallback download script"
    ),
    resources: Optional[Path] = typer.Option(
        None, "--resources", file_okay=False, help="Packaged-app resources directory"
    ),
) -> None:
    """Download the ggml model file."""
    overrides = {"engine": {"model": model}} if model else None
    acquisition = runtime.build_acquisition(overrides, resources=resources)
    paths = acquisition.paths

    if paths.model_path.is_file() and not force:
        print_info(f"Model already present at {paths.model_path} (use --force to redownload)")
        return

    ensure_directories(paths)
    with console.status(f"Downloading {paths.model_path.name}..."):
        acquisition.download_model(ToolPaths(python=python))

    print_success(f"Model downloaded to {paths.model_path}")


@model_app.command("info")
def model_info(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name"),
    resources: Optional[Path] = typer.Option(
        None, "--resources", file_okay=False, help="Packaged-app resources directory"
    ),
) -> None:
    """Show the configured model, its location and source URL."""
    overrides = {"engine": {"model": model}} if model else None
    acquisition = runtime.build_acquisition(overrides, resources=resources)
    engine = acquisition.config.engine
    path = acquisition.paths.model_path

    console.print(f"[bold]Model:[/bold]  {engine.model}")
    console.print(f"[bold]File:[/bold]   {engine.model_filename}")
    console.print(f"[bold]Path:[/bold]   {path}")
    console.print(f"[bold]Source:[/bold] {model_url(engine.model_repo, engine.model_filename)}")
    if path.is_file():
        console.print(f"[bold]Size:[/bold]   {format_file_size(path.stat().st_size)}")
    else:
        console.print("[dim]Not downloaded yet. Run: vidscribe model download[/dim]")
