"""CLI commands for transcription: vidscribe transcribe file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from vidscribe.cli import runtime
from vidscribe.cli.formatters import console, output_console, print_info
from vidscribe.core.orchestrator import OrchestratorEvent

transcribe_app = typer.Typer(no_args_is_help=True)


@transcribe_app.command("file")
def transcribe_file(
    input_path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Path to a video or audio file",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the transcript to this file"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="Model name (e.g., base.en)"
    ),
    resources: Optional[Path] = typer.Option(
        None, "--resources", file_okay=False, help="Packaged-app resources directory"
    ),
) -> None:
    """Transcribe a video or audio file with the local engine."""
    cli_overrides: dict[str, dict[str, object]] = {}
    if model is not None:
        cli_overrides.setdefault("engine", {})["model"] = model

    orchestrator = runtime.build_orchestrator(cli_overrides, resources=resources)

    def on_event(event: OrchestratorEvent) -> None:
        message = event.payload.get("message")
        if event.kind == "progress" and message and event.payload.get("status") == "started":
            print_info(message)

    orchestrator.subscribe(on_event)

    with console.status(f"Transcribing {input_path.name}..."):
        result = orchestrator.transcribe(input_path)

    if output:
        output.write_text(result.transcript, encoding="utf-8")
        print_info(f"Written to {output}")
    else:
        output_console.print(result.transcript, markup=False, highlight=False)
