"""Root CLI application for vidscribe."""

from __future__ import annotations

import typer

from vidscribe.cli import runtime
from vidscribe.cli.config_cmd import config_app
from vidscribe.cli.doctor import doctor_command
from vidscribe.cli.engine import engine_app
from vidscribe.cli.formatters import console, print_error
from vidscribe.cli.model import model_app
from vidscribe.cli.setup_cmd import init_command, status_command
from vidscribe.cli.transcribe import transcribe_app
from vidscribe.exceptions import VidscribeError
from vidscribe.util.logging import setup_logging

app = typer.Typer(
    name="vidscribe",
    help="vidscribe - local video and audio transcription with whisper.cpp.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


@app.callback()
def main_callback(
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
) -> None:
    """vidscribe - local video and audio transcription with whisper.cpp."""
    runtime.cli_verbosity = verbose
    setup_logging(verbose)


app.command("init")(init_command)
app.command("status")(status_command)
app.command("doctor")(doctor_command)
app.add_typer(transcribe_app, name="transcribe", help="Transcription commands")
app.add_typer(engine_app, name="engine", help="Engine binary commands")
app.add_typer(model_app, name="model", help="Model commands")
app.add_typer(config_app, name="config", help="Configuration commands")


def main() -> None:
    """Entry point for the vidscribe CLI."""
    try:
        app()
    except VidscribeError as exc:
        if runtime.cli_verbosity >= 2:
            console.print_exception()
        print_error(str(exc), exc.remediation)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        raise SystemExit(130) from None
