"""CLI commands for configuration: vidscribe config {show,path,set}."""

from __future__ import annotations

import typer

from vidscribe.cli.formatters import console, print_error, print_success
from vidscribe.config.loader import load_config, resolve_config_path, save_value
from vidscribe.config.paths import get_data_dir, get_log_dir

config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current resolved configuration."""
    config = load_config()
    console.print_json(config.model_dump_json(indent=2))


@config_app.command("path")
def config_path() -> None:
    """Show the configuration file path and data directories."""
    console.print(f"[bold]Config file:[/bold] {resolve_config_path()}")
    console.print(f"[bold]Data dir:[/bold]    {get_data_dir()}")
    console.print(f"[bold]Log dir:[/bold]     {get_log_dir()}")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        ...,
        help="Dotted config key (e.g., engine.model, build.timeout_seconds)",
    ),
    value: str = typer.Argument(
        ...,
        help="Value to set ('none' removes the key)",
    ),
) -> None:
    """Set a configuration value in config.toml.

    Examples:
        vidscribe config set engine.model tiny.en
        vidscribe config set download.max_attempts 5
        vidscribe config set acquisition.prefer_prebuilt true
    """
    parts = key.split(".")
    if len(parts) != 2:
        print_error(
            f"Key must be in 'section.field' format (e.g., engine.model), "
            f"got: {key!r}"
        )
        raise typer.Exit(code=1)

    section, field = parts
    coerced = _coerce_value(value)
    path = save_value(section, field, coerced)
    print_success(f"{key} = {coerced!r} ({path})")


def _coerce_value(value: str) -> object:
    """Coerce a string value to bool, None, int or float, else keep the string.

    Model names such as 'base.en' are left alone because they do not
    parse as numbers.
    """
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if lowered in ("none", "null", ""):
        return None

    for kind in (int, float):
        try:
            return kind(value)
        except ValueError:
            continue
    return value
