"""Composition root shared by CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from vidscribe.config.loader import load_config
from vidscribe.config.paths import detect_environment, get_log_dir
from vidscribe.config.schema import VidscribeConfig
from vidscribe.core.acquisition import AcquisitionManager
from vidscribe.core.orchestrator import Orchestrator
from vidscribe.util.logging import setup_logging
from vidscribe.util.types import EnvironmentDescriptor, RuntimeContext

# Set by the root callback from -v flags.
cli_verbosity = 0

LOG_FILE_NAME = "vidscribe.log"


def load_settings(
    cli_overrides: dict[str, Any] | None = None,
    *,
    resources: Path | None = None,
) -> tuple[VidscribeConfig, EnvironmentDescriptor]:
    """Load config, configure file logging and detect the environment.

    Args:
        cli_overrides: Nested overrides from command flags.
        resources: Packaged-app resources directory; implies packaged mode.
    """
    overrides = dict(cli_overrides or {})
    if resources is not None:
        overrides.setdefault("paths", {})["resources_path"] = resources
    config = load_config(cli_overrides=overrides)

    verbosity = max(cli_verbosity, config.logging.verbosity)
    if config.logging.log_to_file:
        setup_logging(verbosity, log_file=get_log_dir() / LOG_FILE_NAME)
    elif verbosity != cli_verbosity:
        setup_logging(verbosity)

    resources_path = config.paths.resources_path
    env = detect_environment(
        RuntimeContext.PACKAGED if resources_path else None,
        resources_path=resources_path,
        app_root=config.paths.app_root,
    )
    return config, env


def build_acquisition(
    cli_overrides: dict[str, Any] | None = None,
    *,
    resources: Path | None = None,
) -> AcquisitionManager:
    config, env = load_settings(cli_overrides, resources=resources)
    return AcquisitionManager(config, env)


def build_orchestrator(
    cli_overrides: dict[str, Any] | None = None,
    *,
    resources: Path | None = None,
) -> Orchestrator:
    config, env = load_settings(cli_overrides, resources=resources)
    return Orchestrator(config, env)
