"""Platform-aware directory resolution for vidscribe.

Two kinds of location live here:

* per-user data (config.toml, logs) under the platformdirs data directory;
* the vendor layout holding the engine checkout, binary and models, which
  is rooted either in a packaged app's resources directory or in the
  development checkout.
"""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path

from platformdirs import user_data_dir, user_log_dir

from vidscribe.exceptions import EnvironmentSetupError
from vidscribe.util.logging import get_logger
from vidscribe.util.types import (
    BinaryDescriptor,
    EnvironmentDescriptor,
    NameVariant,
    PathSet,
    Platform,
    RuntimeContext,
    current_architecture,
)

logger = get_logger(__name__)

APP_NAME = "vidscribe"
ENGINE_DIR_NAME = "whisper.cpp"

# src/vidscribe/config/paths.py -> repository root
DEFAULT_APP_ROOT = Path(__file__).resolve().parents[3]


def get_data_dir() -> Path:
    """Return the platform-specific vidscribe data directory.

    Windows:  %LOCALAPPDATA%\\vidscribe
    Linux:    ~/.local/share/vidscribe
    macOS:    ~/Library/Application Support/vidscribe

    Creates the directory if it does not exist.
    """
    data_dir = Path(user_data_dir(APP_NAME, appauthor=False))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def get_config_path() -> Path:
    """Return path to the global config.toml file."""
    return get_data_dir() / "config.toml"


def get_log_dir() -> Path:
    """Return the log directory. Creates it if missing."""
    log_dir = Path(user_log_dir(APP_NAME, appauthor=False))
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def detect_environment(
    run_mode: RuntimeContext | None = None,
    resources_path: Path | None = None,
    app_root: Path | None = None,
) -> EnvironmentDescriptor:
    """Build the environment descriptor for this process.

    The run mode is normally injected by the composition root. When it is
    not, a resources path (explicit, or the directory of a frozen
    executable) implies a packaged app; anything else is development.

    Args:
        run_mode: Explicit run mode, if the caller knows it.
        resources_path: Packaged-app resources directory.
        app_root: Development checkout root. Defaults to the source tree.

    Returns:
        An immutable EnvironmentDescriptor.
    """
    if resources_path is None and getattr(sys, "frozen", False):
        resources_path = Path(getattr(sys, "_MEIPASS", Path(sys.executable).parent))

    if run_mode is None:
        run_mode = RuntimeContext.PACKAGED if resources_path else RuntimeContext.DEVELOPMENT

    env = EnvironmentDescriptor(
        run_mode=run_mode,
        platform=Platform.current(),
        architecture=current_architecture(),
        app_root=(app_root or DEFAULT_APP_ROOT).resolve(),
        resources_path=resources_path.resolve() if resources_path else None,
    )
    logger.info(
        "Environment: mode=%s platform=%s arch=%s resources=%s",
        env.run_mode.value,
        env.platform.value,
        env.architecture,
        env.resources_path,
    )
    return env


def refresh(
    env: EnvironmentDescriptor,
    resources_path: Path | None = None,
) -> EnvironmentDescriptor:
    """Re-detect the environment if a resources path appeared late.

    Shells sometimes publish their resources directory only after startup.
    A descriptor that already has one is returned unchanged.
    """
    if env.resources_path is not None or resources_path is None:
        return env
    logger.info("Resources path became available: %s", resources_path)
    return detect_environment(
        RuntimeContext.PACKAGED, resources_path=resources_path, app_root=env.app_root
    )


def vendor_root(env: EnvironmentDescriptor) -> Path:
    """Return the vendor directory for *env*.

    Packaged apps keep bundled assets in the resources directory, outside
    the application archive; a development checkout keeps them next to
    the source tree.
    """
    if env.run_mode is RuntimeContext.PACKAGED and env.resources_path is not None:
        return env.resources_path / "vendor"
    return env.app_root / "vendor"


def binary_name(variant: NameVariant, platform: Platform) -> str:
    """Return the executable file name for a name variant."""
    if variant is NameVariant.CURRENT:
        return f"whisper-cli{platform.exe_suffix}"
    return "whisper.exe" if platform is Platform.WIN else "main"


def resolve_binary(engine_dir: Path, platform: Platform) -> BinaryDescriptor:
    """Pick the engine executable inside *engine_dir*.

    Prefers the current name, falls back to the legacy one, and defaults
    to the current-name path when neither exists yet.
    """
    current = engine_dir / binary_name(NameVariant.CURRENT, platform)
    legacy = engine_dir / binary_name(NameVariant.LEGACY, platform)

    if current.is_file():
        logger.info("Using binary name: %s", current.name)
        return BinaryDescriptor(current, NameVariant.CURRENT)
    if legacy.is_file():
        logger.warning(
            "Using legacy binary name %s; legacy names are deprecated, "
            "rebuild or rename it to %s",
            legacy.name,
            current.name,
        )
        return BinaryDescriptor(legacy, NameVariant.LEGACY)
    logger.info("No existing binary found, expecting %s", current.name)
    return BinaryDescriptor(current, NameVariant.CURRENT)


def resolve_paths(env: EnvironmentDescriptor, model_filename: str) -> PathSet:
    """Derive the whole vendor layout from one environment snapshot.

    Never fails; the returned paths may not exist yet.
    """
    vendor_dir = vendor_root(env)
    models_dir = vendor_dir / "models"
    engine_dir = vendor_dir / ENGINE_DIR_NAME
    return PathSet(
        vendor_dir=vendor_dir,
        models_dir=models_dir,
        engine_dir=engine_dir,
        model_path=models_dir / model_filename,
        binary_path=resolve_binary(engine_dir, env.platform).path,
    )


def ensure_directories(paths: PathSet) -> None:
    """Create the vendor and models directories if they are missing.

    Raises:
        EnvironmentSetupError: If a directory cannot be created.
    """
    for directory in (paths.vendor_dir, paths.models_dir):
        if directory.is_dir():
            continue
        try:
            logger.info("Creating directory: %s", directory)
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise EnvironmentSetupError(
                f"Cannot create directory {directory}: {exc}"
            ) from exc


def default_temp_dir() -> Path:
    """Scratch directory for extracted audio and engine output."""
    return Path(tempfile.gettempdir()) / "whisper-transcription"
