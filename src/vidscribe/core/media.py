"""Audio extraction with ffmpeg."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from vidscribe.core.binary import make_executable
from vidscribe.exceptions import ExtractionError
from vidscribe.util.logging import get_logger
from vidscribe.util.process import run_command, tail
from vidscribe.util.strategy import Strategy, first_success
from vidscribe.util.types import EnvironmentDescriptor, RuntimeContext, SearchContext

logger = get_logger(__name__)

AUDIO_EXTENSIONS: frozenset[str] = frozenset({".mp3", ".wav", ".m4a", ".ogg", ".flac"})
MIN_AUDIO_BYTES = 1024


def is_audio_file(path: Path) -> bool:
    """Classify by extension; anything that is not audio is treated as video."""
    return path.suffix.lower() in AUDIO_EXTENSIONS


def _bundled(directory: Path, env: EnvironmentDescriptor) -> Path | None:
    exe = directory / "ffmpeg" / f"ffmpeg{env.platform.exe_suffix}"
    if not exe.is_file():
        return None
    make_executable(exe, env.platform)
    return exe


def _static_ffmpeg() -> Path | None:
    from static_ffmpeg import run

    try:
        ffmpeg, _ffprobe = run.get_or_fetch_platform_executables_else_raise()
    except (OSError, RuntimeError) as exc:
        logger.warning("static-ffmpeg binaries unavailable: %s", exc)
        return None
    return Path(ffmpeg)


def resolve_ffmpeg(env: EnvironmentDescriptor, search: SearchContext | None = None) -> Path:
    """Find an ffmpeg executable.

    Order: PATH (with the search context's extra dirs), the packaged
    vendor copy, the development vendor copy, then the static-ffmpeg
    package's binaries.

    Raises:
        ExtractionError: If no ffmpeg can be found.
    """
    search = search or SearchContext()

    def on_path() -> Path | None:
        found = shutil.which("ffmpeg", path=search.path_value())
        return Path(found) if found else None

    strategies: list[Strategy[Path]] = [
        Strategy("system", on_path),
        Strategy(
            "packaged",
            lambda: _bundled(env.resources_path / "vendor", env) if env.resources_path else None,
            applies=lambda: env.run_mode is RuntimeContext.PACKAGED,
        ),
        Strategy("development", lambda: _bundled(env.app_root / "vendor", env)),
        Strategy("static-ffmpeg", _static_ffmpeg),
    ]
    outcome = first_success(strategies)
    if outcome.value is None:
        raise ExtractionError(
            "ffmpeg not found",
            remediation="Install ffmpeg and make sure it is on your PATH.",
        )
    logger.info("Using ffmpeg from %s: %s", outcome.strategy, outcome.value)
    return outcome.value


def extract_audio(
    source: Path,
    dest: Path,
    ffmpeg: Path | str = "ffmpeg",
    *,
    timeout: float | None = None,
) -> Path:
    """Convert *source* to 16 kHz mono 16-bit PCM WAV at *dest*.

    Audio inputs are run through the same conversion so the engine always
    sees one format.

    Raises:
        ExtractionError: If ffmpeg fails or writes nothing.
    """
    args = [
        ffmpeg, "-y",
        "-i", source,
        "-vn",
        "-acodec", "pcm_s16le",
        "-ar", "16000",
        "-ac", "1",
        dest,
    ]
    logger.info("Extracting audio from %s", source.name)
    try:
        result = run_command(args, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ExtractionError(f"Failed to run ffmpeg: {exc}") from exc
    if result.returncode != 0:
        raise ExtractionError(
            f"Audio extraction failed (exit {result.returncode}):\n{tail(result.stderr)}"
        )
    if not dest.is_file():
        raise ExtractionError(f"Audio extraction produced no file at {dest}")

    size = dest.stat().st_size
    if size < MIN_AUDIO_BYTES:
        logger.warning("Extracted audio is suspiciously small (%d bytes)", size)
    logger.info("Audio extracted to %s (%d bytes)", dest, size)
    return dest
