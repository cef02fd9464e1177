"""Subprocess helpers for vidscribe.

Every external tool (git, cmake, make, ffmpeg, the engine) goes through
``run_command`` so that timeouts, environment handling and logging are
uniform.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

from vidscribe.util.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0


def run_command(
    args: Sequence[str | Path],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command to completion and capture its output.

    Args:
        args: Program and arguments. Never passed through a shell.
        cwd: Working directory for the child.
        env: Full environment for the child; None inherits ours.
        timeout: Seconds before the child is killed; None waits forever.

    Returns:
        The completed process. Callers inspect ``returncode`` themselves.

    Raises:
        FileNotFoundError: If the program does not exist.
        subprocess.TimeoutExpired: If the timeout elapses.
    """
    argv = [str(a) for a in args]
    logger.debug("Running: %s (cwd=%s)", " ".join(argv), cwd)
    result = subprocess.run(
        argv,
        cwd=str(cwd) if cwd is not None else None,
        env=env,
        capture_output=True,
        text=True,
        errors="replace",
        timeout=timeout,
    )
    logger.debug("Exit status %d from %s", result.returncode, argv[0])
    return result


def probe(
    args: Sequence[str | Path],
    *,
    env: dict[str, str] | None = None,
    cwd: Path | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> bool:
    """Return True if the command runs and exits with status 0.

    Output is never parsed; only the exit status matters.
    """
    try:
        result = run_command(args, env=env, cwd=cwd, timeout=timeout)
    except (FileNotFoundError, PermissionError, NotADirectoryError):
        return False
    except subprocess.TimeoutExpired:
        logger.debug("Probe timed out: %s", args[0])
        return False
    except OSError as exc:
        logger.debug("Probe failed to start %s: %s", args[0], exc)
        return False
    return result.returncode == 0


def tail(text: str, lines: int = 20) -> str:
    """Return the last *lines* lines of *text* for error messages."""
    parts = text.strip().splitlines()
    return "\n".join(parts[-lines:])
