"""Engine executable discovery, installation and health checks."""

from __future__ import annotations

import os
import shutil
import stat
import subprocess
from collections import deque
from collections.abc import Iterable, Iterator
from pathlib import Path

from vidscribe.config.paths import binary_name
from vidscribe.util.logging import get_logger
from vidscribe.util.process import DEFAULT_PROBE_TIMEOUT, probe, run_command
from vidscribe.util.strategy import Strategy, StrategyOutcome, first_success
from vidscribe.util.types import BinaryDescriptor, NameVariant, Platform

logger = get_logger(__name__)

VARIANT_ORDER: tuple[NameVariant, ...] = (NameVariant.CURRENT, NameVariant.LEGACY)
LAUNCHER_SH = "run-whisper.sh"
LAUNCHER_BAT = "run-whisper.bat"


def candidate_dirs(engine_dir: Path, platform: Platform) -> list[Path]:
    """Directories where a fresh build usually leaves the executable, in order."""
    build = engine_dir / "build"
    if platform is Platform.WIN:
        return [build, engine_dir, build / "Release"]
    return [
        build,
        build / "bin",
        build / "examples" / "cli",
        build / "examples" / "main",
        build / "examples" / "whisper-cli",
    ]


def iter_walk(root: Path, names: Iterable[str], max_depth: int) -> Iterator[Path]:
    """Breadth-first search below *root* for files called any of *names*.

    Yields matches lazily, shallowest first, so callers can stop at the
    first hit. Directories deeper than *max_depth* are not entered and
    unreadable directories are skipped.
    """
    wanted = set(names)
    queue: deque[tuple[Path, int]] = deque([(root, 0)])
    while queue:
        directory, depth = queue.popleft()
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", directory, exc)
            continue
        for entry in entries:
            if entry.is_dir() and not entry.is_symlink():
                if depth < max_depth:
                    queue.append((entry, depth + 1))
            elif entry.name in wanted and entry.is_file():
                yield entry


def find_built_binary(
    engine_dir: Path,
    platform: Platform,
    max_depth: int = 6,
) -> BinaryDescriptor | None:
    """Locate a freshly built executable.

    Every candidate directory is checked for the current name before the
    legacy name is considered; the bounded walk of ``build/`` is the last
    resort.
    """
    dirs = candidate_dirs(engine_dir, platform)
    for variant in VARIANT_ORDER:
        name = binary_name(variant, platform)
        for directory in dirs:
            candidate = directory / name
            if candidate.is_file():
                logger.info("Found %s binary at %s", variant.value, candidate)
                return BinaryDescriptor(candidate, variant)

    by_name = {binary_name(v, platform): v for v in VARIANT_ORDER}
    build_dir = engine_dir / "build"
    if not build_dir.is_dir():
        return None
    logger.info("Binary not in expected locations, searching %s", build_dir)
    for match in iter_walk(build_dir, by_name, max_depth):
        logger.info("Found binary via search at %s", match)
        return BinaryDescriptor(match, by_name[match.name])
    return None


def build_listing(engine_dir: Path) -> dict[str, list[str]]:
    """Contents of ``build/`` and its direct subdirectories, for error reports."""
    build_dir = engine_dir / "build"
    listing: dict[str, list[str]] = {}
    if not build_dir.is_dir():
        return listing
    dirs = [build_dir] + sorted(p for p in build_dir.iterdir() if p.is_dir())
    for directory in dirs:
        try:
            listing[str(directory.relative_to(engine_dir))] = sorted(
                p.name for p in directory.iterdir()
            )
        except OSError as exc:
            listing[str(directory.relative_to(engine_dir))] = [f"<unreadable: {exc}>"]
    return listing


def make_executable(path: Path, platform: Platform) -> None:
    if platform is Platform.WIN:
        return
    path.chmod(
        stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH
    )


def install_binary(
    found: BinaryDescriptor,
    engine_dir: Path,
    platform: Platform,
) -> BinaryDescriptor:
    """Copy a built executable to the engine directory under its own name."""
    target = engine_dir / found.path.name
    if found.path.resolve() != target.resolve():
        logger.info("Copying %s to %s", found.path, target)
        shutil.copy2(found.path, target)
    make_executable(target, platform)
    return BinaryDescriptor(target, found.name_variant)


def library_env(
    binary_dir: Path,
    platform: Platform,
    base_env: dict[str, str] | None = None,
) -> dict[str, str]:
    """Environment with *binary_dir* ahead of the library search paths."""
    env = dict(os.environ if base_env is None else base_env)
    keys = ["PATH"]
    if platform is not Platform.WIN:
        keys.append("LD_LIBRARY_PATH")
    if platform is Platform.MAC:
        keys.append("DYLD_LIBRARY_PATH")
    for key in keys:
        current = env.get(key)
        env[key] = os.pathsep.join([str(binary_dir), current]) if current else str(binary_dir)
    return env


def check_health(
    binary: Path,
    platform: Platform,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> StrategyOutcome[Path]:
    """Run ``<binary> --help``, first plainly, then with library paths set."""
    binary_dir = binary.parent

    def attempt(env: dict[str, str] | None) -> Path | None:
        ok = probe([binary, "--help"], env=env, cwd=binary_dir, timeout=timeout)
        return binary if ok else None

    strategies = [
        Strategy("direct", lambda: attempt(None)),
        Strategy("library-path", lambda: attempt(library_env(binary_dir, platform))),
    ]
    if not binary.is_file():
        logger.debug("Binary does not exist: %s", binary)
        return StrategyOutcome(None, None, ())
    outcome = first_success(strategies)
    if outcome.ok:
        logger.info("Binary %s is healthy (%s)", binary.name, outcome.strategy)
    else:
        logger.warning("Binary %s failed health check", binary)
    return outcome


def launcher_path(engine_dir: Path, platform: Platform) -> Path:
    return engine_dir / (LAUNCHER_BAT if platform is Platform.WIN else LAUNCHER_SH)


def write_launcher(
    engine_dir: Path,
    descriptor: BinaryDescriptor,
    platform: Platform,
) -> Path:
    """Write a wrapper script that runs the binary with library paths set.

    Returns:
        Path of the written script.
    """
    path = launcher_path(engine_dir, platform)
    name = descriptor.path.name
    if platform is Platform.WIN:
        content = (
            "@echo off\r\n"
            'set "DIR=%~dp0"\r\n'
            f'"%DIR%{name}" %*\r\n'
        )
        path.write_text(content, encoding="utf-8", newline="")
    else:
        exports = ['export LD_LIBRARY_PATH="$DIR:$LD_LIBRARY_PATH"']
        if platform is Platform.MAC:
            exports.append('export DYLD_LIBRARY_PATH="$DIR:$DYLD_LIBRARY_PATH"')
        lines = [
            "#!/bin/sh",
            'DIR="$(cd "$(dirname "$0")" && pwd)"',
            *exports,
            f'exec "$DIR/{name}" "$@"',
            "",
        ]
        path.write_text("\n".join(lines), encoding="utf-8")
        make_executable(path, platform)
    logger.info("Wrote launcher script %s", path)
    return path


def strip_git_metadata(engine_dir: Path) -> bool:
    """Remove a nested ``.git`` directory so the checkout can be bundled.

    Returns:
        True if something was removed.
    """
    git_dir = engine_dir / ".git"
    if not git_dir.exists():
        return False
    logger.info("Removing nested git metadata at %s", git_dir)
    if git_dir.is_dir():
        shutil.rmtree(git_dir)
    else:
        git_dir.unlink()
    return True


def binary_diagnostics(binary: Path, platform: Platform) -> dict[str, str]:
    """Collect ``file`` and linker output for a binary.

    Tools that are unavailable are skipped; nothing here raises.
    """
    commands: dict[str, list[str | Path]] = {"file": ["file", binary]}
    if platform is Platform.LINUX:
        commands["ldd"] = ["ldd", binary]
    elif platform is Platform.MAC:
        commands["otool"] = ["otool", "-L", binary]

    report: dict[str, str] = {}
    for label, args in commands.items():
        try:
            result = run_command(args, timeout=DEFAULT_PROBE_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("Diagnostic %s unavailable: %s", label, exc)
            continue
        report[label] = (result.stdout or result.stderr).strip()
    return report
