"""Engine source checkout and native build."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from collections.abc import Mapping
from pathlib import Path

from vidscribe.exceptions import BuildError, SourceAcquisitionError
from vidscribe.util.logging import get_logger
from vidscribe.util.process import run_command, tail
from vidscribe.util.types import EnvironmentDescriptor, Platform, SearchContext, ToolPaths

logger = get_logger(__name__)

CMAKE_OPTIONS: tuple[str, ...] = (
    "-DCMAKE_BUILD_TYPE=Release",
    "-DWHISPER_BUILD_TESTS=OFF",
    "-DBUILD_SHARED_LIBS=OFF",
)

CMAKE_MINIMUM_VERSION = "3.10"

_CMAKE_MINIMUM_RE = re.compile(
    r"cmake_minimum_required\s*\(\s*VERSION\s+(?P<version>\d+(?:\.\d+)*)(?P<rest>[^)]*)\)",
    re.IGNORECASE,
)


def has_valid_source(engine_dir: Path) -> bool:
    """A checkout is usable when its top-level CMakeLists.txt exists."""
    return (engine_dir / "CMakeLists.txt").is_file()


def purge_source(engine_dir: Path) -> None:
    """Remove a directory that is not a usable checkout.

    Raises:
        SourceAcquisitionError: If the directory cannot be removed.
    """
    logger.warning("%s exists but does not contain engine source; removing it", engine_dir)
    try:
        shutil.rmtree(engine_dir)
    except OSError as exc:
        raise SourceAcquisitionError(
            f"Cannot prepare for source download: {exc}",
            remediation=f"Delete {engine_dir} manually and retry.",
        ) from exc


def clone_source(
    repo_url: str,
    engine_dir: Path,
    *,
    search: SearchContext | None = None,
    timeout: float | None = None,
) -> None:
    """Shallow-clone the engine repository into *engine_dir*.

    Raises:
        SourceAcquisitionError: If git is unavailable or the clone fails.
    """
    search = search or SearchContext()
    logger.info("Cloning %s into %s", repo_url, engine_dir)
    engine_dir.parent.mkdir(parents=True, exist_ok=True)
    try:
        result = run_command(
            ["git", "clone", "--depth", "1", repo_url, engine_dir],
            env=search.as_env(),
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise SourceAcquisitionError(
            "git is not installed or not on PATH",
            remediation="Install git, or run 'vidscribe doctor' to see what is missing.",
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise SourceAcquisitionError(f"git clone timed out after {timeout}s") from exc
    if result.returncode != 0:
        raise SourceAcquisitionError(
            f"git clone failed (exit {result.returncode}):\n{tail(result.stderr)}"
        )


def ensure_source(
    engine_dir: Path,
    repo_url: str,
    *,
    search: SearchContext | None = None,
    timeout: float | None = None,
) -> bool:
    """Make sure *engine_dir* holds a checkout. Clones at most once.

    Returns:
        True if a fresh clone was made.
    """
    if has_valid_source(engine_dir):
        logger.info("Found existing engine source at %s", engine_dir)
        return False
    if engine_dir.exists():
        purge_source(engine_dir)
    clone_source(repo_url, engine_dir, search=search, timeout=timeout)
    if not has_valid_source(engine_dir):
        raise SourceAcquisitionError(
            f"Clone finished but {engine_dir / 'CMakeLists.txt'} is missing"
        )
    return True


def _version_tuple(text: str) -> tuple[int, ...]:
    return tuple(int(part) for part in text.split("."))


def patch_cmake_minimum(engine_dir: Path, minimum: str = CMAKE_MINIMUM_VERSION) -> bool:
    """Raise the checkout's ``cmake_minimum_required`` to at least *minimum*.

    Recent CMake releases reject very old minimums. The untouched file is
    kept as ``CMakeLists.txt.bak``. This is best effort: problems are
    logged and the build continues with the file as it is.

    Returns:
        True if CMakeLists.txt was rewritten.
    """
    cmake_lists = engine_dir / "CMakeLists.txt"
    try:
        content = cmake_lists.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", cmake_lists, exc)
        return False

    match = _CMAKE_MINIMUM_RE.search(content)
    if match is None:
        patched = f"cmake_minimum_required(VERSION {minimum})\n\n{content}"
    elif _version_tuple(match["version"]) < _version_tuple(minimum):
        replacement = f"cmake_minimum_required(VERSION {minimum}{match['rest']})"
        patched = content[: match.start()] + replacement + content[match.end():]
    else:
        return False

    try:
        shutil.copyfile(cmake_lists, cmake_lists.with_name("CMakeLists.txt.bak"))
        cmake_lists.write_text(patched, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not update %s: %s", cmake_lists, exc)
        return False
    logger.info("Set cmake_minimum_required to %s in %s", minimum, cmake_lists)
    return True


def openmp_environment(
    search: SearchContext | None = None,
    *,
    timeout: float | None = 10.0,
) -> dict[str, str]:
    """Compiler settings for OpenMP through Homebrew's LLVM, if installed.

    Apple clang ships without OpenMP. When ``brew --prefix llvm`` names a
    prefix containing ``lib/libomp.dylib``, its clang and flags are used.

    Returns:
        Variables to add to the build environment; empty when LLVM is absent.
    """
    env = (search or SearchContext()).as_env()
    try:
        result = run_command(["brew", "--prefix", "llvm"], env=env, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.info("Homebrew not usable (%s); building without OpenMP", exc)
        return {}

    prefix = Path(result.stdout.strip()) if result.returncode == 0 else None
    if prefix is None or not (prefix / "lib" / "libomp.dylib").is_file():
        logger.info(
            "Homebrew LLVM with OpenMP not found; building without it. "
            "Install it with: brew install llvm libomp"
        )
        return {}

    logger.info("Using OpenMP from Homebrew LLVM at %s", prefix)
    return {
        "PATH": os.pathsep.join([str(prefix / "bin"), env.get("PATH", "")]),
        "LDFLAGS": f"-L{prefix / 'lib'}",
        "CPPFLAGS": f"-I{prefix / 'include'}",
        "CC": str(prefix / "bin" / "clang"),
        "CXX": str(prefix / "bin" / "clang++"),
    }


def build_environment(
    search: SearchContext | None = None,
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    env = (search or SearchContext()).as_env()
    env["CFLAGS"] = "-pthread"
    if extra:
        env.update(extra)
    return env


def configure_command(
    engine_dir: Path,
    env: EnvironmentDescriptor,
    tool_paths: ToolPaths | None = None,
) -> list[str]:
    cmake = (tool_paths.cmake if tool_paths else None) or "cmake"
    args = [cmake, str(engine_dir), *CMAKE_OPTIONS]
    if env.platform is Platform.MAC and env.architecture in ("arm64", "x86_64"):
        args.append(f"-DCMAKE_OSX_ARCHITECTURES={env.architecture}")
    return args


def compile_command(
    env: EnvironmentDescriptor,
    tool_paths: ToolPaths | None = None,
    jobs: int | None = None,
) -> list[str]:
    if env.platform is Platform.WIN:
        cmake = (tool_paths.cmake if tool_paths else None) or "cmake"
        return [cmake, "--build", ".", "--config", "Release"]
    make = (tool_paths.make if tool_paths else None) or "make"
    return [make, f"-j{jobs or os.cpu_count() or 1}"]


def _run_build_step(
    label: str,
    args: list[str],
    build_dir: Path,
    env: dict[str, str],
    timeout: float | None,
) -> None:
    logger.info("%s: %s", label, " ".join(args))
    try:
        result = run_command(args, cwd=build_dir, env=env, timeout=timeout)
    except FileNotFoundError as exc:
        raise BuildError(
            f"{label} failed: {args[0]} not found",
            remediation="Run 'vidscribe doctor' to check build tools.",
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise BuildError(f"{label} timed out after {timeout}s") from exc
    if result.returncode != 0:
        output = tail(result.stderr or result.stdout)
        raise BuildError(f"{label} failed (exit {result.returncode}):\n{output}")


def build_engine(
    engine_dir: Path,
    env: EnvironmentDescriptor,
    *,
    search: SearchContext | None = None,
    tool_paths: ToolPaths | None = None,
    jobs: int | None = None,
    timeout: float | None = None,
    openmp: bool = True,
) -> Path:
    """Configure and compile the engine in a fresh ``build/`` directory.

    Args:
        engine_dir: Engine checkout.
        env: Environment snapshot; selects generator and architecture.
        search: Extra tool directories found by the prerequisite check.
        tool_paths: User-supplied cmake/make locations.
        jobs: Parallel compile jobs; defaults to the CPU count.
        timeout: Per-step timeout in seconds; None waits forever.
        openmp: On macOS, look for Homebrew LLVM and build with OpenMP.

    Returns:
        The build directory.

    Raises:
        BuildError: If either step exits non-zero, times out, or cannot start.
    """
    build_dir = engine_dir / "build"
    if build_dir.exists():
        logger.info("Removing existing build directory %s", build_dir)
        shutil.rmtree(build_dir)
    build_dir.mkdir(parents=True)

    extra = openmp_environment(search) if openmp and env.platform is Platform.MAC else None
    build_env = build_environment(search, extra)
    _run_build_step(
        "Configure", configure_command(engine_dir, env, tool_paths), build_dir, build_env, timeout
    )
    _run_build_step(
        "Compile", compile_command(env, tool_paths, jobs), build_dir, build_env, timeout
    )
    logger.info("Build finished in %s", build_dir)
    return build_dir
