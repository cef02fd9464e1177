"""Build-tool detection for compiling the engine from source.

Each tool is described by the commands that prove it works. A command
counts as present when it exits 0; output is never parsed. On macOS, GUI
launches often inherit a minimal PATH, so well-known install directories
are probed as well and any hit is recorded in the returned SearchContext.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from vidscribe.util.logging import get_logger
from vidscribe.util.process import DEFAULT_PROBE_TIMEOUT, probe, run_command
from vidscribe.util.strategy import Strategy, first_success
from vidscribe.util.types import (
    MissingDependency,
    Platform,
    PrerequisiteReport,
    SearchContext,
    ToolPaths,
)

logger = get_logger(__name__)

MAC_TOOL_DIRS: tuple[Path, ...] = (
    Path("/usr/local/bin"),
    Path("/opt/homebrew/bin"),
    Path("/usr/bin"),
    Path("/opt/local/bin"),
    Path("~/bin").expanduser(),
)

PLATFORM_INSTRUCTIONS: dict[Platform, str] = {
    Platform.MAC: (
        "Run: brew install git cmake make python3\n\n"
        "Alternatively, pass tool locations with --cmake, --make and --python, "
        "or skip the check with --skip-deps."
    ),
    Platform.LINUX: "Run: sudo apt-get install git cmake build-essential python3",
    Platform.WIN: (
        "Install Git, CMake, Visual Studio (with C++ workload), "
        "and Python from their official websites"
    ),
}


@dataclass(frozen=True)
class ToolSpec:
    """How to detect one build tool.

    Attributes:
        name: Name reported when the tool is missing.
        commands: Alternative probe commands, tried in order.
        guide: Install hint for this platform.
        override: ToolPaths attribute holding a user-supplied location.
        override_args: Arguments used to probe the user-supplied location;
            defaults to those of the first command.
    """

    name: str
    commands: tuple[tuple[str, ...], ...]
    guide: str
    override: str | None = None
    override_args: tuple[str, ...] | None = None


def tool_specs(platform: Platform) -> list[ToolSpec]:
    """Return the tools required to build the engine on *platform*."""
    if platform is Platform.MAC:
        return [
            ToolSpec(
                "git",
                (("git", "--version"),),
                'Install with Homebrew: "brew install git" or download from '
                "https://git-scm.com/download/mac",
            ),
            ToolSpec(
                "cmake",
                (("cmake", "--version"),),
                'Install with Homebrew: "brew install cmake" or download from '
                "https://cmake.org/download/",
                override="cmake",
            ),
            ToolSpec(
                "make",
                (("make", "--version"),),
                'Install Xcode command line tools with: "xcode-select --install"',
                override="make",
            ),
            ToolSpec(
                "C++ compiler",
                (("clang", "--version"), ("xcode-select", "-p")),
                'Install Xcode command line tools with: "xcode-select --install"',
            ),
            ToolSpec(
                "python3",
                (("python3", "--version"), ("python", "--version")),
                'Install with Homebrew: "brew install python3" or download from '
                "https://www.python.org/downloads/",
                override="python",
            ),
        ]
    if platform is Platform.WIN:
        return [
            ToolSpec("git", (("git", "--version"),), "Download from https://git-scm.com/download/win"),
            ToolSpec(
                "cmake",
                (("cmake", "--version"),),
                "Download from https://cmake.org/download/ and add it to PATH "
                "during installation",
                override="cmake",
            ),
            ToolSpec(
                "Visual Studio build tools",
                (("cl", "/?"), ("nmake", "/?")),
                "Install Visual Studio with C++ development tools from "
                "https://visualstudio.microsoft.com/downloads/",
                override="make",
                override_args=("--version",),
            ),
            ToolSpec(
                "C++ compiler",
                (("cl", "/?"), ("g++", "--version")),
                "Install Visual Studio with C++ development tools from "
                "https://visualstudio.microsoft.com/downloads/",
            ),
            ToolSpec(
                "python3",
                (("python", "--version"),),
                "Download from https://www.python.org/downloads/ and check "
                '"Add Python to PATH" during installation',
                override="python",
            ),
        ]
    return [
        ToolSpec(
            "git",
            (("git", "--version"),),
            'Install with your package manager, e.g. "sudo apt-get install git"',
        ),
        ToolSpec(
            "cmake",
            (("cmake", "--version"),),
            'Install with your package manager, e.g. "sudo apt-get install cmake"',
            override="cmake",
        ),
        ToolSpec(
            "make",
            (("make", "--version"),),
            'Install with your package manager, e.g. "sudo apt-get install build-essential"',
            override="make",
        ),
        ToolSpec(
            "C++ compiler",
            (("g++", "--version"),),
            'Install with your package manager, e.g. "sudo apt-get install build-essential"',
        ),
        ToolSpec(
            "python3",
            (("python3", "--version"), ("python", "--version")),
            'Install with your package manager, e.g. "sudo apt-get install python3"',
            override="python",
        ),
    ]


@dataclass(frozen=True)
class _Hit:
    """Where a probe succeeded: a label and, optionally, a dir to search first."""

    label: str
    directory: Path | None = None


def _strategies_for(
    tool: ToolSpec,
    platform: Platform,
    search: SearchContext,
    tool_paths: ToolPaths,
    timeout: float,
) -> list[Strategy[_Hit]]:
    strategies: list[Strategy[_Hit]] = []

    override = getattr(tool_paths, tool.override) if tool.override else None
    if override:
        flag = tool.override_args if tool.override_args is not None else tool.commands[0][1:]

        def user_path(path: str = override, flag: tuple[str, ...] = flag) -> _Hit | None:
            if not probe([path, *flag], timeout=timeout):
                return None
            parent = Path(path).parent
            return _Hit(path, parent if parent != Path(".") else None)

        strategies.append(Strategy(f"{tool.name}: user path", user_path))

    for command in tool.commands:

        def on_path(command: Sequence[str] = command) -> _Hit | None:
            if probe(command, env=search.as_env(), timeout=timeout):
                return _Hit(command[0])
            return None

        strategies.append(Strategy(f"{tool.name}: {' '.join(command)}", on_path))

    if platform is Platform.MAC:
        for directory in MAC_TOOL_DIRS:
            for command in tool.commands:

                def in_dir(directory: Path = directory, command: Sequence[str] = command) -> _Hit | None:
                    exe = directory / command[0]
                    if exe.is_file() and probe([exe, *command[1:]], timeout=timeout):
                        return _Hit(str(exe), directory)
                    return None

                strategies.append(
                    Strategy(f"{tool.name}: {directory / command[0]}", in_dir)
                )
    return strategies


def check_prerequisites(
    platform: Platform,
    search: SearchContext | None = None,
    tool_paths: ToolPaths | None = None,
    *,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> PrerequisiteReport:
    """Probe every required build tool and report what is missing.

    Args:
        platform: Host platform; selects commands and install hints.
        search: Extra lookup directories already known.
        tool_paths: User-supplied tool locations, tried first.
        timeout: Per-probe timeout in seconds.

    Returns:
        A report listing missing tools, where found tools were found, and
        the SearchContext extended with any directory a tool was found in.
    """
    search = search or SearchContext()
    tool_paths = tool_paths or ToolPaths()
    missing: list[MissingDependency] = []
    found: dict[str, str] = {}

    for tool in tool_specs(platform):
        outcome = first_success(
            _strategies_for(tool, platform, search, tool_paths, timeout)
        )
        if outcome.value is None:
            logger.warning("Missing build tool: %s", tool.name)
            missing.append(MissingDependency(tool.name, tool.guide))
            continue
        found[tool.name] = outcome.value.label
        if outcome.value.directory is not None:
            search = search.with_prepended(outcome.value.directory)
        logger.info("Found %s (%s)", tool.name, outcome.value.label)

    if missing:
        logger.info("Platform: %s, search dirs: %s", platform.value, search.extra_dirs)
        if platform is Platform.MAC:
            log_mac_diagnostics([dep.name for dep in missing], timeout=timeout)

    return PrerequisiteReport(
        missing=missing,
        found=found,
        search=search,
        platform_instructions=PLATFORM_INSTRUCTIONS[platform],
    )


def log_mac_diagnostics(names: list[str], *, timeout: float = DEFAULT_PROBE_TIMEOUT) -> None:
    """Log where missing tools might be hiding. Never raises."""
    commands: list[list[str]] = [["brew", "list", "--formula"]]
    for name in names:
        if name in ("git", "cmake", "make", "python3"):
            commands.append(
                ["find", "/usr/local", "/opt/homebrew", "-maxdepth", "3", "-name", name]
            )
    for args in commands:
        try:
            result = run_command(args, timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("Diagnostic %s failed: %s", args[0], exc)
            continue
        logger.debug("%s: %s", " ".join(args), result.stdout.strip() or "<no output>")
