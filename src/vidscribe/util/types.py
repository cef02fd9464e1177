"""Shared type definitions for vidscribe."""

from __future__ import annotations

import enum
import os
import platform as _platform
import sys
from dataclasses import dataclass, field
from pathlib import Path


class RuntimeContext(enum.Enum):
    """How the application was launched."""

    DEVELOPMENT = "development"
    PACKAGED = "packaged"


class Platform(enum.Enum):
    """Host operating system family."""

    MAC = "mac"
    WIN = "win"
    LINUX = "linux"

    @classmethod
    def current(cls) -> Platform:
        """Return the platform of the running interpreter."""
        if sys.platform == "darwin":
            return cls.MAC
        if sys.platform.startswith("win"):
            return cls.WIN
        return cls.LINUX

    @property
    def exe_suffix(self) -> str:
        """Executable file suffix on this platform."""
        return ".exe" if self is Platform.WIN else ""


def current_architecture() -> str:
    """Return the normalized machine architecture (e.g. 'arm64', 'x86_64')."""
    machine = _platform.machine().lower()
    aliases = {"amd64": "x86_64", "x64": "x86_64", "aarch64": "arm64"}
    return aliases.get(machine, machine or "unknown")


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """Snapshot of the runtime environment, computed once per process."""

    run_mode: RuntimeContext
    platform: Platform
    architecture: str
    app_root: Path
    resources_path: Path | None = None


@dataclass(frozen=True)
class PathSet:
    """Filesystem layout derived from a single EnvironmentDescriptor."""

    vendor_dir: Path
    models_dir: Path
    engine_dir: Path
    model_path: Path
    binary_path: Path


class NameVariant(enum.Enum):
    """Which executable name the engine binary uses."""

    CURRENT = "current"
    LEGACY = "legacy"


@dataclass(frozen=True)
class BinaryDescriptor:
    """Resolved engine executable."""

    path: Path
    name_variant: NameVariant

    @property
    def is_legacy(self) -> bool:
        return self.name_variant is NameVariant.LEGACY


class ReadinessStatus(enum.Enum):
    """Tri-state readiness of the engine."""

    NOT_CHECKED = "not_checked"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ReadinessState:
    """Readiness of engine binary and model, with failure reason."""

    status: ReadinessStatus = ReadinessStatus.NOT_CHECKED
    reason: str | None = None
    remediation: str | None = None

    @classmethod
    def ready(cls) -> ReadinessState:
        return cls(ReadinessStatus.READY)

    @classmethod
    def failed(cls, reason: str, remediation: str | None = None) -> ReadinessState:
        return cls(ReadinessStatus.FAILED, reason, remediation)

    @property
    def is_ready(self) -> bool:
        return self.status is ReadinessStatus.READY

    def to_dict(self) -> dict[str, object]:
        """Render the shell-facing ``{initialized, error?}`` payload."""
        payload: dict[str, object] = {"initialized": self.is_ready}
        if self.status is ReadinessStatus.FAILED and self.reason:
            payload["error"] = self.reason
        return payload


@dataclass(frozen=True)
class SearchContext:
    """Ordered extra directories consulted when locating external tools.

    Threaded through prerequisite checks and acquisition instead of
    mutating the process ``PATH``.
    """

    extra_dirs: tuple[Path, ...] = ()

    def with_prepended(self, directory: Path) -> SearchContext:
        """Return a new context with *directory* searched first."""
        if directory in self.extra_dirs:
            return self
        return SearchContext((directory, *self.extra_dirs))

    def path_value(self, base: str | None = None) -> str:
        """Build a PATH string with the extra directories ahead of *base*."""
        base = os.environ.get("PATH", "") if base is None else base
        parts = [str(d) for d in self.extra_dirs]
        if base:
            parts.append(base)
        return os.pathsep.join(parts)

    def as_env(self, base_env: dict[str, str] | None = None) -> dict[str, str]:
        """Return a copy of the environment with PATH augmented."""
        env = dict(os.environ if base_env is None else base_env)
        if self.extra_dirs:
            env["PATH"] = self.path_value(env.get("PATH", ""))
        return env


@dataclass(frozen=True)
class ToolPaths:
    """User-supplied locations of build tools."""

    cmake: str | None = None
    make: str | None = None
    python: str | None = None


@dataclass(frozen=True)
class MissingDependency:
    """A build tool that could not be found, with install guidance."""

    name: str
    install_guide: str


@dataclass(frozen=True)
class PrerequisiteReport:
    """Aggregated result of a prerequisite check."""

    missing: list[MissingDependency] = field(default_factory=list)
    found: dict[str, str] = field(default_factory=dict)
    search: SearchContext = field(default_factory=SearchContext)
    platform_instructions: str = ""

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def missing_names(self) -> list[str]:
        return [dep.name for dep in self.missing]

    def instructions(self) -> str:
        """Full remediation text for every missing dependency."""
        lines = [f"{dep.name}: {dep.install_guide}" for dep in self.missing]
        if self.platform_instructions:
            lines.append("")
            lines.append(self.platform_instructions)
        lines.append("")
        lines.append("Make sure these tools are in your PATH environment variable.")
        return "\n".join(lines)


@dataclass(frozen=True)
class TranscriptionResult:
    """Transcript text and the model that produced it."""

    transcript: str
    model: str

    def to_dict(self) -> dict[str, str]:
        return {"transcript": self.transcript, "model": self.model}
