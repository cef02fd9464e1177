"""Shared test fixtures for vidscribe."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from vidscribe.config.schema import VidscribeConfig
from vidscribe.util.types import EnvironmentDescriptor, Platform, RuntimeContext

CompletedFactory = Callable[..., "subprocess.CompletedProcess[str]"]


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Point config at a temp file, drop VIDSCRIBE_* vars and reset logging."""
    for key in list(os.environ):
        if key.startswith("VIDSCRIBE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("VIDSCRIBE_CONFIG", str(tmp_path / "config" / "config.toml"))

    yield

    # setup_logging disables propagation; caplog needs it back.
    package_logger = logging.getLogger("vidscribe")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture()
def linux_env(tmp_path: Path) -> EnvironmentDescriptor:
    """A development-mode Linux environment rooted in a temp directory."""
    return EnvironmentDescriptor(
        run_mode=RuntimeContext.DEVELOPMENT,
        platform=Platform.LINUX,
        architecture="x86_64",
        app_root=tmp_path / "app",
    )


@pytest.fixture()
def sample_config(tmp_path: Path) -> VidscribeConfig:
    """A config with no backoff and a private temp dir."""
    return VidscribeConfig.model_validate({
        "paths": {"temp_dir": str(tmp_path / "scratch")},
        "download": {"backoff_seconds": 0},
        "acquisition": {"probe_timeout": 1.0},
    })


@pytest.fixture()
def completed() -> CompletedFactory:
    """Factory for fake subprocess results."""

    def make(
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        args: list[str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(args or [], returncode, stdout, stderr)

    return make


@pytest.fixture()
def make_file() -> Callable[..., Path]:
    """Factory creating a file of a given size, with parent directories."""

    def make(path: Path, size: int = 16) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\x00" * size)
        return path

    return make
