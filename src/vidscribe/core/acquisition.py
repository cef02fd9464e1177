"""Acquisition of the engine binary and model.

``AcquisitionManager.ensure_ready`` walks three stages:

1. Binary: reuse an existing executable that answers ``--help``.
2. Source: optionally try a prebuilt release, otherwise clone, check
   build tools, compile, locate and install the executable.
3. Model: download if missing or a redownload is forced.

Each stage raises an AcquisitionError subclass on failure.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx

from vidscribe.config import paths as path_resolver
from vidscribe.config.schema import VidscribeConfig
from vidscribe.core import binary as binaries
from vidscribe.core.builder import build_engine, ensure_source, patch_cmake_minimum
from vidscribe.core.download import download_model, fetch_prebuilt_binary, model_url
from vidscribe.core.prerequisites import check_prerequisites
from vidscribe.exceptions import BinaryNotFoundError, DependencyMissingError, DownloadError
from vidscribe.util.logging import get_logger
from vidscribe.util.types import (
    BinaryDescriptor,
    EnvironmentDescriptor,
    PathSet,
    Platform,
    PrerequisiteReport,
    SearchContext,
    ToolPaths,
)

logger = get_logger(__name__)


class AcquisitionManager:
    """Makes the engine binary and model available on disk.

    Holds the only mutable acquisition state: the current PathSet, the
    cached BinaryDescriptor and the SearchContext built up by the
    prerequisite check.
    """

    def __init__(
        self,
        config: VidscribeConfig,
        env: EnvironmentDescriptor,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._config = config
        self._env = env
        self._transport = transport
        self._sleep = sleep
        self._paths: PathSet | None = None
        self._binary: BinaryDescriptor | None = None
        self._search = SearchContext()

    @property
    def config(self) -> VidscribeConfig:
        return self._config

    @property
    def env(self) -> EnvironmentDescriptor:
        return self._env

    @property
    def search(self) -> SearchContext:
        """Extra tool directories discovered so far."""
        return self._search

    @property
    def paths(self) -> PathSet:
        """Current PathSet, resolved on first access."""
        if self._paths is None:
            self._paths = path_resolver.resolve_paths(
                self._env, self._config.engine.model_filename
            )
        return self._paths

    @property
    def binary(self) -> BinaryDescriptor:
        """Cached executable descriptor, resolved on first access."""
        if self._binary is None:
            self._binary = path_resolver.resolve_binary(
                self.paths.engine_dir, self._env.platform
            )
        return self._binary

    def refresh(self, env: EnvironmentDescriptor | None = None) -> PathSet:
        """Drop cached paths and binary and resolve them again."""
        if env is not None:
            self._env = env
        self._paths = None
        self._binary = None
        return self.paths

    def model_ready(self) -> bool:
        return self.paths.model_path.is_file()

    def binary_healthy(self) -> bool:
        outcome = binaries.check_health(
            self.binary.path,
            self._env.platform,
            timeout=self._config.acquisition.probe_timeout,
        )
        return outcome.ok

    def check_prerequisites(self, tool_paths: ToolPaths | None = None) -> PrerequisiteReport:
        """Run the build-tool check and remember any directories it found."""
        report = check_prerequisites(
            self._env.platform,
            self._search,
            tool_paths,
            timeout=self._config.acquisition.probe_timeout,
        )
        self._search = report.search
        return report

    def ensure_ready(
        self,
        force_model_redownload: bool = False,
        *,
        skip_dependency_check: bool = False,
        tool_paths: ToolPaths | None = None,
    ) -> bool:
        """Make sure a working binary and the model are present.

        Args:
            force_model_redownload: Download the model even if it exists.
            skip_dependency_check: Build without probing for build tools.
            tool_paths: User-supplied locations of cmake, make and python.

        Returns:
            True once both binary and model are in place.

        Raises:
            EnvironmentSetupError: If the vendor layout cannot be created.
            AcquisitionError: If any stage fails.
        """
        paths = self.refresh()
        logger.info("Vendor dir: %s", paths.vendor_dir)
        logger.info("Engine dir: %s", paths.engine_dir)
        logger.info("Binary path: %s", self.binary.path)
        logger.info("Model path: %s", paths.model_path)
        path_resolver.ensure_directories(paths)

        if self.binary_healthy():
            logger.info("Using existing engine binary")
        else:
            logger.info("No usable binary at %s", self.binary.path)
            self._acquire_binary(skip_dependency_check, tool_paths)

        if force_model_redownload or not self.model_ready():
            self.download_model(tool_paths)
        logger.info("Engine initialization completed")
        return True

    def _acquire_binary(self, skip_dependency_check: bool, tool_paths: ToolPaths | None) -> None:
        if self._config.acquisition.prefer_prebuilt and self._try_prebuilt():
            return
        self.build_from_source(skip_dependency_check=skip_dependency_check, tool_paths=tool_paths)

    def _try_prebuilt(self) -> bool:
        try:
            descriptor = fetch_prebuilt_binary(
                self._config.engine.release_api_url,
                self._env,
                self.paths.engine_dir,
                user_agent=self._config.download.user_agent,
                max_depth=self._config.acquisition.max_search_depth,
                transport=self._transport,
            )
        except DownloadError as exc:
            logger.warning("Prebuilt binary unavailable, building from source: %s", exc)
            return False
        self._binary = descriptor
        if not self.binary_healthy():
            logger.warning("Prebuilt binary failed health check, building from source")
            self._binary = None
            return False
        binaries.write_launcher(self.paths.engine_dir, descriptor, self._env.platform)
        return True

    def build_from_source(
        self,
        *,
        skip_dependency_check: bool = False,
        tool_paths: ToolPaths | None = None,
    ) -> BinaryDescriptor:
        """Clone, build, locate and install the engine executable.

        Raises:
            SourceAcquisitionError: If the checkout cannot be prepared.
            DependencyMissingError: If build tools are missing.
            BuildError: If configure or compile fails.
            BinaryNotFoundError: If the build produced no executable.
        """
        engine_dir = self.paths.engine_dir
        ensure_source(engine_dir, self._config.engine.repo_url, search=self._search)
        if self._config.build.cmake_minimum_version:
            patch_cmake_minimum(engine_dir, self._config.build.cmake_minimum_version)

        if skip_dependency_check:
            logger.info("Skipping dependency checks as requested")
        else:
            report = self.check_prerequisites(tool_paths)
            if not report.ok:
                raise DependencyMissingError(report.missing_names, report.instructions())

        build_engine(
            engine_dir,
            self._env,
            search=self._search,
            tool_paths=tool_paths,
            jobs=self._config.build.jobs,
            timeout=self._config.build.timeout_seconds,
            openmp=self._config.build.openmp,
        )

        found = binaries.find_built_binary(
            engine_dir,
            self._env.platform,
            max_depth=self._config.acquisition.max_search_depth,
        )
        if found is None:
            listing = binaries.build_listing(engine_dir)
            logger.error("Build directory contents: %s", listing)
            raise BinaryNotFoundError(
                "Could not find built engine binary after build", listing=listing
            )
        if found.is_legacy:
            logger.warning("Build produced legacy binary name %s", found.path.name)

        self._binary = binaries.install_binary(found, engine_dir, self._env.platform)
        binaries.write_launcher(engine_dir, self._binary, self._env.platform)
        return self._binary

    def download_model(self, tool_paths: ToolPaths | None = None) -> None:
        """Download the configured model into the models directory."""
        engine = self._config.engine
        python_cmd = (tool_paths.python if tool_paths else None) or (
            "python" if self._env.platform is Platform.WIN else "python3"
        )
        download_model(
            self.paths.model_path,
            model=engine.model,
            model_filename=engine.model_filename,
            url=model_url(engine.model_repo, engine.model_filename),
            engine_dir=self.paths.engine_dir,
            settings=self._config.download,
            python_cmd=python_cmd,
            transport=self._transport,
            sleep=self._sleep,
        )
