"""Pydantic v2 configuration models for vidscribe."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

KNOWN_MODELS: frozenset[str] = frozenset({
    "tiny",
    "tiny.en",
    "base",
    "base.en",
    "small",
    "small.en",
    "medium",
    "medium.en",
    "large-v1",
    "large-v2",
    "large-v3",
    "large-v3-turbo",
})


class EngineConfig(BaseModel):
    """Which engine source and model to use."""

    model: str = Field(
        default="base.en",
        description="whisper.cpp model short name (e.g. 'base.en')",
    )
    repo_url: str = Field(
        default="https://github.com/ggerganov/whisper.cpp.git",
        description="Upstream engine source repository",
    )
    model_repo: str = Field(
        default="ggerganov/whisper.cpp",
        description="HuggingFace repo hosting ggml model files",
    )
    release_api_url: str = "https://api.github.com/repos/ggerganov/whisper.cpp/releases/latest"

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Accept known short names, with or without ggml- prefix and .bin suffix."""
        short = v.removeprefix("ggml-").removesuffix(".bin")
        if short in KNOWN_MODELS or "-q" in short:
            return short
        raise ValueError(
            f"Unknown model: {v!r}. "
            f"Known models: {', '.join(sorted(KNOWN_MODELS))}"
        )

    @property
    def model_filename(self) -> str:
        """On-disk model file name, e.g. 'ggml-base.en.bin'."""
        return f"ggml-{self.model}.bin"


class PathsConfig(BaseModel):
    """Overrides for the filesystem layout."""

    app_root: Path | None = Field(
        default=None,
        description="Development checkout root; vendor/ lives beneath it",
    )
    resources_path: Path | None = Field(
        default=None,
        description="Packaged-app resources directory",
    )
    temp_dir: Path | None = Field(
        default=None,
        description="Scratch directory for extracted audio and transcripts",
    )


class AcquisitionConfig(BaseModel):
    """Binary acquisition policy."""

    prefer_prebuilt: bool = Field(
        default=False,
        description="Try a prebuilt GitHub release before building from source",
    )
    probe_timeout: float = Field(default=10.0, gt=0)
    max_search_depth: int = Field(default=6, ge=1, le=32)


class DownloadConfig(BaseModel):
    """Model download retry policy."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    max_redirects: int = Field(default=5, ge=0, le=20)
    min_size_bytes: int = Field(default=1_000_000, ge=0)
    backoff_seconds: float = Field(default=1.0, ge=0.0)
    user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


class BuildConfig(BaseModel):
    """Native build options."""

    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Abort configure/compile after this many seconds; unset waits forever",
    )
    jobs: int | None = Field(
        default=None,
        ge=1,
        description="Parallel compile jobs; defaults to CPU count",
    )
    cmake_minimum_version: str | None = Field(
        default="3.10",
        pattern=r"^\d+(\.\d+)*$",
        description="Raise cmake_minimum_required in the checkout to this; unset leaves it alone",
    )
    openmp: bool = Field(
        default=True,
        description="On macOS, build with OpenMP from Homebrew LLVM when it is installed",
    )


class TranscriptionConfig(BaseModel):
    """Media pipeline options."""

    extract_timeout_seconds: float | None = Field(default=600.0, gt=0)
    engine_timeout_seconds: float | None = Field(default=None, gt=0)
    use_launcher: bool = True


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    verbosity: int = Field(default=0, ge=0, le=2)
    log_to_file: bool = False


class VidscribeConfig(BaseModel):
    """Root configuration model.

    All sections are optional with sensible defaults.
    A completely empty TOML file produces a valid config.
    """

    engine: EngineConfig = Field(default_factory=EngineConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    acquisition: AcquisitionConfig = Field(default_factory=AcquisitionConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
