"""Domain-specific exceptions for vidscribe."""

from __future__ import annotations


class VidscribeError(Exception):
    """Base exception for all vidscribe errors.

    Attributes:
        remediation: Optional user-facing hint on how to fix the problem.
    """

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class ConfigError(VidscribeError):
    """Configuration loading or validation failed."""


class EnvironmentSetupError(VidscribeError):
    """Required directories could not be resolved or created."""


class AcquisitionError(VidscribeError):
    """Engine binary or model could not be made ready."""


class DependencyMissingError(AcquisitionError):
    """One or more build tools are absent from the host."""

    def __init__(self, missing: list[str], instructions: str) -> None:
        message = f"Missing required dependencies: {', '.join(missing)}"
        super().__init__(message, remediation=instructions)
        self.missing = list(missing)
        self.instructions = instructions


class SourceAcquisitionError(AcquisitionError):
    """Engine source could not be cloned or the source directory is corrupt."""


class BuildError(AcquisitionError):
    """Configure or compile step exited with a non-zero status."""


class DownloadError(AcquisitionError):
    """Model or binary download failed."""

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class BinaryNotFoundError(AcquisitionError):
    """Build succeeded but no engine executable could be located."""

    def __init__(self, message: str, *, listing: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.listing = listing or {}


class TranscriptionError(VidscribeError):
    """Media pipeline failure."""


class NotReadyError(TranscriptionError):
    """Engine could not be initialized before transcription."""


class ExtractionError(TranscriptionError):
    """Media tool failed or produced no audio output."""


class EngineInvocationError(TranscriptionError):
    """Engine process exited with a non-zero status."""


class OutputNotFoundError(TranscriptionError):
    """Engine ran but no transcript file appeared under any known name."""
