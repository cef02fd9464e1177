"""Tests for vidscribe.exceptions."""

from __future__ import annotations

import pytest

from vidscribe.exceptions import (
    AcquisitionError,
    BinaryNotFoundError,
    BuildError,
    ConfigError,
    DependencyMissingError,
    DownloadError,
    EngineInvocationError,
    EnvironmentSetupError,
    ExtractionError,
    NotReadyError,
    OutputNotFoundError,
    SourceAcquisitionError,
    TranscriptionError,
    VidscribeError,
)


class TestExceptionHierarchy:
    """Tests for the exception class tree."""

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigError, EnvironmentSetupError, AcquisitionError, TranscriptionError],
    )
    def test_top_level_inherit_from_vidscribe_error(self, exc_class: type) -> None:
        assert issubclass(exc_class, VidscribeError)

    @pytest.mark.parametrize(
        "exc_class",
        [DependencyMissingError, SourceAcquisitionError, BuildError, DownloadError, BinaryNotFoundError],
    )
    def test_acquisition_kinds(self, exc_class: type) -> None:
        assert issubclass(exc_class, AcquisitionError)

    @pytest.mark.parametrize(
        "exc_class",
        [NotReadyError, ExtractionError, EngineInvocationError, OutputNotFoundError],
    )
    def test_transcription_kinds(self, exc_class: type) -> None:
        assert issubclass(exc_class, TranscriptionError)

    def test_environment_setup_error_is_not_oserror(self) -> None:
        assert not issubclass(EnvironmentSetupError, OSError)


class TestExceptionPayloads:
    """Tests for extra attributes carried by exceptions."""

    def test_remediation_defaults_to_none(self) -> None:
        exc = BuildError("boom")

        assert exc.remediation is None
        assert str(exc) == "boom"

    def test_dependency_missing_message(self) -> None:
        exc = DependencyMissingError(["cmake", "make"], "brew install cmake make")

        assert str(exc) == "Missing required dependencies: cmake, make"
        assert exc.missing == ["cmake", "make"]
        assert exc.instructions == "brew install cmake make"
        assert exc.remediation == "brew install cmake make"

    def test_download_error_attempts(self) -> None:
        exc = DownloadError("gave up", attempts=3)

        assert exc.attempts == 3

    def test_binary_not_found_listing(self) -> None:
        exc = BinaryNotFoundError("missing", listing={"build": ["CMakeCache.txt"]})

        assert exc.listing == {"build": ["CMakeCache.txt"]}
        assert BinaryNotFoundError("missing").listing == {}
