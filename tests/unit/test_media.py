"""Tests for vidscribe.core.media."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from vidscribe.core.media import extract_audio, is_audio_file, resolve_ffmpeg
from vidscribe.exceptions import ExtractionError
from vidscribe.util.types import EnvironmentDescriptor, Platform, RuntimeContext


class TestIsAudioFile:
    """Tests for is_audio_file."""

    @pytest.mark.parametrize("name", ["talk.mp3", "a.WAV", "b.m4a", "c.ogg", "d.flac"])
    def test_audio_extensions(self, name: str) -> None:
        assert is_audio_file(Path(name))

    @pytest.mark.parametrize("name", ["movie.mp4", "clip.mov", "noext"])
    def test_everything_else_is_video(self, name: str) -> None:
        assert not is_audio_file(Path(name))


class TestResolveFfmpeg:
    """Tests for resolve_ffmpeg."""

    def test_prefers_system_ffmpeg(self, linux_env: EnvironmentDescriptor) -> None:
        with patch("vidscribe.core.media.shutil.which", return_value="/usr/bin/ffmpeg"):
            assert resolve_ffmpeg(linux_env) == Path("/usr/bin/ffmpeg")

    def test_packaged_vendor_copy(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        env = EnvironmentDescriptor(
            RuntimeContext.PACKAGED, Platform.LINUX, "x86_64", tmp_path / "app", tmp_path / "res"
        )
        bundled = make_file(tmp_path / "res" / "vendor" / "ffmpeg" / "ffmpeg")

        with patch("vidscribe.core.media.shutil.which", return_value=None):
            assert resolve_ffmpeg(env) == bundled

    def test_development_vendor_copy(
        self, linux_env: EnvironmentDescriptor, make_file: Callable[..., Path]
    ) -> None:
        bundled = make_file(linux_env.app_root / "vendor" / "ffmpeg" / "ffmpeg")

        with patch("vidscribe.core.media.shutil.which", return_value=None):
            assert resolve_ffmpeg(linux_env) == bundled

    def test_static_ffmpeg_fallback(self, linux_env: EnvironmentDescriptor) -> None:
        with (
            patch("vidscribe.core.media.shutil.which", return_value=None),
            patch(
                "static_ffmpeg.run.get_or_fetch_platform_executables_else_raise",
                return_value=("/cache/ffmpeg", "/cache/ffprobe"),
            ),
        ):
            assert resolve_ffmpeg(linux_env) == Path("/cache/ffmpeg")

    def test_nothing_found(self, linux_env: EnvironmentDescriptor) -> None:
        with (
            patch("vidscribe.core.media.shutil.which", return_value=None),
            patch("vidscribe.core.media._static_ffmpeg", return_value=None),
        ):
            with pytest.raises(ExtractionError, match="ffmpeg not found"):
                resolve_ffmpeg(linux_env)


class TestExtractAudio:
    """Tests for extract_audio."""

    def test_builds_pcm_command(
        self, tmp_path: Path, make_file: Callable[..., Path], completed  # noqa: ANN001
    ) -> None:
        source = tmp_path / "talk.mp4"
        dest = tmp_path / "talk-1.wav"

        def fake_run(args, **kwargs):  # noqa: ANN001, ANN003, ANN202
            make_file(dest, size=4096)
            return completed(0)

        with patch("vidscribe.core.media.run_command", side_effect=fake_run) as run:
            result = extract_audio(source, dest, "/usr/bin/ffmpeg", timeout=60)

        assert result == dest
        assert run.call_args.args[0] == [
            "/usr/bin/ffmpeg", "-y",
            "-i", source,
            "-vn",
            "-acodec", "pcm_s16le",
            "-ar", "16000",
            "-ac", "1",
            dest,
        ]
        assert run.call_args.kwargs["timeout"] == 60

    def test_small_output_only_warns(
        self,
        tmp_path: Path,
        make_file: Callable[..., Path],
        completed,  # noqa: ANN001
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        dest = tmp_path / "a.wav"

        def fake_run(args, **kwargs):  # noqa: ANN001, ANN003, ANN202
            make_file(dest, size=10)
            return completed(0)

        with patch("vidscribe.core.media.run_command", side_effect=fake_run):
            with caplog.at_level(logging.WARNING, logger="vidscribe"):
                extract_audio(tmp_path / "a.mp3", dest)

        assert "suspiciously small" in caplog.text

    def test_nonzero_exit(self, tmp_path: Path, completed) -> None:  # noqa: ANN001
        with patch(
            "vidscribe.core.media.run_command",
            return_value=completed(1, stderr="Invalid data found when processing input"),
        ):
            with pytest.raises(ExtractionError, match="Invalid data"):
                extract_audio(tmp_path / "bad.mp4", tmp_path / "bad.wav")

    def test_no_output_file(self, tmp_path: Path, completed) -> None:  # noqa: ANN001
        with patch("vidscribe.core.media.run_command", return_value=completed(0)):
            with pytest.raises(ExtractionError, match="produced no file"):
                extract_audio(tmp_path / "a.mp4", tmp_path / "a.wav")

    def test_timeout(self, tmp_path: Path) -> None:
        with patch(
            "vidscribe.core.media.run_command",
            side_effect=subprocess.TimeoutExpired("ffmpeg", 1),
        ):
            with pytest.raises(ExtractionError, match="Failed to run ffmpeg"):
                extract_audio(tmp_path / "a.mp4", tmp_path / "a.wav", timeout=1)
