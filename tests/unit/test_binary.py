"""Tests for vidscribe.core.binary."""

from __future__ import annotations

import os
import stat
import subprocess
import sys
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from vidscribe.core.binary import (
    binary_diagnostics,
    build_listing,
    check_health,
    find_built_binary,
    install_binary,
    iter_walk,
    library_env,
    strip_git_metadata,
    write_launcher,
)
from vidscribe.util.types import BinaryDescriptor, NameVariant, Platform


class TestIterWalk:
    """Tests for iter_walk."""

    def test_shallowest_match_first(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "a" / "b" / "c" / "target")
        make_file(tmp_path / "z" / "target")

        matches = list(iter_walk(tmp_path, ["target"], max_depth=6))

        assert matches == [tmp_path / "z" / "target", tmp_path / "a" / "b" / "c" / "target"]

    def test_respects_depth_bound(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "d1" / "d2" / "d3" / "target")

        assert list(iter_walk(tmp_path, ["target"], max_depth=2)) == []
        assert list(iter_walk(tmp_path, ["target"], max_depth=3)) != []

    def test_is_lazy(self, tmp_path: Path, make_file: Callable[..., Path]) -> None:
        make_file(tmp_path / "target")
        make_file(tmp_path / "deep" / "target")

        walker = iter_walk(tmp_path, ["target"], max_depth=6)
        first = next(walker)

        assert first == tmp_path / "target"

    def test_ignores_directories_with_matching_name(self, tmp_path: Path) -> None:
        (tmp_path / "target").mkdir()

        assert list(iter_walk(tmp_path, ["target"], max_depth=6)) == []

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_does_not_follow_directory_symlinks(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        outside = tmp_path / "outside"
        make_file(outside / "target")
        root = tmp_path / "root"
        root.mkdir()
        (root / "link").symlink_to(outside, target_is_directory=True)

        assert list(iter_walk(root, ["target"], max_depth=6)) == []


class TestFindBuiltBinary:
    """Tests for find_built_binary."""

    def test_none_when_nothing_built(self, tmp_path: Path) -> None:
        assert find_built_binary(tmp_path, Platform.LINUX) is None

    def test_current_name_in_any_candidate_beats_legacy(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "build" / "main")
        make_file(tmp_path / "build" / "bin" / "whisper-cli")

        found = find_built_binary(tmp_path, Platform.LINUX)

        assert found == BinaryDescriptor(
            tmp_path / "build" / "bin" / "whisper-cli", NameVariant.CURRENT
        )

    def test_legacy_name_used_when_only_option(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "build" / "examples" / "main" / "main")

        found = find_built_binary(tmp_path, Platform.LINUX)

        assert found is not None
        assert found.is_legacy

    def test_windows_release_directory(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "build" / "Release" / "whisper-cli.exe")

        found = find_built_binary(tmp_path, Platform.WIN)

        assert found is not None
        assert found.path == tmp_path / "build" / "Release" / "whisper-cli.exe"

    def test_falls_back_to_bounded_search(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        target = make_file(tmp_path / "build" / "odd" / "place" / "whisper-cli")

        found = find_built_binary(tmp_path, Platform.LINUX)

        assert found is not None
        assert found.path == target

    def test_search_depth_is_bounded(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "build" / "a" / "b" / "c" / "whisper-cli")

        assert find_built_binary(tmp_path, Platform.LINUX, max_depth=2) is None


class TestBuildListing:
    """Tests for build_listing."""

    def test_lists_build_and_subdirectories(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / "build" / "CMakeCache.txt")
        make_file(tmp_path / "build" / "bin" / "libwhisper.so")

        listing = build_listing(tmp_path)

        assert listing["build"] == ["CMakeCache.txt", "bin"]
        assert listing[os.path.join("build", "bin")] == ["libwhisper.so"]

    def test_empty_without_build_dir(self, tmp_path: Path) -> None:
        assert build_listing(tmp_path) == {}


class TestInstallBinary:
    """Tests for install_binary."""

    def test_copies_into_engine_dir_and_marks_executable(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        built = make_file(tmp_path / "build" / "bin" / "whisper-cli")

        installed = install_binary(
            BinaryDescriptor(built, NameVariant.CURRENT), tmp_path, Platform.LINUX
        )

        assert installed.path == tmp_path / "whisper-cli"
        assert installed.path.is_file()
        if sys.platform != "win32":
            assert installed.path.stat().st_mode & stat.S_IXUSR

    def test_already_in_place_is_not_copied(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        built = make_file(tmp_path / "whisper-cli")

        with patch("vidscribe.core.binary.shutil.copy2") as copy:
            install_binary(BinaryDescriptor(built, NameVariant.CURRENT), tmp_path, Platform.LINUX)

        copy.assert_not_called()


class TestLibraryEnv:
    """Tests for library_env."""

    def test_linux_prepends_path_and_ld_library_path(self, tmp_path: Path) -> None:
        env = library_env(tmp_path, Platform.LINUX, {"PATH": "/usr/bin"})

        assert env["PATH"] == os.pathsep.join([str(tmp_path), "/usr/bin"])
        assert env["LD_LIBRARY_PATH"] == str(tmp_path)
        assert "DYLD_LIBRARY_PATH" not in env

    def test_mac_sets_dyld(self, tmp_path: Path) -> None:
        env = library_env(tmp_path, Platform.MAC, {})

        assert env["DYLD_LIBRARY_PATH"] == str(tmp_path)

    def test_windows_only_touches_path(self, tmp_path: Path) -> None:
        env = library_env(tmp_path, Platform.WIN, {})

        assert set(env) == {"PATH"}


class TestCheckHealth:
    """Tests for check_health."""

    def test_missing_binary_is_unhealthy_without_probing(self, tmp_path: Path) -> None:
        with patch("vidscribe.core.binary.probe") as mock_probe:
            outcome = check_health(tmp_path / "whisper-cli", Platform.LINUX)

        assert not outcome.ok
        mock_probe.assert_not_called()

    def test_direct_run_succeeds(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        binary = make_file(tmp_path / "whisper-cli")

        with patch("vidscribe.core.binary.probe", return_value=True) as mock_probe:
            outcome = check_health(binary, Platform.LINUX, timeout=3.0)

        assert outcome.ok
        assert outcome.strategy == "direct"
        args, kwargs = mock_probe.call_args
        assert args[0] == [binary, "--help"]
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 3.0

    def test_retries_with_library_path(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        binary = make_file(tmp_path / "whisper-cli")

        with patch("vidscribe.core.binary.probe", side_effect=[False, True]) as mock_probe:
            outcome = check_health(binary, Platform.LINUX)

        assert outcome.strategy == "library-path"
        retry_env = mock_probe.call_args_list[1].kwargs["env"]
        assert retry_env["LD_LIBRARY_PATH"].startswith(str(tmp_path))

    def test_both_attempts_fail(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        binary = make_file(tmp_path / "whisper-cli")

        with patch("vidscribe.core.binary.probe", return_value=False):
            outcome = check_health(binary, Platform.LINUX)

        assert not outcome.ok
        assert outcome.tried == ("direct", "library-path")


class TestWriteLauncher:
    """Tests for write_launcher."""

    def test_shell_launcher(self, tmp_path: Path) -> None:
        descriptor = BinaryDescriptor(tmp_path / "whisper-cli", NameVariant.CURRENT)

        path = write_launcher(tmp_path, descriptor, Platform.MAC)

        content = path.read_text(encoding="utf-8")
        assert path.name == "run-whisper.sh"
        assert content.startswith("#!/bin/sh\n")
        assert 'export DYLD_LIBRARY_PATH="$DIR:$DYLD_LIBRARY_PATH"' in content
        assert 'exec "$DIR/whisper-cli" "$@"' in content

    def test_linux_launcher_has_no_dyld(self, tmp_path: Path) -> None:
        descriptor = BinaryDescriptor(tmp_path / "main", NameVariant.LEGACY)

        content = write_launcher(tmp_path, descriptor, Platform.LINUX).read_text(
            encoding="utf-8"
        )

        assert "DYLD_LIBRARY_PATH" not in content
        assert 'exec "$DIR/main" "$@"' in content

    def test_batch_launcher(self, tmp_path: Path) -> None:
        descriptor = BinaryDescriptor(tmp_path / "whisper-cli.exe", NameVariant.CURRENT)

        path = write_launcher(tmp_path, descriptor, Platform.WIN)

        assert path.name == "run-whisper.bat"
        assert '"%DIR%whisper-cli.exe" %*' in path.read_text(encoding="utf-8")


class TestStripGitMetadata:
    """Tests for strip_git_metadata."""

    def test_removes_git_directory(
        self, tmp_path: Path, make_file: Callable[..., Path]
    ) -> None:
        make_file(tmp_path / ".git" / "HEAD")

        assert strip_git_metadata(tmp_path) is True
        assert not (tmp_path / ".git").exists()

    def test_removes_git_file(self, tmp_path: Path, make_file: Callable[..., Path]) -> None:
        make_file(tmp_path / ".git")

        assert strip_git_metadata(tmp_path) is True
        assert not (tmp_path / ".git").exists()

    def test_nothing_to_remove(self, tmp_path: Path) -> None:
        assert strip_git_metadata(tmp_path) is False


class TestBinaryDiagnostics:
    """Tests for binary_diagnostics."""

    def test_collects_available_tools(self, tmp_path: Path, completed) -> None:  # noqa: ANN001
        def fake_run(args, **kwargs):  # noqa: ANN001, ANN003, ANN202
            if args[0] == "ldd":
                raise FileNotFoundError("ldd")
            return completed(stdout="ELF 64-bit\n")

        with patch("vidscribe.core.binary.run_command", side_effect=fake_run):
            report = binary_diagnostics(tmp_path / "whisper-cli", Platform.LINUX)

        assert report == {"file": "ELF 64-bit"}

    def test_timeout_is_skipped(self, tmp_path: Path) -> None:
        with patch(
            "vidscribe.core.binary.run_command",
            side_effect=subprocess.TimeoutExpired("file", 10),
        ):
            assert binary_diagnostics(tmp_path / "x", Platform.MAC) == {}
