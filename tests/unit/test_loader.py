"""Tests for vidscribe.config.loader."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

from vidscribe.config.loader import (
    _clean_none_values,
    deep_merge,
    load_config,
    load_env_overrides,
    load_toml,
    resolve_config_path,
    save_value,
)
from vidscribe.exceptions import ConfigError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


class TestLoadToml:
    """Tests for load_toml."""

    def test_missing_file_returns_empty_dict(self, tmp_path: Path) -> None:
        result = load_toml(tmp_path / "nonexistent.toml")

        assert result == {}

    def test_valid_toml_parsed(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[engine]\nmodel = "tiny.en"\n', encoding="utf-8")

        result = load_toml(toml_file)

        assert result == {"engine": {"model": "tiny.en"}}

    def test_invalid_toml_raises_config_error(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "bad.toml"
        toml_file.write_bytes(b"[invalid\ngarbage")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_toml(toml_file)


class TestLoadEnvOverrides:
    """Tests for load_env_overrides."""

    def test_reads_prefixed_vars(self) -> None:
        result = load_env_overrides({"VIDSCRIBE_ENGINE_MODEL": "tiny.en"})

        assert result == {"engine": {"model": "tiny.en"}}

    def test_field_names_keep_underscores(self) -> None:
        result = load_env_overrides({"VIDSCRIBE_BUILD_TIMEOUT_SECONDS": "600"})

        assert result == {"build": {"timeout_seconds": "600"}}

    def test_skips_unknown_sections_and_config_path(self) -> None:
        result = load_env_overrides({
            "VIDSCRIBE_CONFIG": "/tmp/x.toml",
            "VIDSCRIBE_NOPE_FIELD": "1",
            "OTHER_VAR": "value",
        })

        assert result == {}

    def test_defaults_to_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VIDSCRIBE_DOWNLOAD_MAX_ATTEMPTS", "4")

        result = load_env_overrides()

        assert result["download"]["max_attempts"] == "4"


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_override(self) -> None:
        base: dict[str, Any] = {"engine": {"model": "base.en", "repo_url": "x"}}
        override: dict[str, Any] = {"engine": {"model": "tiny.en"}}

        result = deep_merge(base, override)

        assert result == {"engine": {"model": "tiny.en", "repo_url": "x"}}

    def test_does_not_mutate_base(self) -> None:
        base: dict[str, Any] = {"a": 1}

        deep_merge(base, {"a": 2})

        assert base == {"a": 1}


class TestLoadConfig:
    """Tests for load_config layering."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        config = load_config(config_path=tmp_path / "missing.toml")

        assert config.engine.model == "base.en"

    def test_env_beats_file_and_cli_beats_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text(
            '[download]\nmax_attempts = 2\nmax_redirects = 1\n', encoding="utf-8"
        )
        monkeypatch.setenv("VIDSCRIBE_DOWNLOAD_MAX_ATTEMPTS", "4")
        monkeypatch.setenv("VIDSCRIBE_DOWNLOAD_MAX_REDIRECTS", "3")

        config = load_config(
            cli_overrides={"download": {"max_redirects": 9}},
            config_path=toml_file,
        )

        assert config.download.max_attempts == 4
        assert config.download.max_redirects == 9

    def test_validation_failure_raises_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="validation failed"):
            load_config(
                cli_overrides={"download": {"max_attempts": 0}},
                config_path=tmp_path / "missing.toml",
            )

    def test_config_path_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        toml_file = tmp_path / "custom.toml"
        toml_file.write_text('[engine]\nmodel = "small.en"\n', encoding="utf-8")
        monkeypatch.setenv("VIDSCRIBE_CONFIG", str(toml_file))

        assert resolve_config_path() == toml_file
        assert load_config().engine.model == "small.en"


class TestSaveValue:
    """Tests for save_value."""

    def test_writes_and_preserves_other_keys(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[engine]\nmodel = "tiny.en"\n', encoding="utf-8")

        path = save_value("download", "max_attempts", 5, config_path=toml_file)

        data = tomllib.loads(path.read_text(encoding="utf-8"))
        assert data == {"engine": {"model": "tiny.en"}, "download": {"max_attempts": 5}}

    def test_none_removes_key(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[build]\ntimeout_seconds = 60.0\n', encoding="utf-8")

        save_value("build", "timeout_seconds", None, config_path=toml_file)

        assert tomllib.loads(toml_file.read_text(encoding="utf-8")) == {}

    def test_invalid_value_rejected_without_writing(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"

        with pytest.raises(ConfigError, match="Invalid value"):
            save_value("download", "max_attempts", 0, config_path=toml_file)

        assert not toml_file.exists()

    def test_unknown_section_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Unknown section"):
            save_value("model", "name", "x", config_path=tmp_path / "c.toml")


class TestCleanNoneValues:
    """Tests for _clean_none_values."""

    def test_drops_none_and_empty_sections(self) -> None:
        data: dict[str, Any] = {"a": {"b": None}, "c": 1, "d": None}

        assert _clean_none_values(data) == {"c": 1}

    def test_paths_become_strings(self) -> None:
        result = _clean_none_values({"paths": {"temp_dir": Path("/tmp/x")}})

        assert result == {"paths": {"temp_dir": str(Path("/tmp/x"))}}
