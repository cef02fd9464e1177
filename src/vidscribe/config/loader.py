"""Layered configuration loading for vidscribe.

Resolution order (later wins):
1. Pydantic defaults (schema.py)
2. Global TOML file (or the file named by VIDSCRIBE_CONFIG)
3. Environment variables (VIDSCRIBE_<SECTION>_<FIELD>)
4. CLI argument overrides
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

from vidscribe.config.paths import get_config_path
from vidscribe.config.schema import VidscribeConfig
from vidscribe.exceptions import ConfigError
from vidscribe.util.logging import get_logger

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = get_logger(__name__)

ENV_PREFIX = "VIDSCRIBE_"
CONFIG_PATH_ENV = "VIDSCRIBE_CONFIG"
SECTIONS: frozenset[str] = frozenset(VidscribeConfig.model_fields)


def load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file.

    Args:
        path: Path to the TOML file.

    Returns:
        Parsed dict, or empty dict if file does not exist.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    if not path.is_file():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def load_env_overrides(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Read VIDSCRIBE_* environment variables as nested config dicts.

    Convention: VIDSCRIBE_SECTION_FIELD -> {"section": {"field": value}}.
    Example: VIDSCRIBE_ENGINE_MODEL=tiny.en -> {"engine": {"model": "tiny.en"}}.
    Variables whose section is unknown (such as VIDSCRIBE_CONFIG) are skipped.
    """
    source = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for key, value in source.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX) :].lower().split("_", maxsplit=1)
        if len(parts) != 2 or parts[0] not in SECTIONS:
            continue
        section, field = parts
        overrides.setdefault(section, {})[field] = value
    return overrides


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values win.

    Args:
        base: The base dictionary.
        override: Values to merge on top.

    Returns:
        New merged dictionary.
    """
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Return the config file in effect: explicit, env-provided, or platform default."""
    if config_path is not None:
        return config_path
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env).expanduser()
    return get_config_path()


def load_config(
    cli_overrides: dict[str, Any] | None = None,
    config_path: Path | None = None,
) -> VidscribeConfig:
    """Load configuration with layered resolution.

    Args:
        cli_overrides: Dict of overrides from CLI flags.
        config_path: Optional path to config file. Defaults to platform path.

    Returns:
        Validated VidscribeConfig instance.

    Raises:
        ConfigError: If config file is malformed or validation fails.
    """
    path = resolve_config_path(config_path)

    toml_data = load_toml(path)
    merged = deep_merge(toml_data, load_env_overrides())
    if cli_overrides:
        merged = deep_merge(merged, cli_overrides)

    try:
        return VidscribeConfig.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Configuration validation failed: {exc}") from exc


def save_value(section: str, field: str, value: object, config_path: Path | None = None) -> Path:
    """Validate and persist a single ``section.field`` value.

    Args:
        section: Top-level config section (e.g. 'download').
        field: Field within the section (e.g. 'max_attempts').
        value: Already-coerced Python value; None removes the key.
        config_path: Target file. Defaults to the resolved config path.

    Returns:
        The path that was written.

    Raises:
        ConfigError: If the value is invalid or the file cannot be written.
    """
    if section not in SECTIONS:
        raise ConfigError(
            f"Unknown section {section!r}. Known: {', '.join(sorted(SECTIONS))}"
        )
    path = resolve_config_path(config_path)

    if value is None:
        existing = load_toml(path)
        table = existing.get(section)
        if isinstance(table, dict):
            table.pop(field, None)
            if not table:
                del existing[section]
        _write_toml(path, existing)
        return path

    try:
        VidscribeConfig.model_validate({section: {field: value}})
    except ValueError as exc:
        raise ConfigError(f"Invalid value for {section}.{field}: {exc}") from exc

    existing = load_toml(path)
    existing.setdefault(section, {})[field] = value
    _write_toml(path, existing)
    return path


def _write_toml(path: Path, data: dict[str, Any]) -> None:
    import tomli_w

    cleaned = _clean_none_values(data)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "wb") as f:
            tomli_w.dump(cleaned, f)
    except (OSError, TypeError) as exc:
        raise ConfigError(f"Failed to write {path}: {exc}") from exc


def _clean_none_values(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively drop None values and empty sections (TOML has no null)."""
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, dict):
            sub = _clean_none_values(value)
            if sub:
                cleaned[key] = sub
        elif isinstance(value, Path):
            cleaned[key] = str(value)
        else:
            cleaned[key] = value
    return cleaned
