# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Load :class:`~texpack.config.BuilderConfig` from TOML files and CLI overrides.

Sources are layered, later ones winning:

1. built-in defaults;
2. ``[tool.texpack]`` in ``pyproject.toml``;
3. a standalone ``texpack.toml``;
4. an explicit ``--config`` file;
5. command-line overrides.

String values may reference environment variables as ``$NAME`` or ``${NAME}``.
"""

from __future__ import annotations

import logging
import os
import re
import tomllib
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, Final

from pydantic import ValidationError

from .config import BuilderConfig
from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

PYPROJECT_FILE: Final[str] = "pyproject.toml"
CONFIG_FILE: Final[str] = "texpack.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "texpack"

_ENV_VAR_PATTERN = re.compile(r"\$(\w+)|\$\{([^}]+)\}")
# keys holding paths, resolved relative to the file declaring them
_PATH_KEYS: Final[tuple[tuple[str, ...], ...]] = (
    ("package_list",),
    ("signing", "private_key_file"),
    ("signing", "passphrase_file"),
)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _expand_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):

        def _replace(match: re.Match[str]) -> str:
            key = match.group(1) or match.group(2)
            return env.get(key, match.group(0))

        return _ENV_VAR_PATTERN.sub(_replace, value)
    if isinstance(value, Mapping):
        return {key: _expand_env(item, env) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item, env) for item in value]
    return value


def _resolve_paths(data: MutableMapping[str, Any], base_dir: Path) -> None:
    for key_path in _PATH_KEYS:
        holder: Any = data
        for key in key_path[:-1]:
            holder = holder.get(key) if isinstance(holder, Mapping) else None
        if not isinstance(holder, MutableMapping):
            continue
        value = holder.get(key_path[-1])
        if isinstance(value, str) and value and not Path(value).is_absolute():
            holder[key_path[-1]] = str(base_dir / value)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def load_toml_fragment(path: Path, *, env: Mapping[str, str] | None = None, pyproject: bool = False) -> dict[str, Any]:
    """Return the texpack settings stored in ``path``.

    Args:
        path: TOML document to read; a missing file yields ``{}``.
        env: Environment used for variable expansion.
        pyproject: Whether settings live under ``[tool.texpack]``.

    Raises:
        ConfigError: If the document is not valid TOML or the settings are
            not a table.
    """

    if not path.is_file():
        return {}
    data: Any = _read_toml(path)
    if pyproject:
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        data = tool_section.get(PYPROJECT_SECTION_KEY) if isinstance(tool_section, Mapping) else None
        if data is None:
            return {}
    if not isinstance(data, MutableMapping):
        raise ConfigError(f"Configuration at {path} must be a table")
    fragment = _expand_env(dict(data), env if env is not None else os.environ)
    _resolve_paths(fragment, path.parent)
    LOGGER.debug("loaded configuration fragment from %s", path)
    return fragment


def _drop_unset(overrides: Mapping[str, Any]) -> dict[str, Any]:
    cleaned: dict[str, Any] = {}
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            nested = _drop_unset(value)
            if nested:
                cleaned[key] = nested
        elif value is not None:
            cleaned[key] = value
    return cleaned


def load_config(
    project_root: Path,
    *,
    config_file: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    env: Mapping[str, str] | None = None,
) -> BuilderConfig:
    """Build the effective configuration for a run.

    Args:
        project_root: Directory searched for ``pyproject.toml`` and
            ``texpack.toml``.
        config_file: Optional explicit TOML file; it must exist.
        overrides: Command-line values; ``None`` entries are ignored.
        env: Environment used for variable expansion.

    Returns:
        BuilderConfig: Validated configuration.

    Raises:
        ConfigError: If a source is unreadable or the merged values are invalid.
    """

    merged: dict[str, Any] = {}
    merged = _deep_merge(merged, load_toml_fragment(project_root / PYPROJECT_FILE, env=env, pyproject=True))
    merged = _deep_merge(merged, load_toml_fragment(project_root / CONFIG_FILE, env=env))
    if config_file is not None:
        if not config_file.is_file():
            raise ConfigError(f"Configuration file {config_file} does not exist.")
        merged = _deep_merge(merged, load_toml_fragment(config_file, env=env))
    merged = _deep_merge(merged, _drop_unset(overrides or {}))
    try:
        return BuilderConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


__all__ = ["CONFIG_FILE", "PYPROJECT_FILE", "load_config", "load_toml_fragment"]
