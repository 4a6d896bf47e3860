# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Configuration models for texpack runs."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .archive import parse_series
from .constants import DEFAULT_DB_PREFIX, DEFAULT_SERIES, DEFAULT_TEXMF_PREFIX
from .models import Level

MAX_SERIES = parse_series(DEFAULT_SERIES)


class SigningConfig(BaseModel):
    """Private key used to sign INI documents; unset means unsigned output."""

    model_config = ConfigDict(validate_assignment=True)

    private_key_file: Path | None = None
    passphrase_file: Path | None = None


class ToolsConfig(BaseModel):
    """Executables invoked for archiving, compression and signing."""

    model_config = ConfigDict(validate_assignment=True)

    tar: str = "tar"
    xz: str = "xz"
    bzip2: str = "bzip2"
    cabextract: str = "cabextract"
    zip: str = "zip"
    unzip: str = "unzip"
    openssl: str = "openssl"


class BuilderConfig(BaseModel):
    """Top-level configuration of a texpack run."""

    model_config = ConfigDict(validate_assignment=True)

    texmf_prefix: str = DEFAULT_TEXMF_PREFIX
    default_level: Level = Level.TOTAL
    series: str = DEFAULT_SERIES
    release_state: Literal["stable", "next"] = "stable"
    db_prefix: str = DEFAULT_DB_PREFIX
    time_packaged: int | None = None
    verbose: bool = False
    package_list: Path | None = None
    signing: SigningConfig = Field(default_factory=SigningConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @field_validator("series")
    @classmethod
    def _check_series(cls, value: str) -> str:
        try:
            series = parse_series(value)
        except ValueError as exc:
            raise ValueError(f"invalid series {value!r}") from exc
        if series > MAX_SERIES:
            raise ValueError(f"unsupported series {value!r}; the newest supported series is {DEFAULT_SERIES}")
        return value.strip()

    @field_validator("texmf_prefix")
    @classmethod
    def _strip_prefix(cls, value: str) -> str:
        stripped = value.strip().strip("/")
        if not stripped:
            raise ValueError("texmf_prefix must not be empty")
        return stripped


__all__ = ["MAX_SERIES", "BuilderConfig", "SigningConfig", "ToolsConfig"]
