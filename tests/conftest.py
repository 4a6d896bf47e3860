# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import io
from collections.abc import Callable, Mapping
from pathlib import Path

import pytest
from rich.console import Console

from tests.helpers.staging import START_TIME, write_staging_dir
from texpack.archive import ArchiveTools, ToolSet
from texpack.config import BuilderConfig
from texpack.context import RunContext
from texpack.logging import Reporter
from texpack.models import PackageSpec


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    root = tmp_path / "staging"
    root.mkdir()
    return root


@pytest.fixture
def staging_factory(staging_root: Path) -> Callable[..., Path]:
    """Return a helper creating staging directories below ``staging_root``."""

    def factory(package_id: str, files: Mapping[str, str], **kwargs: object) -> Path:
        return write_staging_dir(staging_root, package_id, files, **kwargs)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def console_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(console_buffer: io.StringIO) -> Reporter:
    """Reporter writing plain text into ``console_buffer``."""

    console = Console(file=console_buffer, no_color=True, highlight=False, width=200, soft_wrap=True)
    return Reporter(console=console, verbose_enabled=True)


@pytest.fixture
def make_context(reporter: Reporter) -> Callable[..., RunContext]:
    """Return a factory building run contexts without probing for tools."""

    def factory(
        *,
        specs: Mapping[str, PackageSpec] | None = None,
        start_time: int = START_TIME,
        archive_tools: ArchiveTools | None = None,
        **config: object,
    ) -> RunContext:
        return RunContext(
            config=BuilderConfig.model_validate(config),
            reporter=reporter,
            archive_tools=archive_tools if archive_tools is not None else ArchiveTools(ToolSet()),
            start_time=start_time,
            package_specs=dict(specs or {}),
        )

    return factory
