# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the texpack command line interface."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from texpack import __version__
from texpack.builder import PackageCreator
from texpack.cli.app import app
from texpack.cli.shared import split_path_list
from texpack.errors import ArchiveError
from texpack.inistore import IniStore


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("texpack.context.find_xz", lambda env, name="xz": name)


def test_version() -> None:
    result = CliRunner().invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"texpack {__version__}" in result.output


def test_split_path_list() -> None:
    assert split_path_list([f"a{os.pathsep}b", "c", ""]) == [Path("a"), Path("b"), Path("c")]
    assert split_path_list(None) == []


def test_missing_repository_option_fails() -> None:
    result = CliRunner().invoke(app, ["update-repository", "--staging-roots", "staging"])

    assert result.exit_code == 1
    assert "texpack: No repository location was specified." in result.output


def test_missing_staging_roots_fail(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["build-tds", "--texmf-parent", str(tmp_path / "tds")])

    assert result.exit_code == 1
    assert "texpack: No staging roots were specified." in result.output


def test_disassemble_requires_manifest_file() -> None:
    result = CliRunner().invoke(app, ["disassemble", "--texmf-parent", ".", "--staging-dir", "out"])

    assert result.exit_code == 1
    assert "texpack: No package manifest file has been specified." in result.output


def test_invalid_series_is_reported() -> None:
    result = CliRunner().invoke(app, ["--series", "9.9", "build-tds"])

    assert result.exit_code == 1
    assert "texpack: Invalid configuration" in result.output


def test_build_tds_command(tmp_path: Path, staging_factory: Callable[..., Path]) -> None:
    staging_factory("foo", {"texmf/tex/foo.sty": "foo"})
    package_list = tmp_path / "packages.txt"
    package_list.write_text("S foo\n", encoding="utf-8")

    result = CliRunner().invoke(
        app,
        [
            "--time-packaged",
            "5",
            "--package-list",
            str(package_list),
            "build-tds",
            "--staging-roots",
            str(tmp_path / "staging"),
            "--texmf-parent",
            str(tmp_path / "tds"),
        ],
    )

    assert result.exit_code == 0, result.output
    mpm = IniStore.read(tmp_path / "tds" / "texmf" / "config" / "mpm.ini")
    assert mpm.get("foo", "Level") == "S"
    assert mpm.get("foo", "TimePackaged") == "5"
    assert (tmp_path / "tds" / "texmf" / "tex" / "foo.sty").is_file()


def test_archive_errors_show_command_and_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def failing_update(self, staging_roots, repository, **kwargs):  # noqa: ANN001
        raise ArchiveError("A system command failed.", command=["tar", "-cf", "x.tar"], output="tar: boom\n")

    monkeypatch.setattr(PackageCreator, "update_repository", failing_update)

    result = CliRunner().invoke(
        app,
        ["update-repository", "--staging-roots", str(tmp_path), "--repository", str(tmp_path / "repo")],
    )

    assert result.exit_code == 1
    assert "texpack: A system command failed." in result.output
    assert "command: tar -cf x.tar" in result.output
    assert "tar: boom" in result.output


def test_help_lists_options_sorted() -> None:
    result = CliRunner().invoke(app, ["build-tds", "--help"])

    assert result.exit_code == 0
    output = result.output
    assert output.index("--staging-roots") < output.index("--texmf-parent") < output.index("--tpm-dir")
