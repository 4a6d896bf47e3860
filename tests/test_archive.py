# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the archive format table and external archiver dispatch."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from subprocess import CompletedProcess

import pytest

from tests.helpers.staging import requires_tar_and_xz
from texpack.archive import (
    ArchiveFormat,
    ArchiveTools,
    ToolSet,
    database_format,
    find_existing_archive,
    find_xz,
    parse_series,
)
from texpack.errors import ArchiveError, FatalError
from texpack.process import CommandOptions, SubprocessExecutionError


@dataclass
class RecordedCommand:
    args: list[str]
    cwd: Path | None
    stdout_path: Path | None


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> list[RecordedCommand]:
    """Replace ``run_command`` with a recorder that fakes tool output files."""

    commands: list[RecordedCommand] = []

    def fake_run_command(args, *, options: CommandOptions | None = None, **kwargs):  # noqa: ANN001
        resolved = options or CommandOptions()
        commands.append(RecordedCommand(list(args), resolved.cwd, resolved.stdout_path))
        if resolved.stdout_path is not None:
            resolved.stdout_path.write_bytes(b"out")
        if "-cf" in args:
            Path(args[args.index("-cf") + 1]).write_bytes(b"tar")
        return CompletedProcess(args=list(args), returncode=0, stdout="", stderr=None)

    monkeypatch.setattr("texpack.archive.run_command", fake_run_command)
    return commands


def test_extensions() -> None:
    assert ArchiveFormat.TAR_LZMA.extension == ".tar.lzma"
    assert ArchiveFormat.TAR_BZIP2.extension == ".tar.bz2"
    assert ArchiveFormat.MS_CAB.extension == ".cab"
    assert ArchiveFormat.ZIP.extension == ".zip"
    assert ArchiveFormat.TAR.extension == ".tar"


@pytest.mark.parametrize(
    ("series", "expected"),
    [("2.6", ArchiveFormat.TAR_BZIP2), ("2.7", ArchiveFormat.TAR_LZMA), ("2.9", ArchiveFormat.TAR_LZMA)],
)
def test_database_format(series: str, expected: ArchiveFormat) -> None:
    assert database_format(series) is expected


def test_parse_series_rejects_garbage() -> None:
    assert parse_series("2.10") > parse_series("2.9")
    with pytest.raises(ValueError):
        parse_series("two")


def test_find_existing_archive_prefers_newest_format(tmp_path: Path) -> None:
    assert find_existing_archive(tmp_path, "foo") is None
    (tmp_path / "foo.cab").write_bytes(b"")
    assert find_existing_archive(tmp_path, "foo") == (tmp_path / "foo.cab", ArchiveFormat.MS_CAB)
    (tmp_path / "foo.tar.lzma").write_bytes(b"")
    (tmp_path / "foo.tar.bz2").write_bytes(b"")
    assert find_existing_archive(tmp_path, "foo") == (tmp_path / "foo.tar.lzma", ArchiveFormat.TAR_LZMA)


def test_find_xz_requires_path() -> None:
    with pytest.raises(FatalError, match="PATH is not set"):
        find_xz({})


def test_find_xz_searches_path(tmp_path: Path) -> None:
    xz = tmp_path / "xz"
    xz.write_text("#!/bin/sh\n", encoding="utf-8")
    xz.chmod(xz.stat().st_mode | stat.S_IXUSR)

    assert find_xz({"PATH": str(tmp_path)}) == str(xz)
    with pytest.raises(FatalError, match="xz utility could not be found"):
        find_xz({"PATH": str(tmp_path / "empty")})


def test_create_tar_lzma_runs_tar_then_xz(tmp_path: Path, recorded: list[RecordedCommand]) -> None:
    tools = ArchiveTools(ToolSet())
    dest = tmp_path / "repo" / "db.tar.lzma"
    dest.parent.mkdir()
    dest.write_bytes(b"stale")

    tools.create(ArchiveFormat.TAR_LZMA, ["mpm.ini"], dest, cwd=tmp_path)

    tar_file = tmp_path / "repo" / "db.tar"
    assert [command.args for command in recorded] == [
        ["tar", "--force-local", "-cf", str(tar_file), "mpm.ini"],
        ["xz", "--compress", "--format=lzma", "--keep", "--stdout", str(tar_file)],
    ]
    assert recorded[0].cwd == tmp_path
    assert recorded[1].stdout_path == dest
    assert dest.read_bytes() == b"out"
    assert not tar_file.exists()


def test_create_empty_tar_uses_null_file_list(tmp_path: Path, recorded: list[RecordedCommand]) -> None:
    ArchiveTools(ToolSet()).create_tar(tmp_path / "x.tar", [], cwd=tmp_path)

    assert recorded[0].args[-1] == f"--files-from={os.devnull}"


def test_create_cabinet_is_unsupported(tmp_path: Path, recorded: list[RecordedCommand]) -> None:
    with pytest.raises(ArchiveError, match="Unsupported archive file type."):
        ArchiveTools(ToolSet()).create(ArchiveFormat.MS_CAB, ["x"], tmp_path / "x.cab", cwd=tmp_path)
    assert recorded == []


def test_compress_rejects_non_tar_formats(tmp_path: Path) -> None:
    with pytest.raises(ArchiveError):
        ArchiveTools(ToolSet()).compress(tmp_path / "x", ArchiveFormat.ZIP, tmp_path / "x.zip")


def test_extract_single_file_decompresses_then_streams_member(
    tmp_path: Path,
    recorded: list[RecordedCommand],
) -> None:
    out_file = tmp_path / "mpm.ini"

    ArchiveTools(ToolSet(xz="/opt/xz")).extract_single_file(
        tmp_path / "db.tar.lzma", ArchiveFormat.TAR_LZMA, "mpm.ini", out_file
    )

    decompress, extract = recorded
    assert decompress.args[:3] == ["/opt/xz", "--decompress", "--format=lzma"]
    assert extract.args[:4] == ["tar", "--force-local", "--to-stdout", "-xf"]
    assert extract.args[-1] == "mpm.ini"
    assert extract.stdout_path == out_file


def test_observer_sees_commands(tmp_path: Path, recorded: list[RecordedCommand]) -> None:
    seen: list[tuple[list[str], Path | None]] = []
    tools = ArchiveTools(ToolSet(), observer=lambda command, cwd: seen.append((list(command), cwd)))

    tools.append_tar(tmp_path / "x.tar", ["texmf"], cwd=tmp_path)

    assert seen == [(["tar", "--force-local", "-rf", str(tmp_path / "x.tar"), "texmf"], tmp_path)]


def test_tool_failure_becomes_archive_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_run_command(args, **kwargs):  # noqa: ANN001
        raise SubprocessExecutionError(list(args), 2, "tar: boom")

    monkeypatch.setattr("texpack.archive.run_command", failing_run_command)

    with pytest.raises(ArchiveError) as excinfo:
        ArchiveTools(ToolSet()).append_tar(tmp_path / "x.tar", ["texmf"], cwd=tmp_path)

    assert str(excinfo.value) == "A system command failed."
    assert excinfo.value.command is not None and excinfo.value.command[0] == "tar"
    assert excinfo.value.output == "tar: boom"


@requires_tar_and_xz
def test_round_trip_with_real_tools(tmp_path: Path) -> None:
    source = tmp_path / "source"
    (source / "texmf" / "tex").mkdir(parents=True)
    (source / "texmf" / "tex" / "foo.sty").write_text("\\ProvidesPackage{foo}\n", encoding="utf-8")
    archive = tmp_path / "foo.tar.lzma"
    tools = ArchiveTools(ToolSet(xz=find_xz(os.environ)))

    tools.create(ArchiveFormat.TAR_LZMA, ["texmf"], archive, cwd=source)
    tools.extract(archive, ArchiveFormat.TAR_LZMA, tmp_path / "out")
    tools.extract_single_file(archive, ArchiveFormat.TAR_LZMA, "texmf/tex/foo.sty", tmp_path / "single.sty")

    assert (tmp_path / "out" / "texmf" / "tex" / "foo.sty").read_text(encoding="utf-8") == "\\ProvidesPackage{foo}\n"
    assert (tmp_path / "single.sty").read_text(encoding="utf-8") == "\\ProvidesPackage{foo}\n"
    assert not (tmp_path / "foo.tar").exists()
