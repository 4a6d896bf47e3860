# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for file classification and staging directory collection."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from texpack.collector import FileClass, classify, collect_files, collect_package, collect_packages
from texpack.digest import aggregate_digest, tree_digests
from texpack.models import PackageInfo
from texpack.staging import read_staging


def test_classify_by_prefix_only() -> None:
    assert classify("texmf/doc/latex/foo/readme.txt", "texmf") is FileClass.DOC
    assert classify("texmf/source/latex/foo/foo.dtx", "texmf") is FileClass.SOURCE
    assert classify("texmf/tex/latex/foo/foo.sty", "texmf") is FileClass.RUN
    assert classify("texmf/documentation/x", "texmf") is FileClass.RUN
    assert classify("TEXMF/Doc/x.pdf", "texmf") is FileClass.DOC


def test_collect_files_partitions_and_sums_sizes(tmp_path: Path) -> None:
    root = tmp_path / "Files"
    entries = {
        "texmf/tex/latex/foo/foo.sty": "12345",
        "texmf/doc/latex/foo/foo.pdf": "123",
        "texmf/source/latex/foo/foo.dtx": "1",
    }
    for name, content in entries.items():
        (root / name).parent.mkdir(parents=True, exist_ok=True)
        (root / name).write_text(content, encoding="utf-8")

    collection = collect_files(root, "texmf")

    assert collection.run_files == ["texmf/tex/latex/foo/foo.sty"]
    assert collection.doc_files == ["texmf/doc/latex/foo/foo.pdf"]
    assert collection.source_files == ["texmf/source/latex/foo/foo.dtx"]
    assert (collection.size_run_files, collection.size_doc_files, collection.size_source_files) == (5, 3, 1)


def test_collect_files_absent_root_is_empty(tmp_path: Path) -> None:
    collection = collect_files(tmp_path / "missing", "texmf")

    assert collection.run_files == collection.doc_files == collection.source_files == []


def test_collect_package_computes_digest_when_missing(
    staging_factory: Callable[..., Path],
) -> None:
    staging_dir = staging_factory("foo", {"texmf/tex/foo.sty": "foo"})
    info = PackageInfo(id="foo", path=staging_dir)

    collect_package(info, "texmf")

    expected = aggregate_digest(tree_digests(staging_dir / "Files", ["texmf/tex/foo.sty"]))
    assert info.digest == expected
    assert info.run_files == ["texmf/tex/foo.sty"]


def test_collect_package_keeps_recorded_digest(staging_factory: Callable[..., Path]) -> None:
    staging_dir = staging_factory("foo", {"texmf/tex/foo.sty": "foo"}, md5="00" * 16)
    info = read_staging(staging_dir)

    collect_package(info, "texmf")

    assert info.digest == bytes(16)


def test_collect_packages_skips_excluded_and_duplicates(
    staging_factory: Callable[..., Path],
    staging_root: Path,
) -> None:
    staging_factory("a", {"texmf/tex/a.sty": "a"})
    staging_factory("b", {"texmf/tex/b.sty": "b"})
    (staging_root / "not-a-package").mkdir()
    warnings: list[str] = []
    progress: list[str] = []
    table: dict[str, PackageInfo] = {"a": PackageInfo(id="a")}

    collect_packages(
        staging_root,
        table,
        read_package=read_staging,
        texmf_prefix="texmf",
        is_ignored=lambda package: package.id == "b",
        warn=warnings.append,
        progress=progress.append,
    )

    assert sorted(table) == ["a"]
    assert warnings == ["'a' already collected."]
    assert progress == ["Collecting 'a'..."]


def test_collect_packages_missing_root_is_noop(tmp_path: Path) -> None:
    table: dict[str, PackageInfo] = {}

    collect_packages(
        tmp_path / "missing",
        table,
        read_package=read_staging,
        texmf_prefix="texmf",
        is_ignored=lambda package: False,
        warn=lambda message: None,
    )

    assert table == {}
