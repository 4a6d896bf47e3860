# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for package records."""

from __future__ import annotations

import pytest

from texpack.models import PackageInfo, format_digest, parse_digest


@pytest.mark.parametrize(
    ("run_files", "doc_files", "expected"),
    [
        ([], [], True),
        (["texmf/tpm/packages/foo.tpm"], [], True),
        (["texmf/tex/foo.sty"], [], False),
        (["texmf/tpm/packages/foo.tpm", "texmf/tpm/packages/bar.tpm"], [], False),
        ([], ["texmf/doc/foo.pdf"], False),
    ],
)
def test_pure_container(run_files: list[str], doc_files: list[str], expected: bool) -> None:
    info = PackageInfo(id="foo", run_files=run_files, doc_files=doc_files)

    assert info.is_pure_container is expected


def test_all_files_order_and_count() -> None:
    info = PackageInfo(run_files=["r"], doc_files=["d"], source_files=["s"])

    assert info.all_files() == ["d", "r", "s"]
    assert info.num_files == 3


def test_digest_hex_helpers() -> None:
    assert format_digest(None) == ""
    assert format_digest(b"\x0a\xff") == "0aff"
    assert parse_digest(" 0AFF ") == b"\x0a\xff"
    with pytest.raises(ValueError):
        parse_digest("xyz")
