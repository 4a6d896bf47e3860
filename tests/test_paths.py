# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for path rendering and scoped temporaries."""

from __future__ import annotations

from pathlib import Path

import pytest

from texpack.paths import (
    dos_collation_key,
    is_parent_directory_of,
    scoped_path,
    scoped_temp_dir,
    scoped_temp_file,
    to_dos,
    to_unix,
)


def test_separator_rendering() -> None:
    assert to_dos("texmf/tex/a.sty") == "texmf\\tex\\a.sty"
    assert to_unix("texmf\\tex\\a.sty") == "texmf/tex/a.sty"
    assert dos_collation_key("TeXmf/A") == dos_collation_key("texmf\\a")


def test_is_parent_directory_of() -> None:
    assert is_parent_directory_of("texmf/fonts/type1", "texmf/fonts/type1/public/x.pfb")
    assert is_parent_directory_of("texmf/doc", "TEXMF\\DOC\\x")
    assert not is_parent_directory_of("texmf/doc", "texmf/doc")
    assert not is_parent_directory_of("texmf/doc", "texmf/documentation/x")


def test_scoped_temporaries_are_removed_on_error() -> None:
    with pytest.raises(RuntimeError):
        with scoped_temp_dir() as directory:
            (directory / "file").write_text("x", encoding="utf-8")
            kept_dir = directory
            raise RuntimeError("boom")
    assert not kept_dir.exists()

    with scoped_temp_file(suffix=".tar") as temp_file:
        assert temp_file.suffix == ".tar"
        kept_file = temp_file
    assert not kept_file.exists()


def test_scoped_path_tolerates_absence(tmp_path: Path) -> None:
    with scoped_path(tmp_path / "never-created") as path:
        assert not path.exists()
