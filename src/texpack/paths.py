# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Helpers for path rendering and scoped temporary filesystem resources."""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path, PurePosixPath


def to_dos(path: str) -> str:
    """Return ``path`` rendered with backslash separators."""

    return path.replace("/", "\\")


def to_unix(path: str) -> str:
    """Return ``path`` rendered with forward-slash separators."""

    return path.replace("\\", "/")


def dos_collation_key(path: str) -> str:
    """Return the sort key used for case-insensitive DOS path collation.

    Separators compare equal regardless of direction and letters are
    case-folded, so ``Foo/Bar`` and ``foo\\bar`` collate identically.
    """

    return to_dos(path).casefold()


def is_parent_directory_of(parent: str, path: str) -> bool:
    """Return ``True`` when ``path`` lies strictly below ``parent``.

    Both arguments are relative paths compared component-wise and
    case-insensitively.
    """

    parent_parts = [part.casefold() for part in PurePosixPath(to_unix(parent)).parts]
    path_parts = [part.casefold() for part in PurePosixPath(to_unix(path)).parts]
    return len(path_parts) > len(parent_parts) and path_parts[: len(parent_parts)] == parent_parts


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file or a directory tree; ignore absence."""

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


@contextmanager
def scoped_path(path: Path) -> Iterator[Path]:
    """Yield ``path`` and delete whatever exists there once the block exits."""

    try:
        yield path
    finally:
        remove_path(path)


@contextmanager
def scoped_temp_file(*, suffix: str = "") -> Iterator[Path]:
    """Yield a fresh temporary file path that is removed on every exit path."""

    handle, name = tempfile.mkstemp(prefix="texpack-", suffix=suffix)
    os.close(handle)
    with scoped_path(Path(name)) as path:
        yield path


@contextmanager
def scoped_temp_dir() -> Iterator[Path]:
    """Yield a fresh temporary directory that is removed recursively on exit."""

    with scoped_path(Path(tempfile.mkdtemp(prefix="texpack-"))) as path:
        yield path


__all__ = [
    "dos_collation_key",
    "is_parent_directory_of",
    "remove_path",
    "scoped_path",
    "scoped_temp_dir",
    "scoped_temp_file",
    "to_dos",
    "to_unix",
]
