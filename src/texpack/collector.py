# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Collect staged package files and classify them as run, doc or source files."""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from .constants import FILES_DIR, PACKAGE_INI
from .digest import HashFactory, aggregate_digest, md5_factory, tree_digests
from .models import PackageInfo
from .paths import is_parent_directory_of

LOGGER = logging.getLogger(__name__)

Notifier = Callable[[str], None]
PackageReader = Callable[[Path], PackageInfo]


class FileClass(str, Enum):
    """Category a package file belongs to."""

    RUN = "run"
    DOC = "doc"
    SOURCE = "source"


@dataclass(slots=True)
class FileCollection:
    """Files found below a package root, partitioned by :class:`FileClass`."""

    run_files: list[str] = field(default_factory=list)
    doc_files: list[str] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)
    size_run_files: int = 0
    size_doc_files: int = 0
    size_source_files: int = 0

    def add(self, rel_path: str, size: int, file_class: FileClass) -> None:
        """Record ``rel_path`` under ``file_class`` and add ``size`` to its total."""

        if file_class is FileClass.DOC:
            self.doc_files.append(rel_path)
            self.size_doc_files += size
        elif file_class is FileClass.SOURCE:
            self.source_files.append(rel_path)
            self.size_source_files += size
        else:
            self.run_files.append(rel_path)
            self.size_run_files += size


def classify(rel_path: str, texmf_prefix: str) -> FileClass:
    """Return the class of ``rel_path`` based solely on its path prefix.

    Examples:
        ``texmf/doc/latex/foo/readme.txt`` is a doc file,
        ``texmf/source/latex/foo/foo.dtx`` a source file, anything else a run
        file.
    """

    prefix = PurePosixPath(texmf_prefix)
    if is_parent_directory_of(str(prefix / "doc"), rel_path):
        return FileClass.DOC
    if is_parent_directory_of(str(prefix / "source"), rel_path):
        return FileClass.SOURCE
    return FileClass.RUN


def _walk(root_dir: Path, sub_dir: PurePosixPath, texmf_prefix: str, collection: FileCollection) -> None:
    directory = root_dir / sub_dir
    for entry in sorted(directory.iterdir(), key=lambda item: item.name):
        rel_path = sub_dir / entry.name
        if entry.is_dir():
            _walk(root_dir, rel_path, texmf_prefix, collection)
        else:
            collection.add(rel_path.as_posix(), entry.stat().st_size, classify(rel_path.as_posix(), texmf_prefix))


def collect_files(root_dir: Path, texmf_prefix: str) -> FileCollection:
    """Walk ``root_dir`` recursively and classify every regular file.

    Paths are recorded relative to ``root_dir`` in POSIX form. An absent root
    yields an empty collection.
    """

    collection = FileCollection()
    if root_dir.is_dir():
        _walk(root_dir, PurePosixPath(), texmf_prefix, collection)
    return collection


def collect_package(
    package: PackageInfo,
    texmf_prefix: str,
    hash_factory: HashFactory = md5_factory,
) -> None:
    """Refill the file lists of ``package`` from ``<package.path>/Files``.

    When the staging metadata carried no digest, the aggregate digest is
    computed from the collected files.
    """

    package.clear_files()
    if package.path is None:
        return
    files_root = package.path / FILES_DIR
    collection = collect_files(files_root, texmf_prefix)
    package.run_files.extend(collection.run_files)
    package.doc_files.extend(collection.doc_files)
    package.source_files.extend(collection.source_files)
    package.size_run_files = collection.size_run_files
    package.size_doc_files = collection.size_doc_files
    package.size_source_files = collection.size_source_files
    if package.digest is None:
        package.digest = aggregate_digest(tree_digests(files_root, package.all_files(), hash_factory), hash_factory)


def collect_packages(
    staging_root: Path,
    table: MutableMapping[str, PackageInfo],
    *,
    read_package: PackageReader,
    texmf_prefix: str,
    is_ignored: Callable[[PackageInfo], bool],
    warn: Notifier,
    progress: Notifier | None = None,
    hash_factory: HashFactory = md5_factory,
) -> None:
    """Collect every staging directory directly below ``staging_root`` into ``table``.

    Args:
        staging_root: Directory holding one staging directory per package.
        table: Package table updated in place; existing ids are kept.
        read_package: Reader turning a staging directory into a package record.
        texmf_prefix: Top-level prefix of the TDS tree inside ``Files``.
        is_ignored: Predicate telling which packages are excluded.
        warn: Callback receiving warning messages.
        progress: Optional callback receiving progress messages.
        hash_factory: Factory for the digest primitive.
    """

    if not staging_root.is_dir():
        return
    for staging_dir in sorted(staging_root.iterdir(), key=lambda item: item.name):
        if not staging_dir.is_dir() or not (staging_dir / PACKAGE_INI).is_file():
            continue
        package = read_package(staging_dir)
        if is_ignored(package):
            LOGGER.debug("skipping excluded package %s", package.id)
            continue
        if progress is not None:
            progress(f"Collecting '{package.id}'...")
        if package.id in table:
            warn(f"'{package.id}' already collected.")
            continue
        collect_package(package, texmf_prefix, hash_factory)
        table[package.id] = package


__all__ = [
    "FileClass",
    "FileCollection",
    "classify",
    "collect_files",
    "collect_package",
    "collect_packages",
]
