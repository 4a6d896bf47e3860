# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Content digests for package files and the aggregate TDS digest."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Callable, Iterable, Iterator, MutableMapping
from pathlib import Path
from typing import Protocol

from .constants import COPY_CHUNK_SIZE, PACKAGE_MANIFEST_SUFFIX
from .paths import dos_collation_key, to_dos, to_unix


class Hasher(Protocol):
    """Subset of the :mod:`hashlib` object interface used by texpack."""

    def update(self, data: bytes, /) -> None: ...

    def digest(self) -> bytes: ...


HashFactory = Callable[[], Hasher]


def md5_factory() -> Hasher:
    """Return a fresh MD5 hasher; the default digest primitive."""

    return hashlib.md5(usedforsecurity=False)


class FileDigestTable(MutableMapping[str, bytes]):
    """Mapping from relative file path to content digest in collated order.

    Keys are compared through ``collation`` (case-insensitive DOS collation by
    default), so ``Tex/Foo.sty`` and ``tex\\foo.sty`` address the same entry.
    The spelling of the first insertion is kept. Iteration always follows the
    collation order, independent of insertion order.
    """

    def __init__(
        self,
        entries: Iterable[tuple[str, bytes]] = (),
        *,
        collation: Callable[[str], str] = dos_collation_key,
    ) -> None:
        self._collation = collation
        self._entries: dict[str, tuple[str, bytes]] = {}
        for path, digest in entries:
            self[path] = digest

    def __getitem__(self, path: str) -> bytes:
        return self._entries[self._collation(path)][1]

    def __setitem__(self, path: str, digest: bytes) -> None:
        key = self._collation(path)
        existing = self._entries.get(key)
        self._entries[key] = (existing[0] if existing else path, digest)

    def __delitem__(self, path: str) -> None:
        del self._entries[self._collation(path)]

    def __iter__(self) -> Iterator[str]:
        for key in sorted(self._entries):
            yield self._entries[key][0]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self._collation(path) in self._entries


def file_digest(path: Path, hash_factory: HashFactory = md5_factory) -> bytes:
    """Return the content digest of ``path``."""

    hasher = hash_factory()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(COPY_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.digest()


def hash_copy_file(
    source: Path,
    dest: Path,
    hash_factory: HashFactory = md5_factory,
) -> tuple[bytes, int]:
    """Copy ``source`` to ``dest`` while hashing the copied bytes.

    The source's access and modification times are propagated onto the copy.

    Args:
        source: File to read.
        dest: File to create or overwrite.
        hash_factory: Factory for the digest primitive.

    Returns:
        tuple[bytes, int]: Content digest and number of bytes copied.

    Raises:
        OSError: If either file is inaccessible.
    """

    hasher = hash_factory()
    copied = 0
    with source.open("rb") as reader, dest.open("wb") as writer:
        for chunk in iter(lambda: reader.read(COPY_CHUNK_SIZE), b""):
            writer.write(chunk)
            hasher.update(chunk)
            copied += len(chunk)
    stat = source.stat()
    os.utime(dest, ns=(stat.st_atime_ns, stat.st_mtime_ns))
    return hasher.digest(), copied


def aggregate_digest(table: FileDigestTable, hash_factory: HashFactory = md5_factory) -> bytes:
    """Return the TDS digest over ``table``.

    Each entry contributes its path rendered with backslashes followed by the
    raw digest bytes, in table order. The backslash rendering keeps digests
    compatible with repositories built on Windows.
    """

    hasher = hash_factory()
    for path in table:
        hasher.update(to_dos(path).encode("utf-8"))
        hasher.update(table[path])
    return hasher.digest()


def is_package_manifest(path: str) -> bool:
    """Return ``True`` when ``path`` names a package manifest file."""

    return path.lower().endswith(PACKAGE_MANIFEST_SUFFIX)


def wild_copy(
    source_template: Path,
    dest_dir: Path,
    prefix: Path,
    table: FileDigestTable,
    hash_factory: HashFactory = md5_factory,
) -> None:
    """Copy every file matching ``source_template`` into ``dest_dir``.

    The template's final component may contain glob wildcards; matching does
    not recurse. Digests of copied files are recorded in ``table`` keyed by
    the destination path relative to ``prefix``. Package manifests are copied
    but never recorded.

    Raises:
        FileNotFoundError: If the source directory exists but nothing matches.
    """

    source_dir = source_template.parent
    if not source_dir.is_dir():
        return
    dest_dir.mkdir(parents=True, exist_ok=True)
    have_something = False
    for source_path in sorted(source_dir.glob(source_template.name)):
        have_something = True
        if source_path.is_dir():
            continue
        dest_path = dest_dir / source_path.name
        digest, _ = hash_copy_file(source_path, dest_path, hash_factory)
        if is_package_manifest(source_path.name):
            continue
        table[dest_path.relative_to(prefix).as_posix()] = digest
    if not have_something:
        raise FileNotFoundError(f"No match for '{source_template}'")


def copy_files(
    files: Iterable[str],
    source_root: Path,
    dest_root: Path,
    table: FileDigestTable,
    hash_factory: HashFactory = md5_factory,
) -> None:
    """Copy relative ``files`` from ``source_root`` to ``dest_root`` recording digests."""

    for file_name in files:
        relative = Path(to_unix(file_name))
        wild_copy(source_root / relative, (dest_root / relative).parent, dest_root, table, hash_factory)


def tree_digests(
    root: Path,
    files: Iterable[str],
    hash_factory: HashFactory = md5_factory,
) -> FileDigestTable:
    """Return a digest table for ``files`` (relative to ``root``) without copying."""

    table = FileDigestTable()
    for file_name in files:
        if is_package_manifest(file_name):
            continue
        table[to_unix(file_name)] = file_digest(root / to_unix(file_name), hash_factory)
    return table


__all__ = [
    "FileDigestTable",
    "HashFactory",
    "Hasher",
    "aggregate_digest",
    "copy_files",
    "file_digest",
    "hash_copy_file",
    "is_package_manifest",
    "md5_factory",
    "tree_digests",
    "wild_copy",
]
