# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Reader for package selection lists.

Each line starts with a level code followed by a package id and an optional
archive format::

    T a0poster
    - obsolete-package
    S amsmath;TarLzma
    @ more-packages.txt

Lines starting with ``@`` include another list, resolved relative to the
including file.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from pathlib import Path

from .archive import DEFAULT_ARCHIVE_FORMAT, ArchiveFormat
from .errors import PackageListError
from .models import Level, PackageSpec

LOGGER = logging.getLogger(__name__)

_LIST_FORMATS = {
    ArchiveFormat.MS_CAB.value: ArchiveFormat.MS_CAB,
    ArchiveFormat.TAR_BZIP2.value: ArchiveFormat.TAR_BZIP2,
    ArchiveFormat.TAR_LZMA.value: ArchiveFormat.TAR_LZMA,
}
_LEVEL_CODES = frozenset(level.value for level in Level)
_INCLUDE = "@"


def read_package_list(
    path: Path,
    specs: MutableMapping[str, PackageSpec],
    warn: Callable[[str], None],
    *,
    _stack: tuple[Path, ...] = (),
) -> MutableMapping[str, PackageSpec]:
    """Merge the entries of the package list at ``path`` into ``specs``.

    Args:
        path: Package list file.
        specs: Mapping updated in place; the first occurrence of an id wins.
        warn: Callback receiving duplicate-entry warnings.

    Returns:
        MutableMapping[str, PackageSpec]: ``specs`` for convenience.

    Raises:
        PackageListError: If an entry names an unknown archive format or an
            include forms a cycle.
        OSError: If a list file cannot be read.
    """

    resolved = path.resolve()
    if resolved in _stack:
        chain = " -> ".join(str(entry) for entry in (*_stack, resolved))
        raise PackageListError(f"Circular package list include: {chain}")
    with path.open(encoding="utf-8") as handle:
        lines = handle.read().splitlines()
    for line in lines:
        if not line:
            continue
        code, rest = line[0], line[1:].lstrip(" \t")
        if not rest:
            continue
        if code == _INCLUDE:
            include = Path(rest)
            if not include.is_absolute():
                include = path.parent / include
            read_package_list(include, specs, warn, _stack=(*_stack, resolved))
            continue
        if code not in _LEVEL_CODES:
            continue
        package_id, _, format_name = rest.partition(";")
        package_id = package_id.strip()
        existing = specs.get(package_id)
        if existing is not None:
            warn(f"ignoring '{code} {package_id}': already marked as '{existing.level.value}'")
            continue
        archive_format = DEFAULT_ARCHIVE_FORMAT
        format_name = format_name.strip()
        if format_name:
            if format_name not in _LIST_FORMATS:
                raise PackageListError("Invalid package list file.")
            archive_format = _LIST_FORMATS[format_name]
        specs[package_id] = PackageSpec(id=package_id, level=Level(code), archive_format=archive_format)
    LOGGER.debug("read %s (%d entries so far)", path, len(specs))
    return specs


__all__ = ["read_package_list"]
