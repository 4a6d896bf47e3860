# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Repository manifest database (``mpm.ini``) and repository file naming."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path

from .archive import ArchiveFormat, ArchiveTools
from .constants import MPM_INI
from .errors import ManifestError
from .inistore import IniStore
from .models import PackageInfo, format_digest, parse_digest
from .paths import scoped_temp_file
from .signing import Signer

LOGGER = logging.getLogger(__name__)

# section keys
LEVEL = "Level"
MD5 = "MD5"
TIME_PACKAGED = "TimePackaged"
CAB_SIZE = "CabSize"
CAB_MD5 = "CabMD5"
TYPE = "Type"
VERSION = "Version"
TARGET_SYSTEM = "TargetSystem"
MIN_TARGET_SYSTEM_VERSION = "MinTargetSystemVersion"

_RECORDED_TYPES = frozenset({ArchiveFormat.MS_CAB, ArchiveFormat.TAR_BZIP2, ArchiveFormat.TAR_LZMA})


def database_file_name(db_prefix: str, db_id: int, series: str, archive_format: ArchiveFormat) -> str:
    """Return the file name of a database archive, e.g. ``miktex-zzdb1-2.9.tar.lzma``."""

    return f"{db_prefix}{db_id}-{series}{archive_format.extension}"


def archive_type_name(archive_format: ArchiveFormat) -> str:
    """Return the ``Type`` value recorded for ``archive_format``."""

    return archive_format.value if archive_format in _RECORDED_TYPES else "unknown"


class RepositoryManifest:
    """Per-package sections of the repository manifest database."""

    def __init__(self, store: IniStore | None = None) -> None:
        self._store = store if store is not None else IniStore()

    @classmethod
    def load(cls, archive_file: Path, archive_format: ArchiveFormat, tools: ArchiveTools) -> RepositoryManifest:
        """Extract ``mpm.ini`` from ``archive_file`` and parse it.

        Raises:
            ManifestError: If the archive does not exist.
            ArchiveError: If the extraction fails.
        """

        if not archive_file.is_file():
            raise ManifestError("The repository manifest archive file does not exist.")
        with scoped_temp_file(suffix=".ini") as ini_file:
            tools.extract_single_file(archive_file, archive_format, MPM_INI, ini_file)
            store = IniStore.read(ini_file)
        LOGGER.debug("loaded %d repository manifest sections from %s", len(store), archive_file)
        return cls(store)

    @property
    def store(self) -> IniStore:
        return self._store

    def get(self, package_id: str, key: str) -> str | None:
        return self._store.get(package_id, key)

    def put(self, package_id: str, key: str, value: str) -> None:
        self._store.put(package_id, key, value)

    def delete(self, package_id: str, key: str) -> None:
        self._store.delete(package_id, key)

    def delete_section(self, package_id: str) -> None:
        self._store.delete_section(package_id)

    def ids(self) -> list[str]:
        return self._store.sections()

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._store

    def digest(self, package_id: str) -> bytes | None:
        """Return the recorded ``MD5``; an unparsable value counts as absent."""

        text = self.get(package_id, MD5)
        if not text:
            return None
        try:
            return parse_digest(text)
        except ValueError:
            LOGGER.debug("ignoring malformed MD5 of %s: %r", package_id, text)
            return None

    def time_packaged(self, package_id: str) -> int | None:
        text = self.get(package_id, TIME_PACKAGED)
        if text is None or not text.strip().lstrip("-").isdigit():
            return None
        return int(text)

    def put_optional(self, package_id: str, key: str, value: str) -> None:
        """Store ``value`` when non-empty, otherwise delete ``key``."""

        if value:
            self.put(package_id, key, value)
        else:
            self.delete(package_id, key)

    def record_package(self, info: PackageInfo, archive_format: ArchiveFormat) -> None:
        """Record archive and version metadata of ``info`` after packaging."""

        self.put(info.id, MD5, format_digest(info.digest))
        self.put(info.id, TIME_PACKAGED, str(info.time_packaged if info.time_packaged is not None else 0))
        self.put(info.id, CAB_SIZE, str(info.archive_file_size))
        self.put(info.id, CAB_MD5, format_digest(info.archive_file_digest))
        self.put(info.id, TYPE, archive_type_name(archive_format))
        self.record_versions(info)

    def record_versions(self, info: PackageInfo) -> None:
        self.put_optional(info.id, VERSION, info.version)
        self.put_optional(info.id, TARGET_SYSTEM, info.target_system)
        self.put_optional(info.id, MIN_TARGET_SYSTEM_VERSION, info.min_target_system_version)

    def prune(
        self,
        packages: Mapping[str, PackageInfo],
        is_ignored: Callable[[PackageInfo], bool],
    ) -> list[str]:
        """Delete sections of unknown or excluded packages.

        Args:
            packages: Current package table.
            is_ignored: Predicate telling which packages are excluded.

        Returns:
            list[str]: Ids of the deleted sections.
        """

        obsolete = [
            package_id
            for package_id in self.ids()
            if package_id not in packages or is_ignored(packages[package_id])
        ]
        for package_id in obsolete:
            self.delete_section(package_id)
        if obsolete:
            LOGGER.debug("pruned %d obsolete sections", len(obsolete))
        return obsolete

    def write(self, path: Path, signer: Signer | None = None) -> None:
        self._store.write(path, signer)


__all__ = [
    "CAB_MD5",
    "CAB_SIZE",
    "LEVEL",
    "MD5",
    "MIN_TARGET_SYSTEM_VERSION",
    "TARGET_SYSTEM",
    "TIME_PACKAGED",
    "TYPE",
    "VERSION",
    "RepositoryManifest",
    "archive_type_name",
    "database_file_name",
]
