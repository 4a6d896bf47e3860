# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data structures describing packages and their selection levels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .archive import ArchiveFormat
from .digest import is_package_manifest


class Level(str, Enum):
    """Inclusion tier of a package, persisted as its one-character code."""

    EXCLUDED = "-"
    SMALL = "S"
    MEDIUM = "M"
    LARGE = "L"
    TOTAL = "T"


@dataclass(slots=True, frozen=True)
class PackageSpec:
    """Selection entry for one package read from a package list."""

    id: str
    level: Level
    archive_format: ArchiveFormat = ArchiveFormat.TAR_LZMA


@dataclass(slots=True)
class PackageInfo:
    """Canonical package record shared by every stage of the pipeline."""

    id: str = ""
    display_name: str = ""
    creator: str = ""
    title: str = ""
    version: str = ""
    target_system: str = ""
    min_target_system_version: str = ""
    description: str = ""
    ctan_path: str = ""
    copyright_owner: str = ""
    copyright_year: str = ""
    license_type: str = ""
    required_packages: list[str] = field(default_factory=list)
    required_by: list[str] = field(default_factory=list)
    run_files: list[str] = field(default_factory=list)
    doc_files: list[str] = field(default_factory=list)
    source_files: list[str] = field(default_factory=list)
    size_run_files: int = 0
    size_doc_files: int = 0
    size_source_files: int = 0
    digest: bytes | None = None
    time_packaged: int | None = None
    archive_file_size: int = 0
    archive_file_digest: bytes | None = None
    path: Path | None = None

    @property
    def num_files(self) -> int:
        """Return the number of files across all three file lists."""

        return len(self.run_files) + len(self.doc_files) + len(self.source_files)

    def all_files(self) -> list[str]:
        """Return doc, run and source files concatenated."""

        return [*self.doc_files, *self.run_files, *self.source_files]

    def clear_files(self) -> None:
        """Reset the file lists and their size counters."""

        self.run_files.clear()
        self.doc_files.clear()
        self.source_files.clear()
        self.size_run_files = 0
        self.size_doc_files = 0
        self.size_source_files = 0

    @property
    def is_pure_container(self) -> bool:
        """Return ``True`` when the package carries no payload of its own.

        A container has no doc or source files and at most one run file, which
        must then be its own package manifest.
        """

        if self.doc_files or self.source_files:
            return False
        if not self.run_files:
            return True
        return len(self.run_files) == 1 and is_package_manifest(self.run_files[0])


def format_digest(digest: bytes | None) -> str:
    """Return the lower-case hex rendering of ``digest`` (empty when unset)."""

    return digest.hex() if digest is not None else ""


def parse_digest(text: str) -> bytes:
    """Parse a hex digest.

    Raises:
        ValueError: If ``text`` is not valid hexadecimal.
    """

    return bytes.fromhex(text.strip())


__all__ = ["Level", "PackageInfo", "PackageSpec", "format_digest", "parse_digest"]
