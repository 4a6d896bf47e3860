# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Read and write staging directories.

A staging directory holds one package before it is archived::

    a0poster/
        package.ini        metadata (id, name, requires, md5, ...)
        md5sums.txt        "<hex digest> <unix path>" per file
        Description        optional free text
        Files/texmf/...    the package payload

:func:`disassemble` rebuilds such a directory from an installed package and
:func:`copy_package` materialises one into a TDS hierarchy.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterable
from pathlib import Path

from .collector import collect_package
from .constants import (
    DESCRIPTION_FILE,
    FILES_DIR,
    MD5SUMS_TXT,
    PACKAGE_INI,
    PACKAGE_MANIFEST_DIR,
    PACKAGE_MANIFEST_SUFFIX,
)
from .digest import FileDigestTable, HashFactory, aggregate_digest, copy_files, md5_factory
from .errors import StagingError
from .inistore import DEFAULT_SECTION, IniStore
from .manifest import read_package_manifest, write_package_manifest
from .models import PackageInfo, format_digest, parse_digest
from .paths import dos_collation_key, to_unix

LOGGER = logging.getLogger(__name__)

_REQUIREMENT_SPLIT = re.compile("[;" + re.escape(os.pathsep) + "]")


def package_manifest_path(root: Path, texmf_prefix: str, package_id: str) -> Path:
    """Return ``<root>/<prefix>/tpm/packages/<id>.tpm``."""

    return root / texmf_prefix / PACKAGE_MANIFEST_DIR / f"{package_id}{PACKAGE_MANIFEST_SUFFIX}"


def _split_requirements(values: Iterable[str]) -> list[str]:
    tokens: list[str] = []
    for value in values:
        tokens.extend(token.strip() for token in _REQUIREMENT_SPLIT.split(value) if token.strip())
    return tokens


def read_description(staging_dir: Path) -> str:
    """Return the verbatim ``Description`` text, or ``""`` when there is none."""

    path = staging_dir / DESCRIPTION_FILE
    if not path.is_file():
        return ""
    with path.open(encoding="utf-8", newline="") as handle:
        return handle.read()


def write_description(staging_dir: Path, description: str) -> None:
    with (staging_dir / DESCRIPTION_FILE).open("w", encoding="utf-8", newline="") as handle:
        handle.write(description)


def read_staging(staging_dir: Path) -> PackageInfo:
    """Read ``package.ini`` and ``Description`` of ``staging_dir``.

    Args:
        staging_dir: Staging directory to read.

    Returns:
        PackageInfo: Package record with empty file lists and ``path`` set to
        ``staging_dir``. ``digest`` is set only when ``package.ini`` carries
        an ``md5`` value.

    Raises:
        StagingError: If the mandatory ``id`` or ``name`` is missing, or the
            recorded digest is not hexadecimal.
    """

    store = IniStore.read(staging_dir / PACKAGE_INI)

    def value(name: str) -> str | None:
        return store.get(DEFAULT_SECTION, name)

    package_id = value("id")
    if package_id is None:
        package_id = value("externalname")
    if package_id is None:
        raise StagingError("Invalid package information file (id).")
    display_name = value("name")
    if display_name is None:
        raise StagingError("Invalid package information file (name).")

    info = PackageInfo(
        id=package_id,
        display_name=display_name,
        creator=value("creator") or "",
        title=value("title") or "",
        version=value("version") or "",
        target_system=value("targetsystem") or "",
        min_target_system_version=value("min_target_system_version") or "",
        ctan_path=value("ctan_path") or "",
        copyright_owner=value("copyright_owner") or "",
        copyright_year=value("copyright_year") or "",
        license_type=value("license_type") or "",
        required_packages=_split_requirements(store.get_list(DEFAULT_SECTION, "requires")),
        description=read_description(staging_dir),
        path=staging_dir,
    )
    digest = value("md5")
    if digest:
        try:
            info.digest = parse_digest(digest)
        except ValueError as exc:
            raise StagingError("Invalid package information file (md5).") from exc
    LOGGER.debug("read staging directory %s (%s)", staging_dir, info.id)
    return info


def write_staging(
    staging_dir: Path,
    info: PackageInfo,
    table: FileDigestTable,
    digest: bytes,
) -> None:
    """Write ``package.ini``, ``md5sums.txt`` and (when non-empty) ``Description``.

    Args:
        staging_dir: Existing staging directory.
        info: Package metadata to record.
        table: Digests of the staged files, listed in table order.
        digest: Aggregate digest recorded as ``md5``.
    """

    lines = [
        f"id={info.id}",
        f"name={info.display_name}",
        f"creator={info.creator}",
        f"title={info.title}",
        f"version={info.version}",
        f"targetsystem={info.target_system}",
        f"min_target_system_version={info.min_target_system_version}",
        f"md5={format_digest(digest)}",
        f"ctan_path={info.ctan_path}",
        f"copyright_owner={info.copyright_owner}",
        f"copyright_year={info.copyright_year}",
        f"license_type={info.license_type}",
    ]
    lines.extend(f"requires;={required}" for required in info.required_packages)
    lines.append(f"externalname={info.id}")
    with (staging_dir / PACKAGE_INI).open("w", encoding="utf-8", newline="\n") as handle:
        handle.write("\n".join(lines) + "\n")

    with (staging_dir / MD5SUMS_TXT).open("w", encoding="utf-8", newline="\n") as handle:
        for path in table:
            handle.write(f"{format_digest(table[path])} {to_unix(path)}\n")

    if info.description:
        write_description(staging_dir, info.description)


def disassemble(
    manifest_file: Path,
    source_dir: Path,
    staging_dir: Path,
    *,
    texmf_prefix: str,
    hash_factory: HashFactory = md5_factory,
    progress: Callable[[str], None] | None = None,
) -> PackageInfo:
    """Turn an installed package back into a staging directory.

    Args:
        manifest_file: Installed ``.tpm`` file describing the package.
        source_dir: TEXMF parent the manifest's file paths are relative to.
        staging_dir: Staging directory to create or refresh.
        texmf_prefix: Top-level TDS prefix.
        hash_factory: Factory for the digest primitive.
        progress: Optional callback receiving progress messages.

    Returns:
        PackageInfo: Record of the staged package, files re-collected from
        ``<staging_dir>/Files``.

    Raises:
        ManifestError: If the manifest cannot be parsed.
        FileNotFoundError: If a listed file has no match below ``source_dir``.
    """

    if progress is not None:
        progress(f"Parsing '{manifest_file}'...")
    info = read_package_manifest(manifest_file, texmf_prefix)

    try:
        own_entry = dos_collation_key(manifest_file.resolve().relative_to(source_dir.resolve()).as_posix())
    except ValueError:
        own_entry = None
    if own_entry is not None:
        for index, name in enumerate(info.run_files):
            if dos_collation_key(name) == own_entry:
                del info.run_files[index]
                break

    info.id = manifest_file.stem
    if progress is not None:
        progress(f" {info.id} ({info.num_files} files)...")

    files_root = staging_dir / FILES_DIR
    table = FileDigestTable()
    for files in (info.run_files, info.doc_files, info.source_files):
        copy_files(files, source_dir, files_root, table, hash_factory)
    digest = aggregate_digest(table, hash_factory)

    staging_dir.mkdir(parents=True, exist_ok=True)
    write_staging(staging_dir, info, table, digest)

    info.digest = digest
    info.path = staging_dir
    collect_package(info, texmf_prefix, hash_factory)
    write_package_manifest(package_manifest_path(files_root, texmf_prefix, info.id), info, 0)
    return info


def copy_package(
    info: PackageInfo,
    dest_dir: Path,
    *,
    texmf_prefix: str,
    time_packaged: int,
    hash_factory: HashFactory = md5_factory,
) -> None:
    """Copy a collected package into the TDS hierarchy rooted at ``dest_dir``.

    The package manifest is written to ``<dest>/<prefix>/tpm/packages/`` once
    the payload has been copied.

    Raises:
        StagingError: If the package has no staging directory or the digest
            of the copied files differs from ``info.digest``.
    """

    if info.path is None:
        raise StagingError(f"No staging directory for '{info.id}'.")
    source_root = info.path / FILES_DIR
    table = FileDigestTable()
    for files in (info.run_files, info.doc_files, info.source_files):
        copy_files(files, source_root, dest_dir, table, hash_factory)
    write_package_manifest(package_manifest_path(dest_dir, texmf_prefix, info.id), info, time_packaged)
    if aggregate_digest(table, hash_factory) != info.digest:
        raise StagingError(f"Bad TDS digest ({info.id}).")


__all__ = [
    "copy_package",
    "disassemble",
    "package_manifest_path",
    "read_description",
    "read_staging",
    "write_description",
    "write_staging",
]
