# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Repository builder: drives collection, archiving and database generation."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from .archive import (
    DEFAULT_ARCHIVE_FORMAT,
    ArchiveFormat,
    database_format,
    find_existing_archive,
)
from .categorize import auto_categorize
from .collector import collect_package, collect_packages
from .constants import (
    FILES_CSV,
    FILES_DIR,
    LAST_UPDATED_COUNT,
    LZMA_SUFFIX,
    MPM_INI,
    MPM_INI_CONFIG_PATH,
    PACKAGE_MANIFEST_DIR,
    PACKAGE_MANIFEST_SUFFIX,
    PACKAGE_MANIFESTS_DB_ID,
    PACKAGE_MANIFESTS_INI,
    REPOSITORY_INFO_INI,
    REPOSITORY_MANIFEST_DB_ID,
    REPOSITORY_SECTION,
    SECONDS_PER_DAY,
    TPM_ARCHIVE_DB_ID,
    VERSION_EPOCH,
)
from .context import RunContext
from .digest import file_digest
from .errors import FatalError, ManifestError, StagingError
from .inistore import IniStore
from .manifest import put_package_manifest, read_package_manifest, write_package_manifest
from .models import PackageInfo, format_digest
from .paths import scoped_path, scoped_temp_dir, scoped_temp_file
from .repository import LEVEL, MD5, TIME_PACKAGED, RepositoryManifest, database_file_name
from .staging import copy_package, disassemble, package_manifest_path, read_staging

LOGGER = logging.getLogger(__name__)

PackageTable = dict[str, PackageInfo]

# archive format -> formats superseding it
_SUPERSEDED_BY: tuple[tuple[ArchiveFormat, tuple[ArchiveFormat, ...]], ...] = (
    (ArchiveFormat.MS_CAB, (ArchiveFormat.TAR_BZIP2, ArchiveFormat.TAR_LZMA)),
    (ArchiveFormat.TAR_BZIP2, (ArchiveFormat.TAR_LZMA,)),
)


class PackageCreator:
    """Build TDS trees and package repositories from staging directories."""

    def __init__(self, context: RunContext) -> None:
        self._context = context

    @property
    def context(self) -> RunContext:
        return self._context

    @property
    def _prefix(self) -> str:
        return self._context.texmf_prefix

    @property
    def _database_format(self) -> ArchiveFormat:
        return database_format(self._context.config.series)

    def database_path(self, repository: Path, db_id: int) -> Path:
        """Return the path of database archive ``db_id`` inside ``repository``."""

        config = self._context.config
        return repository / database_file_name(config.db_prefix, db_id, config.series, self._database_format)

    # collection -------------------------------------------------------------

    def collect(self, staging_roots: Iterable[Path]) -> PackageTable:
        """Collect all staging directories below ``staging_roots``.

        Raises:
            FatalError: If no roots are given or no package was found.
        """

        roots = list(staging_roots)
        if not roots:
            raise FatalError("No staging roots were specified.")
        table: PackageTable = {}
        for root in roots:
            collect_packages(
                root,
                table,
                read_package=read_staging,
                texmf_prefix=self._prefix,
                is_ignored=self._context.is_ignored,
                warn=self._context.warn,
                progress=self._context.verbose,
                hash_factory=self._context.hash_factory,
            )
        if not table:
            raise FatalError("No staging directories were found.")
        return table

    # modes ------------------------------------------------------------------

    def build_tds(self, staging_roots: Iterable[Path], texmf_parent: Path, tpm_dir: Path | None = None) -> PackageTable:
        """Materialise every collected package below ``texmf_parent``.

        Writes ``<texmf_parent>/<prefix>/config/mpm.ini`` describing the
        installed packages and, when ``tpm_dir`` is given, one package
        manifest per package into it.
        """

        table = self.collect(staging_roots)
        manifest = RepositoryManifest()
        start_time = self._context.start_time
        for package_id in sorted(table):
            info = table[package_id]
            if self._context.is_ignored(info):
                continue
            self._context.verbose(f"Copying '{info.id}'...")
            copy_package(
                info,
                texmf_parent,
                texmf_prefix=self._prefix,
                time_packaged=start_time,
                hash_factory=self._context.hash_factory,
            )
            manifest.put(info.id, LEVEL, self._context.get_level(info).value)
            manifest.put(info.id, MD5, format_digest(info.digest))
            manifest.put(info.id, TIME_PACKAGED, str(start_time))
            manifest.record_versions(info)
        if tpm_dir is not None:
            self.write_package_manifest_files(table, tpm_dir, manifest)
        manifest.write(texmf_parent / self._prefix / MPM_INI_CONFIG_PATH, self._context.signer)
        return table

    def update_repository(
        self,
        staging_roots: Iterable[Path],
        repository: Path,
        *,
        categorize: bool = True,
        initialize: bool = False,
    ) -> PackageTable:
        """Bring ``repository`` up to date with the collected staging directories.

        Sections of packages that are gone or excluded are pruned.

        Args:
            staging_roots: Directories holding staging directories.
            repository: Repository directory.
            categorize: Whether packages are linked into category containers.
            initialize: Whether a missing repository manifest archive starts
                an empty repository instead of failing.

        Raises:
            ManifestError: If the repository manifest archive is missing and
                ``initialize`` is not set.
        """

        repository = repository.resolve()
        table = self.collect(staging_roots)
        if initialize and not self.database_path(repository, REPOSITORY_MANIFEST_DB_ID).is_file():
            self._context.verbose(f"Initializing repository '{repository}'...")
            manifest = RepositoryManifest()
        else:
            manifest = self.load_repository_manifest(repository)
        if categorize:
            auto_categorize(table, texmf_prefix=self._prefix, warn=self._context.warn)
        self.update_manifest(table, repository, manifest)
        self.write_database(table, repository, manifest, prune=True)
        return table

    def create_package(self, staging_dir: Path, repository: Path) -> PackageInfo:
        """Add or refresh the single package staged in ``staging_dir``.

        Every other package is known from the repository's package manifests;
        nothing is pruned.
        """

        repository = repository.resolve()
        self._context.verbose(f"Loading repository manifest from '{repository}'...")
        manifest = self.load_repository_manifest(repository)
        table = self.load_package_manifests(repository)
        self._context.verbose(f"Reading staging directory '{staging_dir}'...")
        info = read_staging(staging_dir.resolve())
        collect_package(info, self._prefix, self._context.hash_factory)
        table[info.id] = info
        self.update_manifest(table, repository, manifest)
        self._context.verbose(f"Writing database to '{repository}'...")
        self.write_database(table, repository, manifest, prune=False)
        return info

    def disassemble(self, manifest_file: Path, texmf_parent: Path, staging_dir: Path) -> PackageInfo:
        """Recreate the staging directory of an installed package."""

        return disassemble(
            manifest_file,
            texmf_parent,
            staging_dir,
            texmf_prefix=self._prefix,
            hash_factory=self._context.hash_factory,
            progress=self._context.verbose,
        )

    # repository database ----------------------------------------------------

    def load_repository_manifest(self, repository: Path) -> RepositoryManifest:
        return RepositoryManifest.load(
            self.database_path(repository, REPOSITORY_MANIFEST_DB_ID),
            self._database_format,
            self._context.archive_tools,
        )

    def load_package_manifests(self, repository: Path) -> PackageTable:
        """Read every package manifest stored in the TPM archive of ``repository``.

        Raises:
            ManifestError: If the TPM archive does not exist.
        """

        archive_file = self.database_path(repository, TPM_ARCHIVE_DB_ID)
        if not archive_file.is_file():
            raise ManifestError("The TPM archive file does not exist.")
        table: PackageTable = {}
        with scoped_temp_dir() as temp_dir:
            self._context.archive_tools.extract(archive_file, self._database_format, temp_dir)
            directory = temp_dir / self._prefix / PACKAGE_MANIFEST_DIR
            for path in sorted(directory.glob(f"*{PACKAGE_MANIFEST_SUFFIX}")):
                info = read_package_manifest(path, self._prefix)
                info.id = path.stem
                table[info.id] = info
        LOGGER.debug("loaded %d package manifests from %s", len(table), archive_file)
        return table

    def update_manifest(self, table: PackageTable, repository: Path, manifest: RepositoryManifest) -> None:
        """Archive every non-excluded, non-container package and record it."""

        for package_id in sorted(table):
            info = table[package_id]
            if self._context.is_ignored(info) or info.is_pure_container:
                continue
            manifest.put(info.id, LEVEL, self._context.get_level(info).value)
            archive_format = self.create_archive_file(info, repository, manifest)
            manifest.record_package(info, archive_format)

    def _reusable_time(self, info: PackageInfo, archive_file: Path, archive_format: ArchiveFormat, manifest: RepositoryManifest) -> int | None:
        recorded = manifest.digest(info.id)
        if recorded is not None and recorded != info.digest:
            return None
        member = f"{self._prefix}/{PACKAGE_MANIFEST_DIR}/{info.id}{PACKAGE_MANIFEST_SUFFIX}"
        with scoped_temp_file(suffix=PACKAGE_MANIFEST_SUFFIX) as manifest_file:
            self._context.archive_tools.extract_single_file(archive_file, archive_format, member, manifest_file)
            existing = read_package_manifest(manifest_file, self._prefix)
        if existing.digest is None or existing.digest != info.digest:
            return None
        recorded_time = manifest.time_packaged(info.id) if recorded is not None else None
        return recorded_time if recorded_time is not None else existing.time_packaged

    def create_archive_file(self, info: PackageInfo, repository: Path, manifest: RepositoryManifest) -> ArchiveFormat:
        """Reuse the archive of ``info`` when its content is unchanged, else rebuild it.

        An existing archive is reused only when the package manifest inside
        it carries the new digest and the recorded ``MD5``, when there is one,
        agrees. A reused archive keeps its packaging time; a rebuilt one gets
        the run's start time.

        Returns:
            ArchiveFormat: Format of the archive now stored for ``info``.

        Raises:
            StagingError: If a rebuild is needed but the package has no
                staging directory.
            ArchiveError: If an archiver or compressor fails.
        """

        time_packaged: int | None = None
        existing = find_existing_archive(repository, info.id)
        if existing is not None:
            archive_file, archive_format = existing
            time_packaged = self._reusable_time(info, archive_file, archive_format, manifest)

        if time_packaged is not None:
            LOGGER.debug("reusing %s", archive_file)
            info.time_packaged = time_packaged
        else:
            archive_format = DEFAULT_ARCHIVE_FORMAT
            archive_file = repository / f"{info.id}{archive_format.extension}"
            time_packaged = self._build_archive(info, archive_file, archive_format)

        stat = archive_file.stat()
        info.archive_file_size = stat.st_size
        info.archive_file_digest = file_digest(archive_file, self._context.hash_factory)
        os.utime(archive_file, (stat.st_atime, time_packaged))
        return archive_format

    def _build_archive(
        self,
        info: PackageInfo,
        archive_file: Path,
        archive_format: ArchiveFormat,
    ) -> int:
        if info.path is None:
            raise StagingError(f"Cannot rebuild '{info.id}': no staging directory.")
        self._context.verbose(f"Creating '{archive_file.name}'...")
        repository = archive_file.parent
        repository.mkdir(parents=True, exist_ok=True)

        time_packaged = self._context.start_time
        info.time_packaged = time_packaged

        files_root = info.path / FILES_DIR
        write_package_manifest(package_manifest_path(files_root, self._prefix, info.id), info, time_packaged)

        tools = self._context.archive_tools
        with scoped_path(repository / f"{info.id}{ArchiveFormat.TAR.extension}") as tar_file:
            tools.create_tar(tar_file, [], cwd=info.path)
            if files_root.is_dir():
                tools.append_tar(tar_file, [self._prefix], cwd=files_root)
            tools.compress(tar_file, archive_format, archive_file)
        return time_packaged

    def write_package_manifest_files(self, table: PackageTable, dest_dir: Path, manifest: RepositoryManifest) -> None:
        """Write ``<id>.tpm`` for every non-excluded package into ``dest_dir``."""

        dest_dir.mkdir(parents=True, exist_ok=True)
        self._context.verbose(f"writing package manifest files in '{dest_dir}'...")
        for package_id in sorted(table):
            info = table[package_id]
            if self._context.is_ignored(info):
                continue
            path = dest_dir / f"{info.id}{PACKAGE_MANIFEST_SUFFIX}"
            path.unlink(missing_ok=True)
            write_package_manifest(path, info, manifest.time_packaged(info.id))

    def dump_package_manifests(self, table: PackageTable, path: Path, manifest: RepositoryManifest) -> None:
        """Flatten all non-excluded package manifests into one INI file."""

        self._context.verbose(f"dumping package manifests to '{path}'...")
        store = IniStore()
        for package_id in sorted(table):
            info = table[package_id]
            if self._context.is_ignored(info):
                continue
            put_package_manifest(store, info, manifest.time_packaged(info.id))
        store.write(path, self._context.signer)

    def _archive_member(self, archive_file: Path, member: str, cwd: Path) -> None:
        self._context.archive_tools.create(self._database_format, [member], archive_file, cwd=cwd)

    def write_database(
        self,
        table: PackageTable,
        repository: Path,
        manifest: RepositoryManifest,
        *,
        prune: bool,
    ) -> None:
        """Write the database archives and index files of ``repository``.

        Args:
            table: Current package table.
            repository: Repository directory.
            manifest: Repository manifest database to persist.
            prune: Whether sections of unknown or excluded packages are removed.
        """

        repository.mkdir(parents=True, exist_ok=True)
        if prune:
            manifest.prune(table, self._context.is_ignored)

        signer = self._context.signer
        with scoped_temp_dir() as work_dir:
            manifest.write(work_dir / MPM_INI, signer)
            self._archive_member(self.database_path(repository, REPOSITORY_MANIFEST_DB_ID), MPM_INI, work_dir)

        with scoped_temp_dir() as work_dir:
            self.write_package_manifest_files(table, work_dir / self._prefix / PACKAGE_MANIFEST_DIR, manifest)
            self._archive_member(self.database_path(repository, TPM_ARCHIVE_DB_ID), self._prefix, work_dir)

        with scoped_temp_dir() as work_dir:
            self.dump_package_manifests(table, work_dir / PACKAGE_MANIFESTS_INI, manifest)
            self._archive_member(self.database_path(repository, PACKAGE_MANIFESTS_DB_ID), PACKAGE_MANIFESTS_INI, work_dir)

        self.create_file_list(table, repository)
        self.clean_up(repository)
        self.create_repository_information_file(repository, manifest, table)

    def create_file_list(self, table: PackageTable, repository: Path) -> None:
        """Write ``files.csv.lzma``: sorted ``<path without prefix>;<id>`` lines."""

        prefix = f"{self._prefix}/"
        lines: list[str] = []
        for info in table.values():
            if self._context.is_ignored(info):
                continue
            for name in info.all_files():
                relative = name[len(prefix) :] if name.startswith(prefix) else name
                lines.append(f"{relative};{info.id}")
        lines.sort()
        files_csv = repository / FILES_CSV
        with files_csv.open("w", encoding="utf-8", newline="\n") as handle:
            handle.writelines(f"{line}\n" for line in lines)
        self._context.archive_tools.compress(files_csv, ArchiveFormat.TAR_LZMA, repository / f"{FILES_CSV}{LZMA_SUFFIX}")

    def clean_up(self, repository: Path) -> list[Path]:
        """Delete archives superseded by a newer format of the same package.

        Returns:
            list[Path]: Deleted files.
        """

        to_be_deleted: list[Path] = []
        for entry in sorted(repository.iterdir()):
            if not entry.is_file():
                continue
            for old_format, newer_formats in _SUPERSEDED_BY:
                if not entry.name.endswith(old_format.extension):
                    continue
                stem = entry.name[: -len(old_format.extension)]
                if any((repository / f"{stem}{newer.extension}").is_file() for newer in newer_formats):
                    to_be_deleted.append(entry)
                break
        for path in to_be_deleted:
            self._context.verbose(f"Removing '{path}'...")
            path.unlink()
        return to_be_deleted

    def _last_updated(self, table: PackageTable, manifest: RepositoryManifest) -> list[str]:
        stamped: list[tuple[int, str]] = []
        for info in table.values():
            if self._context.is_ignored(info):
                continue
            time_packaged = manifest.time_packaged(info.id)
            stamped.append((-(time_packaged if time_packaged is not None else -1), info.id))
        return [package_id for _, package_id in sorted(stamped)[:LAST_UPDATED_COUNT]]

    def _listing_digest(self, repository: Path) -> str:
        lines = sorted(
            f"{entry.name};{entry.stat().st_size if entry.is_file() else 0}\n" for entry in repository.iterdir()
        )
        hasher = self._context.hash_factory()
        for line in lines:
            hasher.update(line.encode("utf-8"))
        return format_digest(hasher.digest())

    def create_repository_information_file(
        self,
        repository: Path,
        manifest: RepositoryManifest,
        table: PackageTable,
    ) -> IniStore:
        """Write ``pr.ini`` summarising ``repository``.

        The file is written twice: the listing digest covers the directory
        as it looks after the first write.
        """

        start_time = self._context.start_time
        store = IniStore()
        store.put(REPOSITORY_SECTION, "date", str(start_time))
        store.put(REPOSITORY_SECTION, "version", str((start_time - VERSION_EPOCH) // SECONDS_PER_DAY))
        store.put(REPOSITORY_SECTION, "lstdigest", format_digest(self._context.hash_factory().digest()))
        store.put(REPOSITORY_SECTION, "numpkg", str(len(manifest)))
        store.put(REPOSITORY_SECTION, "lastupd", " ".join(self._last_updated(table, manifest)))
        store.put(REPOSITORY_SECTION, "relstate", self._context.config.release_state)
        path = repository / REPOSITORY_INFO_INI
        path.unlink(missing_ok=True)
        store.write(path, self._context.signer)
        store.put(REPOSITORY_SECTION, "lstdigest", self._listing_digest(repository))
        store.write(path, self._context.signer)
        return store


__all__ = ["PackageCreator", "PackageTable"]
