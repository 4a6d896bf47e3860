# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Archive creation and extraction backed by external archivers.

Every supported format is described once in :data:`FORMAT_TABLE`: its file
name extension and the command templates used to compress, decompress,
create, or extract it. :class:`ArchiveTools` renders those templates and runs
them through :func:`texpack.process.run_command`; nothing is passed through a
shell, so pipelines such as ``tar | xz`` are split into two steps joined by a
temporary ``.tar`` file.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Final, Literal

from .errors import ArchiveError, FatalError
from .paths import scoped_path, scoped_temp_file
from .process import CommandOptions, SubprocessExecutionError, run_command

LOGGER = logging.getLogger(__name__)

CommandObserver = Callable[[Sequence[str], Path | None], None]
Template = tuple[str, ...]

_UNSUPPORTED: Final[str] = "Unsupported archive file type."
_COMMAND_FAILED: Final[str] = "A system command failed."


class ArchiveFormat(str, Enum):
    """Archive file types, persisted under their repository ``Type`` names."""

    NONE = "None"
    MS_CAB = "MSCab"
    TAR_BZIP2 = "TarBzip2"
    ZIP = "Zip"
    TAR = "Tar"
    TAR_LZMA = "TarLzma"

    @property
    def extension(self) -> str:
        """Return the file name suffix for this format."""

        return FORMAT_TABLE[self].extension


@dataclass(frozen=True, slots=True)
class FormatSpec:
    """Extension and command templates of one archive format.

    Placeholders: ``{tar}``, ``{xz}`` and the other tool names from
    :class:`ToolSet`; ``{archive}``, ``{input}`` and ``{member}`` for single
    paths; ``{members}`` expands to zero or more arguments. Templates whose
    output goes to a file (``compress``, ``decompress``, ``extract_member``)
    write to stdout.
    """

    extension: str
    family: Literal["none", "tar", "cab", "zip"]
    compress: Template | None = None
    decompress: Template | None = None
    create: Template | None = None
    extract: Template | None = None
    extract_member: Template | None = None


_TAR_CREATE: Final[Template] = ("{tar}", "--force-local", "-cf", "{archive}", "{members}")
_TAR_APPEND: Final[Template] = ("{tar}", "--force-local", "-rf", "{archive}", "{members}")
_TAR_CREATE_EMPTY: Final[Template] = ("{tar}", "--force-local", "-cf", "{archive}", f"--files-from={os.devnull}")
_TAR_EXTRACT: Final[Template] = ("{tar}", "--force-local", "-xf", "{archive}")
_TAR_EXTRACT_MEMBER: Final[Template] = ("{tar}", "--force-local", "--to-stdout", "-xf", "{archive}", "{member}")

FORMAT_TABLE: Final[Mapping[ArchiveFormat, FormatSpec]] = {
    ArchiveFormat.NONE: FormatSpec(extension="", family="none"),
    ArchiveFormat.MS_CAB: FormatSpec(
        extension=".cab",
        family="cab",
        extract=("{cabextract}", "-q", "{archive}"),
        extract_member=("{cabextract}", "--filter", "{member}", "--pipe", "{archive}"),
    ),
    ArchiveFormat.TAR_BZIP2: FormatSpec(
        extension=".tar.bz2",
        family="tar",
        compress=("{bzip2}", "--keep", "--compress", "--stdout", "{input}"),
        decompress=("{bzip2}", "--decompress", "--keep", "--stdout", "{archive}"),
    ),
    ArchiveFormat.ZIP: FormatSpec(
        extension=".zip",
        family="zip",
        create=("{zip}", "-q", "-X", "-r", "{archive}", "{members}"),
        extract=("{unzip}", "-q", "-o", "{archive}"),
        extract_member=("{unzip}", "-p", "{archive}", "{member}"),
    ),
    ArchiveFormat.TAR: FormatSpec(
        extension=".tar",
        family="tar",
        create=_TAR_CREATE,
        extract=_TAR_EXTRACT,
        extract_member=_TAR_EXTRACT_MEMBER,
    ),
    ArchiveFormat.TAR_LZMA: FormatSpec(
        extension=".tar.lzma",
        family="tar",
        compress=("{xz}", "--compress", "--format=lzma", "--keep", "--stdout", "{input}"),
        decompress=("{xz}", "--decompress", "--format=lzma", "--keep", "--stdout", "{archive}"),
    ),
}

DEFAULT_ARCHIVE_FORMAT: Final[ArchiveFormat] = ArchiveFormat.TAR_LZMA

# probed in this order; a later hit replaces an earlier one
_PROBE_ORDER: Final[tuple[ArchiveFormat, ...]] = (
    ArchiveFormat.MS_CAB,
    ArchiveFormat.TAR_BZIP2,
    ArchiveFormat.TAR_LZMA,
)


def parse_series(series: str) -> tuple[int, ...]:
    """Return ``series`` (``MAJOR.MINOR``) as a comparable integer tuple.

    Raises:
        ValueError: If ``series`` is not a dotted sequence of integers.
    """

    return tuple(int(part) for part in series.strip().split("."))


def database_format(series: str) -> ArchiveFormat:
    """Return the archive format of the repository database files for ``series``."""

    return ArchiveFormat.TAR_BZIP2 if parse_series(series) < (2, 7) else ArchiveFormat.TAR_LZMA


def find_existing_archive(repository: Path, package_id: str) -> tuple[Path, ArchiveFormat] | None:
    """Return the newest-format archive stored for ``package_id``, if any."""

    found: tuple[Path, ArchiveFormat] | None = None
    for archive_format in _PROBE_ORDER:
        candidate = repository / f"{package_id}{archive_format.extension}"
        if candidate.is_file():
            found = (candidate, archive_format)
    return found


@dataclass(frozen=True, slots=True)
class ToolSet:
    """Executables used for the archive formats."""

    tar: str = "tar"
    xz: str = "xz"
    bzip2: str = "bzip2"
    cabextract: str = "cabextract"
    zip: str = "zip"
    unzip: str = "unzip"

    def as_mapping(self) -> dict[str, str]:
        """Return the executables keyed by template placeholder name."""

        return {item.name: getattr(self, item.name) for item in fields(self)}


def find_xz(env: Mapping[str, str], name: str = "xz") -> str:
    """Locate the ``xz`` utility on the ``PATH`` found in ``env``.

    Raises:
        FatalError: If ``PATH`` is unset or ``xz`` cannot be found.
    """

    if Path(name).is_absolute():
        if not Path(name).is_file():
            raise FatalError("The xz utility could not be found.")
        return name
    search_path = env.get("PATH")
    if search_path is None:
        raise FatalError("PATH is not set.")
    resolved = shutil.which(name, path=search_path)
    if resolved is None:
        raise FatalError("The xz utility could not be found.")
    return resolved


def _render(template: Template, values: Mapping[str, str], members: Sequence[str] = ()) -> list[str]:
    rendered: list[str] = []
    for part in template:
        if part == "{members}":
            rendered.extend(members)
        else:
            rendered.append(part.format_map(values))
    return rendered


class ArchiveTools:
    """Format-polymorphic archive operations run through external tools."""

    def __init__(
        self,
        tools: ToolSet,
        *,
        observer: CommandObserver | None = None,
    ) -> None:
        """Bind the operations to ``tools``.

        Args:
            tools: Executables substituted into the command templates.
            observer: Optional callback told about every command before it
                runs, together with its working directory.
        """

        self._tools = tools
        self._observer = observer

    @property
    def tools(self) -> ToolSet:
        """Return the executables in use."""

        return self._tools

    def _run(
        self,
        template: Template,
        *,
        cwd: Path | None = None,
        stdout_path: Path | None = None,
        members: Sequence[str] = (),
        **values: str,
    ) -> None:
        command = _render(template, {**self._tools.as_mapping(), **values}, members)
        if self._observer is not None:
            self._observer(command, cwd)
        LOGGER.debug("running %s (cwd=%s)", command, cwd)
        try:
            run_command(command, options=CommandOptions(cwd=cwd, stdout_path=stdout_path))
        except SubprocessExecutionError as exc:
            raise ArchiveError(_COMMAND_FAILED, command=command, output=exc.output) from exc
        except OSError as exc:
            raise ArchiveError(f"{_COMMAND_FAILED} {exc}", command=command, output=None) from exc

    @staticmethod
    def _spec(archive_format: ArchiveFormat) -> FormatSpec:
        spec = FORMAT_TABLE[archive_format]
        if spec.family == "none":
            raise ArchiveError(_UNSUPPORTED)
        return spec

    def create_tar(self, tar_file: Path, members: Sequence[str], *, cwd: Path) -> None:
        """Create ``tar_file`` from ``members`` relative to ``cwd``; no members makes an empty tar."""

        tar_file.unlink(missing_ok=True)
        template = _TAR_CREATE if members else _TAR_CREATE_EMPTY
        self._run(template, cwd=cwd, members=members, archive=str(tar_file))

    def append_tar(self, tar_file: Path, members: Sequence[str], *, cwd: Path) -> None:
        """Append ``members`` (relative to ``cwd``) to an existing ``tar_file``."""

        self._run(_TAR_APPEND, cwd=cwd, members=members, archive=str(tar_file))

    def compress(self, to_be_compressed: Path, archive_format: ArchiveFormat, out_file: Path) -> None:
        """Compress ``to_be_compressed`` with the compressor of a tar format and delete the input.

        Raises:
            ArchiveError: If the format is not a tar format or the tool fails.
        """

        spec = self._spec(archive_format)
        if spec.family != "tar":
            raise ArchiveError(_UNSUPPORTED)
        out_file.unlink(missing_ok=True)
        if spec.compress is None:
            to_be_compressed.replace(out_file)
            return
        self._run(spec.compress, stdout_path=out_file, input=str(to_be_compressed))
        to_be_compressed.unlink()

    def create(
        self,
        archive_format: ArchiveFormat,
        members: Sequence[str],
        dest_archive: Path,
        *,
        cwd: Path,
    ) -> None:
        """Create ``dest_archive`` holding ``members`` relative to ``cwd``.

        Raises:
            ArchiveError: If the format cannot be created or a tool fails.
        """

        spec = self._spec(archive_format)
        dest_archive.unlink(missing_ok=True)
        if spec.family == "zip" and spec.create is not None:
            self._run(spec.create, cwd=cwd, members=members, archive=str(dest_archive))
            return
        if spec.family != "tar":
            raise ArchiveError(_UNSUPPORTED)
        stem = dest_archive.name[: -len(spec.extension)] if spec.extension else dest_archive.name
        tar_file = dest_archive.with_name(f"{stem}{ArchiveFormat.TAR.extension}")
        if tar_file == dest_archive:
            self.create_tar(dest_archive, members, cwd=cwd)
            return
        with scoped_path(tar_file):
            self.create_tar(tar_file, members, cwd=cwd)
            self.compress(tar_file, archive_format, dest_archive)

    def _with_tar_stream(self, archive_file: Path, spec: FormatSpec, action: Callable[[Path], None]) -> None:
        if spec.decompress is None:
            action(archive_file)
            return
        with scoped_temp_file(suffix=ArchiveFormat.TAR.extension) as tar_file:
            self._run(spec.decompress, stdout_path=tar_file, archive=str(archive_file))
            action(tar_file)

    def extract(self, archive_file: Path, archive_format: ArchiveFormat, out_dir: Path) -> None:
        """Extract every member of ``archive_file`` into ``out_dir``."""

        spec = self._spec(archive_format)
        archive_file = archive_file.resolve()
        out_dir.mkdir(parents=True, exist_ok=True)
        if spec.family == "tar":
            self._with_tar_stream(
                archive_file,
                spec,
                lambda tar_file: self._run(_TAR_EXTRACT, cwd=out_dir, archive=str(tar_file)),
            )
            return
        if spec.extract is None:
            raise ArchiveError(_UNSUPPORTED)
        self._run(spec.extract, cwd=out_dir, archive=str(archive_file))

    def extract_single_file(
        self,
        archive_file: Path,
        archive_format: ArchiveFormat,
        member: str,
        out_file: Path,
    ) -> None:
        """Stream the single ``member`` of ``archive_file`` into ``out_file``."""

        spec = self._spec(archive_format)
        if spec.family == "tar":
            self._with_tar_stream(
                archive_file,
                spec,
                lambda tar_file: self._run(
                    _TAR_EXTRACT_MEMBER,
                    stdout_path=out_file,
                    archive=str(tar_file),
                    member=member,
                ),
            )
            return
        if spec.extract_member is None:
            raise ArchiveError(_UNSUPPORTED)
        self._run(spec.extract_member, stdout_path=out_file, archive=str(archive_file), member=member)


__all__ = [
    "DEFAULT_ARCHIVE_FORMAT",
    "FORMAT_TABLE",
    "ArchiveFormat",
    "ArchiveTools",
    "CommandObserver",
    "FormatSpec",
    "ToolSet",
    "database_format",
    "find_existing_archive",
    "find_xz",
    "parse_series",
]
