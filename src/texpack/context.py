# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Per-run context shared by every texpack component."""

from __future__ import annotations

import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .archive import ArchiveTools, CommandObserver, ToolSet, find_xz
from .config import BuilderConfig
from .digest import HashFactory, md5_factory
from .logging import Reporter
from .models import Level, PackageInfo, PackageSpec
from .package_list import read_package_list
from .signing import PrivateKeyProvider, Signer, build_signer


@dataclass(slots=True)
class RunContext:
    """Everything a run needs, created once and passed down explicitly."""

    config: BuilderConfig
    reporter: Reporter
    archive_tools: ArchiveTools
    start_time: int
    signer: Signer | None = None
    package_specs: dict[str, PackageSpec] = field(default_factory=dict)
    hash_factory: HashFactory = md5_factory

    @property
    def texmf_prefix(self) -> str:
        return self.config.texmf_prefix

    def get_level(self, package: PackageInfo) -> Level:
        """Return the listed level of ``package`` or the configured default."""

        spec = self.package_specs.get(package.id)
        return spec.level if spec is not None else self.config.default_level

    def is_ignored(self, package: PackageInfo) -> bool:
        return self.get_level(package) is Level.EXCLUDED

    def warn(self, message: str) -> None:
        self.reporter.warn(message)

    def verbose(self, message: str) -> None:
        self.reporter.verbose(message)


def _command_observer(reporter: Reporter) -> CommandObserver:
    def observe(command: Sequence[str], cwd: Path | None) -> None:
        reporter.verbose(f"working directory: {cwd if cwd is not None else Path.cwd()}")
        reporter.verbose(f"running: {' '.join(command)}")

    return observe


def build_context(
    config: BuilderConfig,
    reporter: Reporter,
    *,
    env: Mapping[str, str] | None = None,
    resolve_xz: bool = True,
    now: int | None = None,
) -> RunContext:
    """Create the run context for ``config``.

    The start time is the configured packaging time when one is set, the
    current time otherwise.

    Args:
        config: Effective configuration.
        reporter: Reporter receiving warnings and progress.
        env: Environment used for tool discovery; defaults to ``os.environ``.
        resolve_xz: Whether ``xz`` must be located on ``PATH`` up front.
        now: Current time override.

    Raises:
        FatalError: If ``xz`` is required but cannot be found.
        PackageListError: If the configured package list is invalid.
        OSError: If the package list or passphrase file cannot be read.
    """

    environment = env if env is not None else os.environ
    tools_config = config.tools
    xz = find_xz(environment, tools_config.xz) if resolve_xz else tools_config.xz
    tools = ToolSet(
        tar=tools_config.tar,
        xz=xz,
        bzip2=tools_config.bzip2,
        cabextract=tools_config.cabextract,
        zip=tools_config.zip,
        unzip=tools_config.unzip,
    )

    signing = config.signing
    provider = PrivateKeyProvider(
        private_key_file=signing.private_key_file,
        passphrase=signing.passphrase_file.read_bytes() if signing.passphrase_file is not None else b"",
    )

    specs: dict[str, PackageSpec] = {}
    if config.package_list is not None:
        read_package_list(config.package_list, specs, reporter.warn)

    start_time = config.time_packaged
    if start_time is None:
        start_time = now if now is not None else int(time.time())

    return RunContext(
        config=config,
        reporter=reporter,
        archive_tools=ArchiveTools(tools, observer=_command_observer(reporter)),
        start_time=start_time,
        signer=build_signer(provider, openssl=tools_config.openssl),
        package_specs=specs,
    )


__all__ = ["RunContext", "build_context"]
