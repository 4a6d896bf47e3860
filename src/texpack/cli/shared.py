# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared utilities for CLI commands (options, configuration, errors)."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer

from ..config import BuilderConfig
from ..config_loader import load_config
from ..context import RunContext, build_context
from ..errors import ArchiveError, TexpackError
from ..logging import Reporter, build_reporter
from ..models import Level

PACKAGE_LOGGER = logging.getLogger("texpack")


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


CONFIG_OPTION = Annotated[
    Path | None,
    typer.Option("--config", help="TOML configuration file layered over texpack.toml."),
]
VERBOSE_OPTION = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Print progress messages and executed commands."),
]
NO_COLOR_OPTION = Annotated[
    bool,
    typer.Option("--no-color", help="Disable coloured diagnostics."),
]
SERIES_OPTION = Annotated[
    str | None,
    typer.Option("--series", help="Repository series, for example 2.9."),
]
TEXMF_PREFIX_OPTION = Annotated[
    str | None,
    typer.Option("--texmf-prefix", help="TEXMF prefix inside packages (default: texmf)."),
]
DEFAULT_LEVEL_OPTION = Annotated[
    Level | None,
    typer.Option("--default-level", help="Level of packages missing from the package list."),
]
PACKAGE_LIST_OPTION = Annotated[
    Path | None,
    typer.Option("--package-list", help="Package list selecting levels and archive formats."),
]
PRIVATE_KEY_OPTION = Annotated[
    Path | None,
    typer.Option("--private-key-file", help="PEM private key used to sign INI files."),
]
PASSPHRASE_OPTION = Annotated[
    Path | None,
    typer.Option("--passphrase-file", help="File holding the private key passphrase."),
]
TIME_PACKAGED_OPTION = Annotated[
    int | None,
    typer.Option("--time-packaged", help="Packaging time (seconds since the epoch) for rebuilt packages."),
]
RELEASE_STATE_OPTION = Annotated[
    str | None,
    typer.Option("--release-state", help="Release state recorded in pr.ini: stable or next."),
]


def split_path_list(values: Sequence[str] | None) -> list[Path]:
    """Return paths from repeated options, each of which may hold a path list.

    Args:
        values: Raw option values; entries are split on ``os.pathsep``.

    Returns:
        list[Path]: Non-empty paths in order.
    """

    paths: list[Path] = []
    for value in values or ():
        paths.extend(Path(entry) for entry in value.split(os.pathsep) if entry.strip())
    return paths


@dataclass(slots=True)
class CommonOptions:
    """Options accepted by every command that runs the package creator."""

    config_file: Path | None = None
    verbose: bool = False
    no_color: bool = False
    series: str | None = None
    texmf_prefix: str | None = None
    default_level: Level | None = None
    package_list: Path | None = None
    private_key_file: Path | None = None
    passphrase_file: Path | None = None
    time_packaged: int | None = None
    release_state: str | None = None

    def overrides(self) -> dict[str, Any]:
        """Return configuration overrides; unset options are ``None``."""

        return {
            "verbose": True if self.verbose else None,
            "series": self.series,
            "texmf_prefix": self.texmf_prefix,
            "default_level": self.default_level,
            "package_list": self.package_list,
            "time_packaged": self.time_packaged,
            "release_state": self.release_state,
            "signing": {
                "private_key_file": self.private_key_file,
                "passphrase_file": self.passphrase_file,
            },
        }


def configure_logging(verbose: bool) -> None:
    """Stream texpack debug records to stderr when ``verbose`` is set."""

    if not verbose or getattr(PACKAGE_LOGGER, "_texpack_verbose_configured", False):
        return
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    PACKAGE_LOGGER.addHandler(handler)
    PACKAGE_LOGGER.setLevel(logging.DEBUG)
    setattr(PACKAGE_LOGGER, "_texpack_verbose_configured", True)


def load_run_config(options: CommonOptions, *, project_root: Path | None = None) -> BuilderConfig:
    """Return the effective configuration for ``options``."""

    return load_config(
        project_root if project_root is not None else Path.cwd(),
        config_file=options.config_file,
        overrides=options.overrides(),
    )


@contextmanager
def report_errors(reporter: Reporter) -> Iterator[None]:
    """Translate texpack failures into ``texpack: <message>`` and exit status 1.

    Raises:
        typer.Exit: When the wrapped block fails.
    """

    try:
        yield
    except CLIError as exc:
        reporter.fail(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc
    except ArchiveError as exc:
        reporter.fail(str(exc))
        if exc.command:
            reporter.info(f"command: {' '.join(exc.command)}")
        if exc.output:
            reporter.info(exc.output.rstrip())
        raise typer.Exit(code=1) from exc
    except (TexpackError, OSError) as exc:
        reporter.fail(str(exc))
        raise typer.Exit(code=1) from exc


@contextmanager
def command_context(options: CommonOptions, *, resolve_xz: bool = True) -> Iterator[RunContext]:
    """Yield a run context for ``options`` with failures reported uniformly.

    Args:
        options: Parsed common options.
        resolve_xz: Whether ``xz`` must be available on ``PATH``.
    """

    reporter = build_reporter(verbose=options.verbose, no_color=options.no_color)
    configure_logging(options.verbose)
    with report_errors(reporter):
        config = load_run_config(options)
        reporter.verbose_enabled = config.verbose
        yield build_context(config, reporter, resolve_xz=resolve_xz)
        if reporter.warnings:
            reporter.verbose(f"{len(reporter.warnings)} warning(s)")


def require(value: Any, message: str) -> Any:
    """Return ``value`` or raise :class:`CLIError` with ``message`` when it is unset."""

    if value is None or (isinstance(value, (list, tuple)) and not value):
        raise CLIError(message)
    return value


__all__ = [
    "CLIError",
    "CONFIG_OPTION",
    "CommonOptions",
    "DEFAULT_LEVEL_OPTION",
    "NO_COLOR_OPTION",
    "PACKAGE_LIST_OPTION",
    "PASSPHRASE_OPTION",
    "PRIVATE_KEY_OPTION",
    "RELEASE_STATE_OPTION",
    "SERIES_OPTION",
    "TEXMF_PREFIX_OPTION",
    "TIME_PACKAGED_OPTION",
    "VERBOSE_OPTION",
    "command_context",
    "configure_logging",
    "load_run_config",
    "report_errors",
    "require",
    "split_path_list",
]
