# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Custom exceptions raised by texpack operations."""

from __future__ import annotations

from collections.abc import Sequence


class TexpackError(RuntimeError):
    """Base class for every failure that should abort a texpack run."""


class FatalError(TexpackError):
    """Raised for unrecoverable conditions detected by the orchestrator."""


class ConfigError(TexpackError):
    """Raised when configuration input is invalid."""


class PackageListError(TexpackError):
    """Raised when a package selection list cannot be parsed."""


class StagingError(TexpackError):
    """Raised when a staging directory is incomplete or inconsistent."""


class ManifestError(TexpackError):
    """Raised when a package or repository manifest cannot be read."""


class ArchiveError(TexpackError):
    """Raised when an external archiver or compressor fails."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] | None = None,
        output: str | None = None,
    ) -> None:
        """Initialise the error with the failing command and its captured output.

        Args:
            message: Human-readable error message shown to the user.
            command: Command line that failed, when one was executed.
            output: Combined stdout/stderr captured from the tool.
        """

        super().__init__(message)
        self.command = tuple(command) if command is not None else None
        self.output = output


__all__ = (
    "ArchiveError",
    "ConfigError",
    "FatalError",
    "ManifestError",
    "PackageListError",
    "StagingError",
    "TexpackError",
)
