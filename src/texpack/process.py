# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Safe wrappers around ``subprocess`` execution for external archivers."""

from __future__ import annotations

import shutil

# Bandit: subprocess usage is intentional; we provide a controlled wrapper around
# external tool execution, normalising arguments and disabling ``shell=True``.
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from pathlib import Path
from subprocess import CompletedProcess
from typing import Final, Literal

CommandOptionKey = Literal["cwd", "env", "check", "capture_output", "stdout_path"]

_COMMAND_KEYS: Final[frozenset[str]] = frozenset(
    {"cwd", "env", "check", "capture_output", "stdout_path"},
)


@dataclass(slots=True, frozen=True)
class CommandOptions:
    """Immutable command execution options.

    ``stdout_path`` redirects the child's standard output into a file, which is
    how decompressors streaming to ``--stdout`` are wired up without a shell.
    When output is captured, stderr is folded into the captured text so callers
    receive the combined tool output.
    """

    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    check: bool = True
    capture_output: bool = True
    stdout_path: Path | None = None

    def with_overrides(self, overrides: Mapping[str, object]) -> CommandOptions:
        """Return a new options instance with ``overrides`` applied.

        Args:
            overrides: Mapping of option names to replacement values.

        Returns:
            CommandOptions: Updated options instance.

        Raises:
            TypeError: If ``overrides`` includes an unknown option name.
        """

        unknown = [key for key in overrides if key not in _COMMAND_KEYS]
        if unknown:
            message = ", ".join(sorted(unknown))
            raise TypeError(f"Unknown command option(s): {message}")
        return replace(self, **overrides)  # type: ignore[arg-type]


class SubprocessExecutionError(RuntimeError):
    """Raised when a subprocess exits with a non-zero status while ``check`` is true."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        output: str | None,
    ) -> None:
        """Initialise the error with captured subprocess metadata.

        Args:
            command: Normalised command sequence that was executed.
            returncode: Exit status reported by the subprocess.
            output: Combined captured output stream.
        """
        super().__init__(
            f"Command '{command[0]}' exited with status {returncode}. output: {output or '<none>'}",
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output


def _ensure_text(value: str | bytes | None) -> str | None:
    """Return ``value`` decoded to text when supplied as ``bytes``."""

    if value is None or isinstance(value, str):
        return value
    return value.decode(errors="ignore")


def _normalize_args(args: Sequence[str], env: Mapping[str, str] | None) -> list[str]:
    """Normalise the subprocess argument sequence.

    Args:
        args: Raw command arguments supplied by the caller.
        env: Environment whose ``PATH`` is searched for the executable.

    Returns:
        list[str]: Validated argument list suitable for subprocess execution.

    Raises:
        ValueError: If no arguments are provided.
        FileNotFoundError: If the executable cannot be resolved on ``PATH``.
    """

    if not args:
        msg = "subprocess command requires at least one argument"
        raise ValueError(msg)

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]

    search_path = env.get("PATH") if env is not None else None
    resolved = shutil.which(head, path=search_path)
    if resolved is None:
        msg = f"Executable '{head}' was not found on PATH"
        raise FileNotFoundError(msg)
    return [resolved, *rest]


def run_command(
    args: Sequence[str],
    *,
    options: CommandOptions | None = None,
    overrides: Mapping[str, object] | None = None,
) -> CompletedProcess[str]:
    """Execute ``args`` after normalising the executable path.

    Args:
        args: Command and argument sequence to execute.
        options: Base options configuring execution semantics.
        overrides: Keyword overrides applied to a cloned ``options`` instance.

    Returns:
        CompletedProcess: Subprocess execution metadata; ``stdout`` holds the
        combined output when captured.

    Raises:
        FileNotFoundError: If the executable cannot be resolved on ``PATH``.
        SubprocessExecutionError: When ``check`` is true and the process exits
            with a non-zero status.
    """

    resolved_options = (options or CommandOptions()).with_overrides(dict(overrides or {}))
    normalized = _normalize_args(args, resolved_options.env)

    stderr_target = subprocess.STDOUT if resolved_options.capture_output else None
    stdout_target: int | None = subprocess.PIPE if resolved_options.capture_output else None
    if resolved_options.stdout_path is not None:
        stderr_target = subprocess.PIPE if resolved_options.capture_output else None

    def _spawn(stdout: object) -> CompletedProcess[bytes]:
        # Bandit: commands are assembled from a fixed format table; arguments
        # are passed as a list without shell expansion.
        return subprocess.run(  # nosec B603
            normalized,
            cwd=str(resolved_options.cwd) if resolved_options.cwd is not None else None,
            env=dict(resolved_options.env) if resolved_options.env is not None else None,
            check=False,
            stdout=stdout,
            stderr=stderr_target,
            stdin=subprocess.DEVNULL,
        )

    if resolved_options.stdout_path is not None:
        with resolved_options.stdout_path.open("wb") as handle:
            raw = _spawn(handle)
        output = _ensure_text(raw.stderr)
    else:
        raw = _spawn(stdout_target)
        output = _ensure_text(raw.stdout)

    completed: CompletedProcess[str] = CompletedProcess(
        args=normalized,
        returncode=raw.returncode,
        stdout=output or "",
        stderr=None,
    )

    if resolved_options.check and completed.returncode != 0:
        raise SubprocessExecutionError(normalized, completed.returncode, output)

    return completed


__all__ = [
    "CommandOptionKey",
    "CommandOptions",
    "SubprocessExecutionError",
    "run_command",
]
