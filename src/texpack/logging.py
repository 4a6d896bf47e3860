# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""User-facing logging helpers with optional colour support."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field

from rich.console import Console
from rich.text import Text

from .constants import PROGRAM_NAME


def detect_tty() -> bool:
    """Return ``True`` when stderr appears to be backed by a terminal."""

    try:
        return sys.stderr.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass(slots=True)
class Reporter:
    """Adapter around a Rich console rendering ``texpack: ...`` diagnostics.

    Fatal errors and warnings always reach stderr; verbose progress lines are
    only printed when ``verbose_enabled`` is set.
    """

    console: Console
    program: str = PROGRAM_NAME
    verbose_enabled: bool = False
    warnings: list[str] = field(default_factory=list)
    _key_value_re: re.Pattern[str] = re.compile(r"('[^']*')")

    def fail(self, message: str) -> None:
        """Report an unrecoverable error.

        Args:
            message: Text describing the failure state.
        """

        text = Text(f"{self.program}: ", style="bold red")
        text.append(message)
        self.console.print(text)

    def warn(self, message: str) -> None:
        """Report a recoverable condition and remember it for the run summary.

        Args:
            message: Text describing the warning condition.
        """

        self.warnings.append(message)
        text = Text(f"{self.program}: warning: ", style="bold yellow")
        text.append(message)
        self.console.print(text)

    def info(self, message: str) -> None:
        """Print an informational line unconditionally."""

        self.console.print(Text(message))

    def verbose(self, message: str) -> None:
        """Print a progress line when verbose mode is enabled.

        Quoted identifiers inside ``message`` are highlighted.

        Args:
            message: Progress text.
        """

        if not self.verbose_enabled:
            return
        text = Text()
        cursor = 0
        for match in self._key_value_re.finditer(message):
            start, end = match.span()
            if start > cursor:
                text.append(message[cursor:start])
            text.append(match.group(1), style="bold cyan")
            cursor = end
        if cursor < len(message):
            text.append(message[cursor:])
        self.console.print(text)


def build_reporter(*, verbose: bool = False, no_color: bool = False) -> Reporter:
    """Return a ``Reporter`` bound to a dedicated stderr Rich console.

    Args:
        verbose: Whether progress messages should be shown.
        no_color: Whether terminal colour output should be disabled.

    Returns:
        Reporter: Reporter writing to stderr.
    """

    console = Console(stderr=True, no_color=no_color or not detect_tty(), highlight=False, soft_wrap=True)
    return Reporter(console=console, verbose_enabled=verbose)


__all__ = ["Reporter", "build_reporter", "detect_tty"]
