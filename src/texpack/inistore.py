# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Line-oriented INI store used for package, repository and manifest metadata.

The dialect understood here is the one found in ``package.ini``, ``mpm.ini``,
``package-manifests.ini`` and ``pr.ini``:

* ``[section]`` headers; values before the first header belong to the
  default section (named ``""``) which is written without a header;
* ``key=value`` assignments;
* ``key;=value`` and ``key[]=value`` append ``value`` to a list;
* lines starting with ``;`` or ``#`` are comments (signatures included).

Section and value names are matched case-insensitively and keep the spelling
of their first appearance. Output is sorted case-insensitively so that the
same content always serialises to the same bytes.
"""

from __future__ import annotations

import base64
import logging
import textwrap
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .errors import ManifestError
from .signing import Signer

LOGGER = logging.getLogger(__name__)

DEFAULT_SECTION: Final[str] = ""
SIGNATURE_BEGIN: Final[str] = ";;SIGNATURE-BEGIN"
SIGNATURE_END: Final[str] = ";;SIGNATURE-END"

_LIST_MARKERS: Final[tuple[str, ...]] = ("[]", ";")
_COMMENT_PREFIXES: Final[tuple[str, ...]] = (";", "#")
_SIGNATURE_WIDTH: Final[int] = 64

Value = str | list[str]


@dataclass(slots=True)
class _Section:
    name: str
    values: dict[str, tuple[str, Value]] = field(default_factory=dict)


def _key(name: str) -> str:
    return name.casefold()


class IniStore:
    """In-memory INI document with deterministic serialisation."""

    def __init__(self) -> None:
        self._sections: dict[str, _Section] = {}

    @classmethod
    def read(cls, path: Path) -> IniStore:
        """Parse ``path`` into a new store.

        Raises:
            ManifestError: If a non-comment line is neither a header nor an
                assignment.
            OSError: If the file cannot be read.
        """

        store = cls()
        store.parse(path.read_text(encoding="utf-8"), source=str(path))
        return store

    def parse(self, text: str, *, source: str = "<string>") -> None:
        """Merge the assignments found in ``text`` into this store."""

        section = DEFAULT_SECTION
        for number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith(_COMMENT_PREFIXES):
                continue
            if line.startswith("[") and line.endswith("]"):
                section = line[1:-1].strip()
                self._ensure_section(section)
                continue
            name, sep, value = raw_line.lstrip().partition("=")
            if not sep:
                raise ManifestError(f"{source}:{number}: invalid line.")
            name = name.strip()
            for marker in _LIST_MARKERS:
                if name.endswith(marker):
                    self.append(section, name[: -len(marker)].strip(), value)
                    break
            else:
                self.put(section, name, value)

    def _section(self, name: str) -> _Section | None:
        return self._sections.get(_key(name))

    def _ensure_section(self, name: str) -> _Section:
        return self._sections.setdefault(_key(name), _Section(name))

    def sections(self) -> list[str]:
        """Return the names of all named sections in collated order."""

        return [
            self._sections[key].name for key in sorted(self._sections) if key != DEFAULT_SECTION
        ]

    def has_section(self, section: str) -> bool:
        return _key(section) in self._sections

    def get(self, section: str, name: str) -> str | None:
        """Return a value, joining list values with ``;``; ``None`` when absent."""

        entry = self._section(section)
        if entry is None or _key(name) not in entry.values:
            return None
        value = entry.values[_key(name)][1]
        return ";".join(value) if isinstance(value, list) else value

    def get_list(self, section: str, name: str) -> list[str]:
        """Return a value as a list; a scalar becomes a one-element list."""

        entry = self._section(section)
        if entry is None or _key(name) not in entry.values:
            return []
        value = entry.values[_key(name)][1]
        return list(value) if isinstance(value, list) else [value]

    def put(self, section: str, name: str, value: str) -> None:
        entry = self._ensure_section(section)
        existing = entry.values.get(_key(name))
        entry.values[_key(name)] = (existing[0] if existing else name, value)

    def put_list(self, section: str, name: str, values: list[str]) -> None:
        entry = self._ensure_section(section)
        existing = entry.values.get(_key(name))
        entry.values[_key(name)] = (existing[0] if existing else name, list(values))

    def append(self, section: str, name: str, value: str) -> None:
        """Append ``value`` to the list stored under ``name``."""

        entry = self._ensure_section(section)
        existing = entry.values.get(_key(name))
        if existing is None:
            entry.values[_key(name)] = (name, [value])
            return
        current = existing[1]
        items = current if isinstance(current, list) else [current]
        entry.values[_key(name)] = (existing[0], [*items, value])

    def delete(self, section: str, name: str) -> bool:
        """Remove one value; return ``True`` when something was removed."""

        entry = self._section(section)
        if entry is None:
            return False
        return entry.values.pop(_key(name), None) is not None

    def delete_section(self, section: str) -> bool:
        return self._sections.pop(_key(section), None) is not None

    def __len__(self) -> int:
        return len(self.sections())

    def __iter__(self) -> Iterator[str]:
        return iter(self.sections())

    def __contains__(self, section: object) -> bool:
        return isinstance(section, str) and section != DEFAULT_SECTION and self.has_section(section)

    def _render_section(self, entry: _Section) -> list[str]:
        lines: list[str] = []
        for key in sorted(entry.values):
            name, value = entry.values[key]
            if isinstance(value, list):
                lines.extend(f"{name}[]={item}" for item in value)
            else:
                lines.append(f"{name}={value}")
        return lines

    def render(self) -> str:
        """Return the serialised document."""

        lines: list[str] = []
        default = self._section(DEFAULT_SECTION)
        if default is not None and default.values:
            lines.extend(self._render_section(default))
            lines.append("")
        for key in sorted(self._sections):
            if key == DEFAULT_SECTION:
                continue
            entry = self._sections[key]
            lines.append(f"[{entry.name}]")
            lines.extend(self._render_section(entry))
            lines.append("")
        return "\n".join(lines) + ("\n" if lines else "")

    def write(self, path: Path, signer: Signer | None = None) -> None:
        """Write the document to ``path``, appending a signature when ``signer`` is set."""

        text = self.render()
        if signer is not None:
            text += signature_block(signer.sign(text.encode("utf-8")))
        LOGGER.debug("writing %s (signed=%s)", path, signer is not None)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)


def signature_block(signature: bytes) -> str:
    """Return ``signature`` as base64 comment lines framed by begin/end markers."""

    encoded = base64.b64encode(signature).decode("ascii")
    body = [f";{chunk}" for chunk in textwrap.wrap(encoded, _SIGNATURE_WIDTH)]
    return "\n".join([SIGNATURE_BEGIN, *body, SIGNATURE_END]) + "\n"


__all__ = [
    "DEFAULT_SECTION",
    "SIGNATURE_BEGIN",
    "SIGNATURE_END",
    "IniStore",
    "signature_block",
]
