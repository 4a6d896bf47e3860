# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Helpers building staging directories and guarding tool-backed tests."""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Mapping
from pathlib import Path

import pytest

HAVE_TAR_AND_XZ = shutil.which("tar") is not None and shutil.which("xz") is not None

requires_tar_and_xz = pytest.mark.skipif(not HAVE_TAR_AND_XZ, reason="tar and xz are required")

START_TIME = 1_700_000_000


def write_staging_dir(
    root: Path,
    package_id: str,
    files: Mapping[str, str],
    *,
    name: str | None = None,
    requires: Iterable[str] = (),
    ctan_path: str = "",
    version: str = "",
    md5: str | None = None,
    description: str = "",
) -> Path:
    """Create ``<root>/<package_id>`` as a staging directory holding ``files``."""

    staging_dir = root / package_id
    staging_dir.mkdir(parents=True, exist_ok=True)
    lines = [f"id={package_id}", f"name={name or package_id}"]
    if ctan_path:
        lines.append(f"ctan_path={ctan_path}")
    if version:
        lines.append(f"version={version}")
    if md5 is not None:
        lines.append(f"md5={md5}")
    lines.extend(f"requires;={required}" for required in requires)
    (staging_dir / "package.ini").write_text("\n".join(lines) + "\n", encoding="utf-8")
    for rel_path, content in files.items():
        target = staging_dir / "Files" / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    if description:
        (staging_dir / "Description").write_text(description, encoding="utf-8")
    return staging_dir
