# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Group orphan packages under umbrella container packages."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, MutableMapping
from pathlib import PurePosixPath

from .constants import (
    FONTS_CONTAINER_ID,
    FONTS_CTAN_PREFIX,
    LATEX_CONTAINER_ID,
    LATEX_CTAN_PREFIX,
    OUTLINE_FONT_DIRS,
)
from .models import PackageInfo
from .paths import is_parent_directory_of

LOGGER = logging.getLogger(__name__)


def link_dependencies(table: MutableMapping[str, PackageInfo], warn: Callable[[str], None]) -> None:
    """Fill ``required_by`` from every package's ``required_packages``.

    Requirements naming unknown packages are reported through ``warn``.
    """

    for package in table.values():
        for required in package.required_packages:
            target = table.get(required)
            if target is None:
                warn(f"dependency problem: {required} is required by {package.id}")
            else:
                target.required_by.append(package.id)


def _has_outline_fonts(package: PackageInfo, texmf_prefix: str) -> bool:
    font_dirs = [str(PurePosixPath(texmf_prefix) / directory) for directory in OUTLINE_FONT_DIRS]
    return any(
        is_parent_directory_of(font_dir, name) for name in package.run_files for font_dir in font_dirs
    )


def _requires(table: Mapping[str, PackageInfo], package: PackageInfo, target_id: str) -> bool:
    """Return ``True`` when ``target_id`` is reachable from ``package`` through requirements."""

    pending = list(package.required_packages)
    seen: set[str] = set()
    while pending:
        package_id = pending.pop()
        if package_id == target_id:
            return True
        if package_id in seen:
            continue
        seen.add(package_id)
        required = table.get(package_id)
        if required is not None:
            pending.extend(required.required_packages)
    return False


def _link(container: PackageInfo, package: PackageInfo) -> None:
    package.required_by.append(container.id)
    container.required_packages.append(package.id)
    LOGGER.debug("grouped %s under %s", package.id, container.id)


def auto_categorize(
    table: MutableMapping[str, PackageInfo],
    *,
    texmf_prefix: str,
    warn: Callable[[str], None],
) -> None:
    """Attach packages nobody depends on to the LaTeX or outline-font container.

    Only packages whose ``required_by`` is empty are considered. A container is
    never linked to itself or to a package that already requires it, directly
    or transitively, and a missing container is never referenced.
    """

    link_dependencies(table, warn)
    latex = table.get(LATEX_CONTAINER_ID)
    outline_fonts = table.get(FONTS_CONTAINER_ID)
    for package in table.values():
        if package.required_by:
            continue
        if latex is not None and package.ctan_path.startswith(LATEX_CTAN_PREFIX):
            if package is not latex and not _requires(table, package, latex.id):
                _link(latex, package)
        elif (
            outline_fonts is not None
            and package is not outline_fonts
            and package.ctan_path.startswith(FONTS_CTAN_PREFIX)
            and _has_outline_fonts(package, texmf_prefix)
            and not _requires(table, package, outline_fonts.id)
        ):
            _link(outline_fonts, package)


__all__ = ["auto_categorize", "link_dependencies"]
