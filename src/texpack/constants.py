# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared constants used across texpack modules."""

from __future__ import annotations

from typing import Final

PROGRAM_NAME: Final[str] = "texpack"

DEFAULT_TEXMF_PREFIX: Final[str] = "texmf"
DEFAULT_SERIES: Final[str] = "2.9"
DEFAULT_DB_PREFIX: Final[str] = "miktex-zzdb"

# staging directory layout
PACKAGE_INI: Final[str] = "package.ini"
MD5SUMS_TXT: Final[str] = "md5sums.txt"
DESCRIPTION_FILE: Final[str] = "Description"
FILES_DIR: Final[str] = "Files"

# repository layout
MPM_INI: Final[str] = "mpm.ini"
MPM_INI_CONFIG_PATH: Final[str] = "config/mpm.ini"
PACKAGE_MANIFESTS_INI: Final[str] = "package-manifests.ini"
REPOSITORY_INFO_INI: Final[str] = "pr.ini"
FILES_CSV: Final[str] = "files.csv"
LZMA_SUFFIX: Final[str] = ".lzma"

PACKAGE_MANIFEST_DIR: Final[str] = "tpm/packages"
PACKAGE_MANIFEST_SUFFIX: Final[str] = ".tpm"

# database archive series ids
REPOSITORY_MANIFEST_DB_ID: Final[int] = 1
TPM_ARCHIVE_DB_ID: Final[int] = 2
PACKAGE_MANIFESTS_DB_ID: Final[int] = 3

# pr.ini
REPOSITORY_SECTION: Final[str] = "repository"
VERSION_EPOCH: Final[int] = 946681200
SECONDS_PER_DAY: Final[int] = 60 * 60 * 24
LAST_UPDATED_COUNT: Final[int] = 20

# auto-categorization
LATEX_CONTAINER_ID: Final[str] = "_miktex-latex-packages"
LATEX_CTAN_PREFIX: Final[str] = "/macros/latex/contrib/"
FONTS_CONTAINER_ID: Final[str] = "_miktex-fonts-type1"
FONTS_CTAN_PREFIX: Final[str] = "/fonts/"
OUTLINE_FONT_DIRS: Final[tuple[str, ...]] = ("fonts/type1", "fonts/truetype")

COPY_CHUNK_SIZE: Final[int] = 4096

__all__ = [
    "COPY_CHUNK_SIZE",
    "DEFAULT_DB_PREFIX",
    "DEFAULT_SERIES",
    "DEFAULT_TEXMF_PREFIX",
    "DESCRIPTION_FILE",
    "FILES_CSV",
    "FILES_DIR",
    "FONTS_CONTAINER_ID",
    "FONTS_CTAN_PREFIX",
    "LAST_UPDATED_COUNT",
    "LATEX_CONTAINER_ID",
    "LATEX_CTAN_PREFIX",
    "LZMA_SUFFIX",
    "MD5SUMS_TXT",
    "MPM_INI",
    "MPM_INI_CONFIG_PATH",
    "OUTLINE_FONT_DIRS",
    "PACKAGE_INI",
    "PACKAGE_MANIFESTS_DB_ID",
    "PACKAGE_MANIFESTS_INI",
    "PACKAGE_MANIFEST_DIR",
    "PACKAGE_MANIFEST_SUFFIX",
    "PROGRAM_NAME",
    "REPOSITORY_INFO_INI",
    "REPOSITORY_MANIFEST_DB_ID",
    "REPOSITORY_SECTION",
    "SECONDS_PER_DAY",
    "TPM_ARCHIVE_DB_ID",
    "VERSION_EPOCH",
]
