# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring the texpack commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .. import __version__
from ..builder import PackageCreator
from ..constants import PROGRAM_NAME
from .shared import (
    CONFIG_OPTION,
    DEFAULT_LEVEL_OPTION,
    NO_COLOR_OPTION,
    PACKAGE_LIST_OPTION,
    PASSPHRASE_OPTION,
    PRIVATE_KEY_OPTION,
    RELEASE_STATE_OPTION,
    SERIES_OPTION,
    TEXMF_PREFIX_OPTION,
    TIME_PACKAGED_OPTION,
    VERBOSE_OPTION,
    CommonOptions,
    command_context,
    require,
    split_path_list,
)
from .typer_ext import create_typer

app = create_typer(
    name=PROGRAM_NAME,
    help="Build TeX package archives, TDS trees and package repositories.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

STAGING_ROOTS_OPTION = Annotated[
    list[str] | None,
    typer.Option(
        "--staging-roots",
        help="Directory searched for staging directories (repeatable, or a path list).",
    ),
]
REPOSITORY_OPTION = Annotated[
    Path | None,
    typer.Option("--repository", help="Package repository directory."),
]
TEXMF_PARENT_OPTION = Annotated[
    Path | None,
    typer.Option("--texmf-parent", help="Directory receiving the TEXMF tree."),
]


def _options(ctx: typer.Context) -> CommonOptions:
    options = ctx.obj
    return options if isinstance(options, CommonOptions) else CommonOptions()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_file: CONFIG_OPTION = None,
    verbose: VERBOSE_OPTION = False,
    no_color: NO_COLOR_OPTION = False,
    series: SERIES_OPTION = None,
    texmf_prefix: TEXMF_PREFIX_OPTION = None,
    default_level: DEFAULT_LEVEL_OPTION = None,
    package_list: PACKAGE_LIST_OPTION = None,
    private_key_file: PRIVATE_KEY_OPTION = None,
    passphrase_file: PASSPHRASE_OPTION = None,
    time_packaged: TIME_PACKAGED_OPTION = None,
    release_state: RELEASE_STATE_OPTION = None,
) -> None:
    """Options shared by every command."""

    ctx.obj = CommonOptions(
        config_file=config_file,
        verbose=verbose,
        no_color=no_color,
        series=series,
        texmf_prefix=texmf_prefix,
        default_level=default_level,
        package_list=package_list,
        private_key_file=private_key_file,
        passphrase_file=passphrase_file,
        time_packaged=time_packaged,
        release_state=release_state,
    )


@app.command("update-repository")
def update_repository(
    ctx: typer.Context,
    staging_roots: STAGING_ROOTS_OPTION = None,
    repository: REPOSITORY_OPTION = None,
    auto_categorize: Annotated[
        bool,
        typer.Option("--auto-categorize/--no-auto-categorize", help="Link packages into category containers."),
    ] = True,
    init: Annotated[
        bool,
        typer.Option("--init", help="Start an empty repository when no database exists yet."),
    ] = False,
) -> None:
    """Archive changed packages and rewrite the repository database."""

    with command_context(_options(ctx)) as run:
        target = require(repository, "No repository location was specified.")
        PackageCreator(run).update_repository(
            split_path_list(staging_roots),
            target,
            categorize=auto_categorize,
            initialize=init,
        )


@app.command("build-tds")
def build_tds(
    ctx: typer.Context,
    staging_roots: STAGING_ROOTS_OPTION = None,
    texmf_parent: TEXMF_PARENT_OPTION = None,
    tpm_dir: Annotated[
        Path | None,
        typer.Option("--tpm-dir", help="Directory receiving one package manifest per package."),
    ] = None,
) -> None:
    """Install the staged packages into a TEXMF tree."""

    with command_context(_options(ctx)) as run:
        parent = require(texmf_parent, "No TEXMF parent directory has been specified.")
        PackageCreator(run).build_tds(split_path_list(staging_roots), parent, tpm_dir)


@app.command("create-package")
def create_package(
    ctx: typer.Context,
    staging_dir: Annotated[
        Path | None,
        typer.Option("--staging-dir", help="Staging directory of the package (default: current directory)."),
    ] = None,
    repository: REPOSITORY_OPTION = None,
) -> None:
    """Add or refresh a single package in an existing repository."""

    with command_context(_options(ctx)) as run:
        target = require(repository, "No repository location was specified.")
        PackageCreator(run).create_package(staging_dir if staging_dir is not None else Path.cwd(), target)


@app.command("disassemble")
def disassemble(
    ctx: typer.Context,
    tpm_file: Annotated[
        Path | None,
        typer.Option("--tpm-file", help="Package manifest of the installed package."),
    ] = None,
    texmf_parent: TEXMF_PARENT_OPTION = None,
    staging_dir: Annotated[
        Path | None,
        typer.Option("--staging-dir", help="Staging directory to create."),
    ] = None,
) -> None:
    """Recreate a staging directory from an installed package."""

    with command_context(_options(ctx), resolve_xz=False) as run:
        manifest_file = require(tpm_file, "No package manifest file has been specified.")
        parent = require(texmf_parent, "No TEXMF parent directory has been specified.")
        target = require(staging_dir, "No staging directory has been specified.")
        PackageCreator(run).disassemble(manifest_file, parent, target)


@app.command("version")
def version() -> None:
    """Print the texpack version."""

    typer.echo(f"{PROGRAM_NAME} {__version__}")


def main() -> None:
    """Run the texpack command line interface."""

    app(prog_name=PROGRAM_NAME)


__all__ = ["app", "main"]
