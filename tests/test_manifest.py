# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the package manifest codec."""

from __future__ import annotations

from pathlib import Path

import pytest

from texpack.errors import ManifestError
from texpack.inistore import IniStore
from texpack.manifest import put_package_manifest, read_package_manifest, write_package_manifest
from texpack.models import PackageInfo


def _sample() -> PackageInfo:
    return PackageInfo(
        id="foo",
        display_name="Foo",
        creator="Jane",
        title="Foo macros",
        version="1.2",
        description="Line one.\nLine two.\n",
        ctan_path="/macros/latex/contrib/foo",
        license_type="lppl",
        required_packages=["bar"],
        run_files=["texmf/tex/latex/foo/foo.sty"],
        doc_files=["texmf/doc/latex/foo/foo.pdf"],
        size_run_files=10,
        size_doc_files=20,
        digest=bytes.fromhex("00112233445566778899aabbccddeeff"),
    )


def test_write_then_read_preserves_fields(tmp_path: Path) -> None:
    path = tmp_path / "texmf" / "tpm" / "packages" / "foo.tpm"

    write_package_manifest(path, _sample(), 1234)
    info = read_package_manifest(path, "texmf")

    assert info.id == "foo"
    assert info.display_name == "Foo"
    assert info.title == "Foo macros"
    assert info.description == "Line one.\nLine two.\n"
    assert info.ctan_path == "/macros/latex/contrib/foo"
    assert info.license_type == "lppl"
    assert info.required_packages == ["bar"]
    assert info.run_files == ["texmf/tex/latex/foo/foo.sty"]
    assert info.doc_files == ["texmf/doc/latex/foo/foo.pdf"]
    assert (info.size_run_files, info.size_doc_files) == (10, 20)
    assert info.time_packaged == 1234
    assert info.digest == _sample().digest


def test_optional_fields_are_omitted(tmp_path: Path) -> None:
    path = tmp_path / "foo.tpm"
    info = _sample()
    info.ctan_path = ""
    info.digest = None

    write_package_manifest(path, info, None)

    text = path.read_text(encoding="utf-8")
    assert "CTAN-Path" not in text
    assert "TimePackaged" not in text
    assert "MD5" not in text
    assert read_package_manifest(path, "texmf").time_packaged is None


def test_files_outside_prefix_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "foo.tpm"
    info = _sample()
    info.run_files = ["texmf/tex/foo.sty", "elsewhere/foo.sty"]

    write_package_manifest(path, info, 0)

    assert read_package_manifest(path, "texmf").run_files == ["texmf/tex/foo.sty"]


def test_requirements_are_written_as_package_elements(tmp_path: Path) -> None:
    path = tmp_path / "container.tpm"
    info = PackageInfo(id="container", display_name="Container", required_packages=["a", "b"])

    write_package_manifest(path, info, 0)

    assert path.read_text(encoding="utf-8").count('<TPM:Package name="') == 2
    assert read_package_manifest(path, "texmf").required_packages == ["a", "b"]


def test_malformed_manifest_raises(tmp_path: Path) -> None:
    path = tmp_path / "foo.tpm"
    path.write_text("<rdf:RDF", encoding="utf-8")

    with pytest.raises(ManifestError):
        read_package_manifest(path, "texmf")


def test_put_package_manifest_flattens_into_section() -> None:
    store = IniStore()

    put_package_manifest(store, _sample(), 99)

    assert store.get("foo", "displayName") == "Foo"
    assert store.get_list("foo", "description") == ["Line one.", "Line two."]
    assert store.get_list("foo", "runFiles") == ["texmf/tex/latex/foo/foo.sty"]
    assert store.get_list("foo", "requiredPackages") == ["bar"]
    assert store.get("foo", "timePackaged") == "99"
    assert store.get("foo", "md5") == "00112233445566778899aabbccddeeff"
    assert store.get("foo", "ctanPath") == "/macros/latex/contrib/foo"
    assert store.get("foo", "targetSystem") is None
