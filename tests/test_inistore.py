# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the INI store."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from texpack.errors import ManifestError
from texpack.inistore import DEFAULT_SECTION, SIGNATURE_BEGIN, SIGNATURE_END, IniStore, signature_block


class StaticSigner:
    def __init__(self, signature: bytes) -> None:
        self.signature = signature
        self.signed: list[bytes] = []

    def sign(self, data: bytes) -> bytes:
        self.signed.append(data)
        return self.signature


def test_parse_sections_lists_and_comments() -> None:
    store = IniStore()
    store.parse(
        "id=foo\n"
        "requires;=bar\n"
        "requires;=baz\n"
        "; comment\n"
        "[Pkg]\n"
        "Level=T\n"
        "runFiles[]=texmf/a\n"
        "runFiles[]=texmf/b\n"
        ";;SIGNATURE-BEGIN\n;abc\n;;SIGNATURE-END\n"
    )

    assert store.get(DEFAULT_SECTION, "id") == "foo"
    assert store.get_list(DEFAULT_SECTION, "requires") == ["bar", "baz"]
    assert store.get(DEFAULT_SECTION, "requires") == "bar;baz"
    assert store.get("pkg", "level") == "T"
    assert store.get_list("PKG", "RUNFILES") == ["texmf/a", "texmf/b"]
    assert store.sections() == ["Pkg"]
    assert "pkg" in store
    assert len(store) == 1


def test_invalid_line_raises() -> None:
    with pytest.raises(ManifestError, match="pkg.ini:2: invalid line."):
        IniStore().parse("[a]\nnot an assignment\n", source="pkg.ini")


def test_render_is_sorted_and_keeps_first_spelling() -> None:
    store = IniStore()
    store.put("zeta", "b", "2")
    store.put("Alpha", "Key", "1")
    store.put("alpha", "KEY", "3")
    store.put_list("alpha", "files", ["x", "y"])
    store.put(DEFAULT_SECTION, "top", "t")

    assert store.render() == "top=t\n\n[Alpha]\nfiles[]=x\nfiles[]=y\nKey=3\n\n[zeta]\nb=2\n\n"


def test_delete_and_append() -> None:
    store = IniStore()
    store.put("a", "k", "v")
    store.append("a", "k", "w")

    assert store.get_list("a", "k") == ["v", "w"]
    assert store.delete("a", "k") is True
    assert store.delete("a", "k") is False
    assert store.delete_section("a") is True
    assert store.render() == ""


def test_round_trip_through_file(tmp_path: Path) -> None:
    store = IniStore()
    store.put("foo", "MD5", "00ff")
    store.put_list("foo", "description", ["line one", "line two"])
    path = tmp_path / "nested" / "mpm.ini"

    store.write(path)
    reread = IniStore.read(path)

    assert reread.render() == store.render()


def test_signed_write_appends_signature_block(tmp_path: Path) -> None:
    store = IniStore()
    store.put("foo", "Level", "T")
    signer = StaticSigner(bytes(range(100)))
    path = tmp_path / "mpm.ini"

    store.write(path, signer)

    text = path.read_text(encoding="utf-8")
    body, _, signature = text.partition(SIGNATURE_BEGIN)
    assert signer.signed == [body.encode("utf-8")]
    lines = signature.strip().splitlines()
    assert lines[-1] == SIGNATURE_END
    encoded = "".join(line[1:] for line in lines[:-1])
    assert base64.b64decode(encoded) == bytes(range(100))
    assert all(len(line) <= 65 for line in lines[:-1])
    assert IniStore.read(path).get("foo", "level") == "T"


def test_signature_block_framing() -> None:
    block = signature_block(b"\x00")

    assert block == f"{SIGNATURE_BEGIN}\n;AA==\n{SIGNATURE_END}\n"
