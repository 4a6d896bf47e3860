# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Package manifest codec.

A package manifest (``<id>.tpm``) is a small RDF/XML document describing one
package::

    <rdf:RDF xmlns:rdf="..." xmlns:TPM="...">
      <rdf:Description about="http://www.miktex.org/packages/a0poster">
        <TPM:Name>a0poster</TPM:Name>
        <TPM:RunFiles size="1234">texmf/tex/latex/a0poster/a0poster.cls ...</TPM:RunFiles>
        <TPM:Requires><TPM:Package name="pstricks"/></TPM:Requires>
        <TPM:TimePackaged>1700000000</TPM:TimePackaged>
        <TPM:MD5>0123456789abcdef0123456789abcdef</TPM:MD5>
        ...
      </rdf:Description>
    </rdf:RDF>

The same records are flattened into ``package-manifests.ini`` sections by
:func:`put_package_manifest`.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Final

from .errors import ManifestError
from .inistore import IniStore
from .models import PackageInfo, format_digest, parse_digest
from .paths import is_parent_directory_of, to_unix

LOGGER = logging.getLogger(__name__)

RDF_NAMESPACE: Final[str] = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
TPM_NAMESPACE: Final[str] = "http://texlive.dante.de/"
PACKAGE_URI_PREFIX: Final[str] = "http://www.miktex.org/packages/"

ET.register_namespace("rdf", RDF_NAMESPACE)
ET.register_namespace("TPM", TPM_NAMESPACE)


def _rdf(name: str) -> str:
    return f"{{{RDF_NAMESPACE}}}{name}"


def _tpm(name: str) -> str:
    return f"{{{TPM_NAMESPACE}}}{name}"


# element name -> PackageInfo attribute
_TEXT_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("Name", "display_name"),
    ("Creator", "creator"),
    ("Title", "title"),
    ("Version", "version"),
    ("TargetSystem", "target_system"),
    ("MinTargetSystemVersion", "min_target_system_version"),
    ("Description", "description"),
    ("CTAN-Path", "ctan_path"),
    ("Copyright-Owner", "copyright_owner"),
    ("Copyright-Year", "copyright_year"),
)

# element name -> (file list attribute, size attribute)
_FILE_FIELDS: Final[tuple[tuple[str, str, str], ...]] = (
    ("RunFiles", "run_files", "size_run_files"),
    ("DocFiles", "doc_files", "size_doc_files"),
    ("SourceFiles", "source_files", "size_source_files"),
)

_OPTIONAL_TEXT_FIELDS: Final[frozenset[str]] = frozenset(
    {"CTAN-Path", "Copyright-Owner", "Copyright-Year", "MinTargetSystemVersion", "TargetSystem"},
)


def _parse_int(text: str | None, what: str, path: Path) -> int | None:
    if text is None or not text.strip():
        return None
    try:
        return int(text.strip())
    except ValueError as exc:
        raise ManifestError(f"{path}: invalid {what} value {text!r}.") from exc


def read_package_manifest(path: Path, texmf_prefix: str) -> PackageInfo:
    """Parse the package manifest at ``path``.

    Only files below ``texmf_prefix`` are kept in the file lists.

    Args:
        path: ``.tpm`` file to read.
        texmf_prefix: Top-level TDS prefix files must live under.

    Returns:
        PackageInfo: Package record; ``id`` is taken from the ``about`` URI.

    Raises:
        ManifestError: If the document is malformed.
        OSError: If the file cannot be read.
    """

    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise ManifestError(f"Malformed package manifest {path}: {exc}") from exc
    description = root.find(_rdf("Description"))
    if description is None:
        raise ManifestError(f"Malformed package manifest {path}: no description.")

    info = PackageInfo()
    about = description.get("about") or description.get(_rdf("about")) or ""
    info.id = about.rsplit("/", 1)[-1]
    for element_name, attribute in _TEXT_FIELDS:
        element = description.find(_tpm(element_name))
        if element is not None:
            setattr(info, attribute, element.text or "")

    for element_name, files_attr, size_attr in _FILE_FIELDS:
        element = description.find(_tpm(element_name))
        if element is None:
            continue
        files: list[str] = getattr(info, files_attr)
        for name in (element.text or "").split():
            name = to_unix(name)
            if is_parent_directory_of(texmf_prefix, name):
                files.append(name)
        setattr(info, size_attr, _parse_int(element.get("size"), "size", path) or 0)

    requires = description.find(_tpm("Requires"))
    if requires is not None:
        info.required_packages.extend(
            package.get("name", "") for package in requires.findall(_tpm("Package")) if package.get("name")
        )

    license_element = description.find(_tpm("License"))
    if license_element is not None:
        info.license_type = license_element.get("type", "")

    info.time_packaged = _parse_int(description.findtext(_tpm("TimePackaged")), "TimePackaged", path)
    digest_text = (description.findtext(_tpm("MD5")) or "").strip()
    if digest_text:
        try:
            info.digest = parse_digest(digest_text)
        except ValueError as exc:
            raise ManifestError(f"{path}: invalid MD5 value {digest_text!r}.") from exc
    return info


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attributes: str) -> ET.Element:
    element = ET.SubElement(parent, _tpm(tag), attributes)
    if text is not None:
        element.text = text
    return element


def write_package_manifest(path: Path, info: PackageInfo, time_packaged: int | None) -> None:
    """Write ``info`` as a package manifest to ``path``.

    Args:
        path: Destination ``.tpm`` file; parent directories are created.
        info: Package record to serialise.
        time_packaged: Packaging time stamp; omitted when ``None``.
    """

    root = ET.Element(_rdf("RDF"))
    description = ET.SubElement(root, _rdf("Description"), {"about": f"{PACKAGE_URI_PREFIX}{info.id}"})
    for element_name, attribute in _TEXT_FIELDS:
        value: str = getattr(info, attribute)
        if element_name in _OPTIONAL_TEXT_FIELDS and not value:
            continue
        _sub(description, element_name, value)
    for element_name, files_attr, size_attr in _FILE_FIELDS:
        files: list[str] = getattr(info, files_attr)
        if files:
            _sub(description, element_name, " ".join(to_unix(name) for name in files), size=str(getattr(info, size_attr)))
    if info.required_packages:
        requires = _sub(description, "Requires")
        for required in info.required_packages:
            _sub(requires, "Package", name=required)
    if time_packaged is not None:
        _sub(description, "TimePackaged", str(time_packaged))
    if info.digest is not None:
        _sub(description, "MD5", format_digest(info.digest))
    if info.license_type:
        _sub(description, "License", type=info.license_type)

    ET.indent(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
    LOGGER.debug("wrote package manifest %s", path)


def put_package_manifest(store: IniStore, info: PackageInfo, time_packaged: int | None) -> None:
    """Flatten ``info`` into the ``[<id>]`` section of ``store``."""

    section = info.id
    for key, value in (
        ("displayName", info.display_name),
        ("creator", info.creator),
        ("title", info.title),
        ("version", info.version),
        ("targetSystem", info.target_system),
        ("minTargetSystemVersion", info.min_target_system_version),
        ("ctanPath", info.ctan_path),
        ("copyrightOwner", info.copyright_owner),
        ("copyrightYear", info.copyright_year),
        ("licenseType", info.license_type),
    ):
        if value:
            store.put(section, key, value)
    if info.description:
        store.put_list(section, "description", info.description.splitlines())
    for key, files in (
        ("runFiles", info.run_files),
        ("docFiles", info.doc_files),
        ("sourceFiles", info.source_files),
    ):
        if files:
            store.put_list(section, key, [to_unix(name) for name in files])
    if info.required_packages:
        store.put_list(section, "requiredPackages", list(info.required_packages))
    store.put(section, "sizeRunFiles", str(info.size_run_files))
    store.put(section, "sizeDocFiles", str(info.size_doc_files))
    store.put(section, "sizeSourceFiles", str(info.size_source_files))
    if time_packaged is not None:
        store.put(section, "timePackaged", str(time_packaged))
    if info.digest is not None:
        store.put(section, "md5", format_digest(info.digest))


__all__ = [
    "PACKAGE_URI_PREFIX",
    "RDF_NAMESPACE",
    "TPM_NAMESPACE",
    "put_package_manifest",
    "read_package_manifest",
    "write_package_manifest",
]
