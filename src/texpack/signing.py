# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Private-key provider and the OpenSSL-backed signer for INI documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import FatalError
from .paths import scoped_temp_file
from .process import CommandOptions, SubprocessExecutionError, run_command

LOGGER = logging.getLogger(__name__)


class Signer(Protocol):
    """Object able to produce a detached signature for a byte string."""

    def sign(self, data: bytes) -> bytes: ...


@dataclass(slots=True)
class PrivateKeyProvider:
    """Location of the signing key and the passphrase unlocking it.

    An unset or empty key path means documents are written unsigned.
    """

    private_key_file: Path | None = None
    passphrase: bytes = b""

    @property
    def enabled(self) -> bool:
        return self.private_key_file is not None and str(self.private_key_file) != ""


class OpenSSLSigner:
    """Sign data with ``openssl dgst -sha256 -sign``."""

    def __init__(self, provider: PrivateKeyProvider, *, openssl: str = "openssl") -> None:
        if not provider.enabled:
            raise FatalError("No private key file has been specified.")
        self._provider = provider
        self._private_key_file = Path(str(provider.private_key_file))
        self._openssl = openssl

    def sign(self, data: bytes) -> bytes:
        """Return the raw SHA-256 signature of ``data``.

        The data and passphrase are handed to ``openssl`` through temporary
        files that are removed on every exit path.

        Raises:
            FatalError: If ``openssl`` is missing or exits with a failure.
        """

        with (
            scoped_temp_file(suffix=".dat") as data_file,
            scoped_temp_file(suffix=".pass") as passphrase_file,
            scoped_temp_file(suffix=".sig") as signature_file,
        ):
            data_file.write_bytes(data)
            passphrase_file.write_bytes(self._provider.passphrase)
            passphrase_file.chmod(0o600)
            command = [
                self._openssl,
                "dgst",
                "-sha256",
                "-sign",
                str(self._private_key_file),
                "-passin",
                f"file:{passphrase_file}",
                "-out",
                str(signature_file),
                str(data_file),
            ]
            LOGGER.debug("signing %d bytes with %s", len(data), self._private_key_file)
            try:
                run_command(command, options=CommandOptions())
            except SubprocessExecutionError as exc:
                raise FatalError(f"The signing command failed: {(exc.output or '').strip()}") from exc
            except FileNotFoundError as exc:
                raise FatalError(f"The openssl utility could not be found: {exc}") from exc
            return signature_file.read_bytes()


def build_signer(provider: PrivateKeyProvider, *, openssl: str = "openssl") -> Signer | None:
    """Return a signer for ``provider``, or ``None`` when signing is disabled."""

    if not provider.enabled:
        return None
    return OpenSSLSigner(provider, openssl=openssl)


__all__ = ["OpenSSLSigner", "PrivateKeyProvider", "Signer", "build_signer"]
