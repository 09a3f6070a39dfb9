# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Keystore secrets: decoding, materializing, and reading them from the environment.

CI systems can only store text secrets, so the keystore travels as base64
(`base64 release.jks > release.jks.b64`, then pasted into a secret). At run
time we decode it back to bytes and, because jarsigner only reads keystores
from disk, write it to a private temp file.

The contract with callers:
  - passwords are SecretStr from the moment they're read and are registered
    with the log redaction filter, so they never reach a log line
  - a materialized keystore is written with mode 0600
  - whoever materializes a keystore deletes it. MaterializedKeystore does
    that on exit, which is what the CLI uses. Library callers that use
    materialize_keystore() directly own the cleanup themselves.
"""

import base64
import binascii
import logging
import shutil
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Optional

from pydantic import SecretStr

from relsign.config.exceptions import SecretsError
from relsign.config.schema import SecretsConfig
from relsign.logging.logger import get_logger, register_secret
from relsign.release.models import KeystoreReference
from relsign.utils.filesystem import atomic_write_bytes

_logger: logging.Logger = get_logger(__name__)

KEYSTORE_FILENAME = "release.keystore"


class KeystoreError(SecretsError):
    """Raised when keystore material is missing, empty, or not valid base64."""


def decode_keystore(encoded: str) -> bytes:
    """
    Decode a base64 keystore secret back to raw bytes.

    Line breaks and surrounding whitespace are ignored (the `base64` CLI
    wraps at 76 columns). Anything else that isn't base64 is an error.

    Raises:
        KeystoreError: Empty input or invalid base64.
    """
    compact = "".join(encoded.split())
    if not compact:
        raise KeystoreError("Keystore secret is empty")

    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as err:
        raise KeystoreError(f"Keystore secret is not valid base64: {err}") from err

    if not data:
        raise KeystoreError("Keystore secret decodes to zero bytes")
    return data


def encode_keystore(keystore_path: Path) -> str:
    """
    Base64-encode a keystore file so it can be stored as a CI secret.

    Raises:
        KeystoreError: If the file is missing or empty.
    """
    if not keystore_path.is_file():
        raise KeystoreError(f"Keystore file not found: {keystore_path}")
    data = keystore_path.read_bytes()
    if not data:
        raise KeystoreError(f"Keystore file is empty: {keystore_path}")
    return base64.b64encode(data).decode("ascii")


def materialize_keystore(data: bytes, directory: Path) -> Path:
    """
    Write keystore bytes to `directory` with owner-only permissions.

    The caller is responsible for deleting the file after the run.
    """
    target = directory / KEYSTORE_FILENAME
    atomic_write_bytes(target, data, mode=0o600)
    _logger.debug("Keystore materialized", extra={"path": str(target)})
    return target


class MaterializedKeystore:
    """
    Context manager that writes a keystore to a private temp directory on
    enter and removes the whole directory on exit.

    Usage:
        with MaterializedKeystore(decode_keystore(secret)) as keystore_path:
            ...sign with keystore_path...
        # keystore file and its directory are gone here, even after a crash
    """

    def __init__(self, data: bytes, base_dir: Optional[Path] = None) -> None:
        self._data = data
        self._base_dir = base_dir
        self._work_dir: Optional[Path] = None

    def __enter__(self) -> Path:
        # mkdtemp creates the directory with mode 0700.
        self._work_dir = Path(
            tempfile.mkdtemp(
                prefix="relsign_ks_",
                dir=str(self._base_dir) if self._base_dir else None,
            )
        )
        try:
            return materialize_keystore(self._data, self._work_dir)
        except BaseException:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            raise

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._work_dir is not None:
            shutil.rmtree(self._work_dir, ignore_errors=True)
            _logger.debug("Keystore removed", extra={"path": str(self._work_dir)})
            self._work_dir = None


@dataclass(frozen=True)
class KeystoreSecrets:
    """
    Signing secrets as read from the environment.

    Exactly one of `keystore_bytes` / `keystore_path` is set. Bytes win when
    both variables are present, since that is the CI case.
    """

    alias: str
    store_password: SecretStr
    key_password: SecretStr
    keystore_bytes: Optional[bytes] = field(default=None, repr=False)
    keystore_path: Optional[Path] = None

    def reference(self, keystore_path: Path) -> KeystoreReference:
        """Bind these secrets to a keystore file on disk."""
        return KeystoreReference(
            path=keystore_path,
            alias=self.alias,
            store_password=self.store_password,
            key_password=self.key_password,
        )


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name, "")
    if not value:
        raise SecretsError(f"Required environment variable {name} is not set")
    return value


def read_keystore_secrets(
    config: SecretsConfig,
    environ: Mapping[str, str],
) -> KeystoreSecrets:
    """
    Pull keystore material, alias and passwords out of the environment.

    Only variable names ever appear in errors and logs, never values.

    Raises:
        SecretsError: A required variable is missing.
        KeystoreError: The base64 keystore can't be decoded, or the keystore
                       path doesn't point at a file.
    """
    store_password = _require(environ, config.store_password_env)
    register_secret(store_password)
    key_password = environ.get(config.key_password_env, "") or store_password
    register_secret(key_password)

    alias = _require(environ, config.alias_env)

    encoded = environ.get(config.keystore_base64_env, "")
    if encoded:
        register_secret(encoded)
        keystore_bytes = decode_keystore(encoded)
        _logger.info(
            "Keystore read from environment",
            extra={"source": config.keystore_base64_env, "size_bytes": len(keystore_bytes)},
        )
        return KeystoreSecrets(
            alias=alias,
            store_password=SecretStr(store_password),
            key_password=SecretStr(key_password),
            keystore_bytes=keystore_bytes,
        )

    path_value = environ.get(config.keystore_path_env, "")
    if not path_value:
        raise SecretsError(
            f"No keystore provided: set {config.keystore_base64_env} "
            f"or {config.keystore_path_env}"
        )
    keystore_path = Path(path_value)
    if not keystore_path.is_file():
        raise KeystoreError(f"Keystore file not found: {keystore_path}")

    _logger.info(
        "Keystore read from disk",
        extra={"source": config.keystore_path_env, "path": str(keystore_path)},
    )
    return KeystoreSecrets(
        alias=alias,
        store_password=SecretStr(store_password),
        key_password=SecretStr(key_password),
        keystore_path=keystore_path,
    )
