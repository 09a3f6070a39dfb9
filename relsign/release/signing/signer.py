# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Signer adapter backed by the JDK's `jarsigner`.

jarsigner signs APKs and AABs alike (both are zip archives). We never let it
write over the input directly: it signs into a hidden staging file next to
the artifact (`-signedjar`), and only after it exits cleanly do we move the
staging file over the original with os.replace, which is atomic. If anything
goes wrong, including Ctrl-C, the staging file is deleted and the original
unsigned artifact is exactly as the build left it.

The filename is not changed here. The signed artifact keeps its
"-release-unsigned" name until the renamer runs, and the renamer depends on
that.

Passwords are handed over with `-storepass:env` / `-keypass:env`, so they sit
in the child's environment and never on its command line, where `ps` or a
logged command would show them.
"""

import logging
import os
import shutil
from pathlib import Path

from relsign.config.schema import SignerConfig
from relsign.logging.logger import get_logger, redact
from relsign.release.errors import (
    SigningFailedError,
    ToolUnavailableError,
    WrongCredentialsError,
)
from relsign.release.interfaces import Signer
from relsign.release.models import KeystoreReference
from relsign.release.tooling import ToolResult, run_tool
from relsign.utils.filesystem import safe_delete, staging_path_for

_logger: logging.Logger = get_logger(__name__)

STORE_PASSWORD_ENV = "RELSIGN_JARSIGNER_STOREPASS"
KEY_PASSWORD_ENV = "RELSIGN_JARSIGNER_KEYPASS"

# Substrings jarsigner prints when the keystore, key password or alias is wrong.
WRONG_CREDENTIAL_SIGNATURES: tuple[str, ...] = (
    "password was incorrect",
    "Cannot recover key",
    "Get Key failed",
    "Given final block not properly padded",
    "Certificate chain not found for",
)


def is_wrong_credentials(output: str) -> bool:
    """True if jarsigner's output matches a known bad-credential failure."""
    return any(signature in output for signature in WRONG_CREDENTIAL_SIGNATURES)


class JarsignerSigner(Signer):
    """Signs artifacts in place with jarsigner."""

    def __init__(self, config: SignerConfig) -> None:
        self._config = config

    def build_command(
        self, input_path: Path, output_path: Path, keystore: KeystoreReference
    ) -> list[str]:
        """The jarsigner command line. Holds no secret values."""
        command = [
            self._config.executable,
            "-keystore",
            str(keystore.path),
            "-storepass:env",
            STORE_PASSWORD_ENV,
            "-keypass:env",
            KEY_PASSWORD_ENV,
            "-sigalg",
            self._config.signature_algorithm,
            "-digestalg",
            self._config.digest_algorithm,
        ]
        if self._config.tsa_url:
            command.extend(["-tsa", self._config.tsa_url])
        command.extend(["-signedjar", str(output_path), str(input_path), keystore.alias])
        return command

    def _child_env(self, keystore: KeystoreReference) -> dict[str, str]:
        env = dict(os.environ)
        env[STORE_PASSWORD_ENV] = keystore.store_password.get_secret_value()
        env[KEY_PASSWORD_ENV] = keystore.key_password.get_secret_value()
        return env

    def _raise_for_result(self, result: ToolResult, path: Path) -> None:
        diagnostics = redact(result.output)
        if result.missing:
            raise ToolUnavailableError(
                f"Signer executable '{self._config.executable}' not found. "
                "Is a JDK installed and on PATH?",
                diagnostics=diagnostics,
            )
        if result.timed_out:
            raise ToolUnavailableError(
                f"Signing {path.name} did not finish within {self._config.timeout_seconds}s",
                diagnostics=diagnostics,
            )
        if is_wrong_credentials(result.output):
            raise WrongCredentialsError(
                f"Signing {path.name} failed: keystore password, key password "
                "or alias is wrong",
                diagnostics=diagnostics,
            )
        raise SigningFailedError(
            f"Signing {path.name} failed with exit code {result.exit_code}",
            diagnostics=diagnostics,
        )

    def sign(self, path: Path, keystore: KeystoreReference) -> Path:
        """
        Sign `path` in place. The artifact keeps its name and permission bits.

        Raises:
            ToolUnavailableError: jarsigner missing or timed out.
            WrongCredentialsError: Bad password or alias.
            SigningFailedError: Any other non-zero exit, no signed output, or a
                filesystem error around the staging file.
        """
        try:
            staging = staging_path_for(path)
        except OSError as err:
            raise SigningFailedError(
                f"Cannot create a staging file next to {path.name}",
                diagnostics=str(err),
            ) from err

        command = self.build_command(path, staging, keystore)
        _logger.info(
            "Signing artifact",
            extra={"path": str(path), "alias": keystore.alias, "command": command},
        )

        try:
            result = run_tool(
                command,
                timeout_seconds=self._config.timeout_seconds,
                env=self._child_env(keystore),
            )
            if not result.success:
                self._raise_for_result(result, path)

            if not staging.is_file() or staging.stat().st_size == 0:
                raise SigningFailedError(
                    f"Signer exited cleanly but produced no signed output for {path.name}",
                    diagnostics=redact(result.output),
                )

            shutil.copymode(path, staging)
            os.replace(staging, path)
        except OSError as err:
            safe_delete(staging)
            raise SigningFailedError(
                f"Cannot replace {path.name} with its signed copy",
                diagnostics=redact(str(err)),
            ) from err
        except BaseException:
            safe_delete(staging)
            raise

        _logger.info(
            "Artifact signed",
            extra={"path": str(path), "elapsed_seconds": round(result.elapsed_seconds, 3)},
        )
        return path
