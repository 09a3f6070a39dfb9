# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Verifier adapter backed by `jarsigner -verify`.

Runs the verification, hands the text to the parser, and turns the outcome
into a SigningResult. A fatal marker is a normal answer (verified=False), not
an exception: the orchestrator decides what a failed verification means.

The only exceptions raised here are for "no answer at all": jarsigner is
missing, it timed out, or it exited non-zero without printing any fatal
marker we recognize. Raw output is attached in every case.
"""

import logging
from pathlib import Path

from relsign.config.schema import SignerConfig
from relsign.logging.logger import get_logger
from relsign.release.errors import VerificationFailedError
from relsign.release.interfaces import Verifier
from relsign.release.models import SigningResult
from relsign.release.tooling import run_tool
from relsign.release.verification.parser import parse_verification_output

_logger: logging.Logger = get_logger(__name__)


class JarsignerVerifier(Verifier):
    """Verifies signed artifacts with jarsigner."""

    def __init__(self, config: SignerConfig) -> None:
        self._config = config

    def build_command(self, path: Path) -> list[str]:
        return [self._config.executable, "-verify", "-verbose", "-certs", str(path)]

    def verify(self, path: Path) -> SigningResult:
        """
        Verify the signature on `path`.

        Raises:
            VerificationFailedError: The verifier could not run to completion.
        """
        if not path.is_file():
            raise VerificationFailedError(f"Artifact to verify not found: {path}")

        result = run_tool(self.build_command(path), timeout_seconds=self._config.timeout_seconds)

        if result.missing:
            raise VerificationFailedError(
                f"Verifier executable '{self._config.executable}' not found",
                diagnostics=result.output,
            )
        if result.timed_out:
            raise VerificationFailedError(
                f"Verifying {path.name} did not finish within {self._config.timeout_seconds}s",
                diagnostics=result.output,
            )

        parsed = parse_verification_output(result.output)

        if result.exit_code != 0 and not parsed.fatal_markers:
            raise VerificationFailedError(
                f"Verifier exited with code {result.exit_code} for {path.name}",
                diagnostics=result.output,
            )

        if parsed.verified:
            _logger.info(
                "Signature verified",
                extra={"path": str(path), "warnings": list(parsed.warnings)},
            )
        else:
            _logger.error(
                "Signature NOT verified",
                extra={"path": str(path), "fatal_markers": list(parsed.fatal_markers)},
            )

        return SigningResult(
            input_path=path,
            output_path=path,
            signature_algorithm=parsed.signature_algorithm or self._config.signature_algorithm,
            digest_algorithm=parsed.digest_algorithm or self._config.digest_algorithm,
            verified=parsed.verified,
            warnings=parsed.warnings,
        )
