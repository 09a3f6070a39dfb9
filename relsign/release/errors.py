# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Failure taxonomy for the release signing pipeline.

Every failure a stage can produce is one of these exceptions, and each one
carries the stage it belongs to and a short kind name. The orchestrator never
wraps them, so the final report can name "Sign.WrongCredentials" verbatim
and an operator knows exactly what to fix.

None of these are retried anywhere. Each one is either a configuration
problem (wrong credentials, missing tool) or a deterministic input problem
(missing or ambiguous file), and running the same step again cannot help.
"""

from enum import Enum


class Stage(str, Enum):
    """Pipeline stages that can fail."""

    LOCATE = "Locate"
    SIGN = "Sign"
    VERIFY = "Verify"
    RENAME = "Rename"


class ReleaseError(Exception):
    """
    Base for every stage failure.

    `diagnostics` holds raw text from an external tool (stderr/stdout) when
    there is any. It is surfaced as-is, never swallowed.
    """

    stage: Stage
    kind: str = "Error"

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics

    @property
    def code(self) -> str:
        """Qualified failure name, e.g. 'Locate.NotFound'."""
        return f"{self.stage.value}.{self.kind}"


class LocateError(ReleaseError):
    stage = Stage.LOCATE


class ArtifactNotFoundError(LocateError):
    """No file in the output directory matches the unsigned naming convention."""

    kind = "NotFound"


class AmbiguousArtifactError(LocateError):
    """More than one file matches. We never pick one silently."""

    kind = "Ambiguous"

    def __init__(self, message: str, matches: list[str]) -> None:
        super().__init__(message)
        self.matches = matches


class SignError(ReleaseError):
    stage = Stage.SIGN


class ToolUnavailableError(SignError):
    """The signer executable is missing or did not finish within the timeout."""

    kind = "ToolUnavailable"


class SigningFailedError(SignError):
    """The signer ran but did not produce a signed artifact."""

    kind = "Failed"


class WrongCredentialsError(SigningFailedError):
    """Signing failed because the keystore password, key password or alias is wrong."""

    kind = "WrongCredentials"


class VerifyError(ReleaseError):
    stage = Stage.VERIFY


class VerificationFailedError(VerifyError):
    """Verification reported a fatal marker, or the verifier itself could not run."""

    kind = "Failed"


class RenameError(ReleaseError):
    stage = Stage.RENAME


class NotVerifiedError(RenameError):
    kind = "NotVerified"


class RenameConflictError(RenameError):
    """The final path exists with different content. We never overwrite it."""

    kind = "Conflict"


class RenameFailedError(RenameError):
    """The filesystem refused the move, e.g. permissions or a vanished directory."""

    kind = "Failed"
