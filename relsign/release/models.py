# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Data models for the release signing pipeline.

Everything except PipelineRun is frozen. PipelineRun is the one mutable object:
the orchestrator fills it in stage by stage so that a failed run still shows
how far it got.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import SecretStr

from relsign.release.errors import ReleaseError, Stage


class ArtifactKind(str, Enum):
    """The two package formats an Android release build produces."""

    APK = "apk"
    AAB = "aab"

    @property
    def unsigned_pattern(self) -> str:
        """Glob for the build tool's release output, e.g. '*-release-unsigned.apk'."""
        return f"*-release-unsigned.{self.value}"


@dataclass(frozen=True)
class ArtifactCandidate:
    """The single unsigned artifact found in a build output directory."""

    directory: Path
    pattern: str
    path: Path


@dataclass(frozen=True)
class KeystoreReference:
    """
    Everything needed to sign with one key.

    The passwords are SecretStr, so repr(), str() and the logger all see
    '**********' instead of the value. Call get_secret_value() only at the
    point where the password is handed to the signer process.
    """

    path: Path
    alias: str
    store_password: SecretStr
    key_password: SecretStr


@dataclass(frozen=True)
class SigningResult:
    """Outcome of verifying a signed artifact."""

    input_path: Path
    output_path: Path
    signature_algorithm: Optional[str]
    digest_algorithm: Optional[str]
    verified: bool
    warnings: tuple[str, ...] = ()


class PipelineState(str, Enum):
    """Lifecycle of a single pipeline run. FAILED is terminal from any state."""

    STARTED = "Started"
    LOCATED = "Located"
    SIGNED = "Signed"
    VERIFIED = "Verified"
    RENAMED = "Renamed"
    DONE = "Done"
    FAILED = "Failed"


@dataclass(frozen=True)
class PipelineRequest:
    """Inputs for one invocation. One artifact per request."""

    output_dir: Path
    kind: ArtifactKind
    keystore: KeystoreReference


@dataclass
class PipelineRun:
    """Mutable record of one pipeline invocation, kept only for reporting."""

    request: PipelineRequest
    state: PipelineState = PipelineState.STARTED
    candidate: Optional[ArtifactCandidate] = None
    signed_path: Optional[Path] = None
    result: Optional[SigningResult] = None
    final_path: Optional[Path] = None
    failed_stage: Optional[Stage] = None
    error: Optional[ReleaseError] = None
    completed_stages: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.result.warnings if self.result is not None else ()
