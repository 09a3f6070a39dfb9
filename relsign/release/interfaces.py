# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Abstract base classes for the two external collaborators.

The orchestrator only ever talks to these, never to a subprocess directly.
That keeps the state machine independent of jarsigner and lets tests plug in
doubles that return canned results.

Contracts:
  - Signer.sign(path, keystore) signs the file at `path` in place and returns
    the path of the signed file. The filename does not change at this stage,
    so a signed artifact still carries "unsigned" in its name until the
    renamer runs. On failure it raises a SignError subclass and leaves the
    original file untouched.
  - Verifier.verify(path) returns a SigningResult. Fatal markers come back as
    verified=False. A VerifyError is raised only when the verifier itself
    could not produce an answer.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from relsign.release.models import KeystoreReference, SigningResult


class Signer(ABC):
    """Applies a signature to an artifact."""

    @abstractmethod
    def sign(self, path: Path, keystore: KeystoreReference) -> Path:
        ...


class Verifier(ABC):
    """Checks the signature on an artifact."""

    @abstractmethod
    def verify(self, path: Path) -> SigningResult:
        ...
