# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Renamer. Gives a verified artifact its "signed" name.

`app-release-unsigned.apk` becomes `app-release-signed.apk`: the last
standalone "unsigned" token in the filename stem is replaced, directory and
extension stay the same.

Rules:
  - only a verified SigningResult may be renamed. Anything else raises
    NotVerifiedError and touches nothing, so a file can never be labelled
    "signed" without a passing verification behind it.
  - the move is a single os.replace, atomic on one filesystem. There is no
    moment where the artifact exists under both names or neither.
  - re-running is safe. If the target already exists with identical bytes,
    that's success (and a leftover source is removed). If it exists with
    different bytes, that's a RenameConflictError and nothing is overwritten.
  - a filesystem error during the comparison or the move is a
    RenameFailedError carrying the OS message.
"""

import logging
import os
import re
from pathlib import Path

from relsign.logging.logger import get_logger
from relsign.release.errors import NotVerifiedError, RenameConflictError, RenameFailedError
from relsign.release.models import SigningResult
from relsign.utils.filesystem import safe_delete
from relsign.utils.hashing import files_identical

_logger: logging.Logger = get_logger(__name__)

UNSIGNED_MARKER = "unsigned"
SIGNED_MARKER = "signed"

_MARKER_TOKEN = re.compile(rf"(?<![A-Za-z0-9]){UNSIGNED_MARKER}(?![A-Za-z0-9])")


def has_unsigned_marker(path: Path) -> bool:
    """True if the filename stem still carries a standalone "unsigned" token."""
    return _MARKER_TOKEN.search(path.stem) is not None


def signed_name_for(path: Path) -> Path:
    """
    The final path for `path`. Only the filename changes.

    A path without an "unsigned" token is returned unchanged, it has
    already been renamed.
    """
    matches = list(_MARKER_TOKEN.finditer(path.stem))
    if not matches:
        return path
    last = matches[-1]
    stem = path.stem[: last.start()] + SIGNED_MARKER + path.stem[last.end() :]
    return path.with_name(stem + path.suffix)


def _place(source: Path, target: Path) -> Path:
    """Move `source` to `target`, or settle an earlier run that already did."""
    if target.exists():
        if not source.exists():
            _logger.info("Artifact already renamed", extra={"path": str(target)})
            return target
        if files_identical(source, target):
            safe_delete(source)
            _logger.info(
                "Identical signed artifact already present",
                extra={"path": str(target)},
            )
            return target
        _logger.error(
            "Signed artifact name already taken",
            extra={"source": str(source), "target": str(target)},
        )
        raise RenameConflictError(
            f"{target} already exists with different content. Remove it or "
            "clean the output directory before re-running."
        )

    if not source.is_file():
        raise NotVerifiedError(f"Artifact to rename not found: {source}")

    os.replace(source, target)
    _logger.info("Artifact renamed", extra={"source": str(source), "target": str(target)})
    return target


def rename_signed_artifact(result: SigningResult) -> Path:
    """
    Rename a verified artifact to its signed name.

    Args:
        result: Verification outcome for the artifact. `output_path` is the
                file to rename.

    Returns:
        The final path.

    Raises:
        NotVerifiedError: result.verified is False, or the artifact is gone.
        RenameConflictError: A different file already sits at the final path.
        RenameFailedError: The filesystem refused the comparison or the move.
    """
    source = result.output_path

    if not result.verified:
        _logger.error("Refusing to rename unverified artifact", extra={"path": str(source)})
        raise NotVerifiedError(
            f"Refusing to rename {source.name}: its signature was not verified"
        )

    if not has_unsigned_marker(source):
        if not source.is_file():
            raise NotVerifiedError(f"Artifact to rename not found: {source}")
        _logger.info("Artifact already has its signed name", extra={"path": str(source)})
        return source

    target = signed_name_for(source)
    try:
        return _place(source, target)
    except OSError as err:
        _logger.error(
            "Rename failed",
            extra={"source": str(source), "target": str(target), "error": str(err)},
        )
        raise RenameFailedError(
            f"Cannot rename {source.name} to {target.name}",
            diagnostics=str(err),
        ) from err
