# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Artifact locator. Finds the one unsigned release artifact a build left behind.

The build tool writes `<name>-release-unsigned.apk` (or `.aab`) into its output
directory. We expect exactly one such file. Zero means the build didn't
produce anything (or failed upstream of us), more than one means we can't
know which one to ship. Both stop the run. We never pick one silently.

The scan is non-recursive and ignores hidden files, so staging files left by
an interrupted signing step (".relsign_tmp_*") can never be picked up.
"""

import logging
import os
from pathlib import Path

from relsign.logging.logger import get_logger
from relsign.release.errors import AmbiguousArtifactError, ArtifactNotFoundError
from relsign.release.models import ArtifactCandidate, ArtifactKind

_logger: logging.Logger = get_logger(__name__)


def _check_directory(directory: Path) -> None:
    if not directory.exists():
        raise ArtifactNotFoundError(f"Build output directory not found: {directory}")
    if not directory.is_dir():
        raise ArtifactNotFoundError(f"Build output path is not a directory: {directory}")
    if not os.access(directory, os.R_OK | os.X_OK):
        raise ArtifactNotFoundError(f"Build output directory is not readable: {directory}")


def locate_unsigned_artifact(directory: Path, kind: ArtifactKind) -> ArtifactCandidate:
    """
    Find the single unsigned release artifact of `kind` in `directory`.

    Args:
        directory: Build output directory, e.g. `./bin`.
        kind: APK or AAB.

    Returns:
        ArtifactCandidate pointing at the one match.

    Raises:
        ArtifactNotFoundError: Directory missing/unreadable, or no match.
        AmbiguousArtifactError: More than one match.
    """
    _check_directory(directory)

    pattern = kind.unsigned_pattern
    matches = sorted(
        path
        for path in directory.glob(pattern)
        if path.is_file() and not path.name.startswith(".")
    )

    if not matches:
        _logger.error(
            "No unsigned artifact found",
            extra={"directory": str(directory), "pattern": pattern},
        )
        raise ArtifactNotFoundError(
            f"No file matching '{pattern}' in {directory}. Did the build succeed?"
        )

    if len(matches) > 1:
        names = [path.name for path in matches]
        _logger.error(
            "Multiple unsigned artifacts found",
            extra={"directory": str(directory), "pattern": pattern, "matches": names},
        )
        raise AmbiguousArtifactError(
            f"Expected exactly one file matching '{pattern}' in {directory}, "
            f"found {len(matches)}: {', '.join(names)}",
            matches=names,
        )

    _logger.info(
        "Located unsigned artifact",
        extra={"path": str(matches[0]), "kind": kind.value},
    )
    return ArtifactCandidate(directory=directory, pattern=pattern, path=matches[0])
