# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Hashing utilities for relsign.

Used to decide whether two artifacts are the same file content, e.g. when the
renamer finds that the signed name already exists.
"""

import hashlib
from pathlib import Path

HASH_ALGORITHM = "sha256"
HASH_BUFFER_SIZE = 65536  # 64 KiB keeps memory flat for multi-hundred-MB bundles


def compute_sha256(file_path: Path) -> str:
    """
    Compute the SHA256 hex digest of a file, reading it in 64 KiB chunks.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file can't be read.
    """
    hasher = hashlib.sha256()
    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(HASH_BUFFER_SIZE)
            if not chunk:
                break
            hasher.update(chunk)
    return hasher.hexdigest()


def files_identical(first: Path, second: Path) -> bool:
    """True if both files have the same size and SHA256 digest."""
    if first.stat().st_size != second.stat().st_size:
        return False
    return compute_sha256(first) == compute_sha256(second)
