# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Safe filesystem operations for relsign.

Rules every stage follows:
  - writes must be atomic (no partial files on failure or interrupt)
  - failures must not leave an artifact under a misleading name
  - temporary files are hidden, so the artifact locator never sees them

Atomic writes work by writing to a temporary file in the same directory as
the target, then renaming. Rename on the same filesystem is atomic on POSIX.
If the process dies mid-write, you get a leftover hidden temp file instead of
a corrupted target file.
"""

import os
import tempfile
from pathlib import Path

TEMP_PREFIX = ".relsign_tmp_"


def staging_path_for(target_path: Path) -> Path:
    """
    Reserve a hidden, empty staging file next to `target_path`.

    The staging file keeps the target's suffix, because jarsigner decides
    how to treat its output by extension.
    """
    fd, name = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=target_path.suffix,
    )
    os.close(fd)
    return Path(name)


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    Raises:
        OSError: If the write or rename fails.
    """
    atomic_write_bytes(target_path, content.encode(encoding))


def atomic_write_bytes(target_path: Path, data: bytes, mode: int = 0o600) -> None:
    """
    Write binary data to a file atomically, with the given permission bits.

    The default mode is owner read/write only. tempfile already creates the
    file that way, and we chmod explicitly so the result doesn't depend on it.

    Raises:
        OSError: If the write or rename fails.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # delete=False because we need the file to survive closing so we can rename it.
    # dir= same directory as target so rename is atomic (same filesystem).
    temp_fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(data)
        temp_fd.flush()
        os.fsync(temp_fd.fileno())
        temp_fd.close()
        os.chmod(temp_path, mode)
        os.replace(temp_path, target_path)
    except BaseException:
        temp_fd.close()
        safe_delete(temp_path)
        raise


def safe_delete(file_path: Path) -> bool:
    """
    Delete a file if it exists. Returns whether anything was actually deleted.

    This never throws on a missing file. That's the "safe" part.

    Raises:
        OSError: If the file exists but can't be deleted (permissions, etc).
    """
    try:
        file_path.unlink()
    except FileNotFoundError:
        return False
    return True
