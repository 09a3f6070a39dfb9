# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
External tool invocation.

Both adapters shell out to jarsigner the same way: run the subprocess with a
hard timeout, capture everything, return a structured result. A missing
executable or a timeout comes back as a result too (exit_code -1) so each
adapter can map it to its own stage's failure kind.

No shell=True, ever. Passwords travel in `env`, never in `command`, so the
command line is safe to log as-is.

On KeyboardInterrupt subprocess.run kills the child before re-raising, so an
interrupted run never leaves a signer process behind.
"""

import logging
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from relsign.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Captured outcome of one external tool invocation."""

    exit_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float
    timed_out: bool = False
    missing: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.missing

    @property
    def output(self) -> str:
        """stdout and stderr together. jarsigner reports errors on either."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def run_tool(
    command: Sequence[str],
    timeout_seconds: int,
    env: Optional[Mapping[str, str]] = None,
) -> ToolResult:
    """
    Run `command` and capture its output.

    Args:
        command: Executable followed by its arguments.
        timeout_seconds: Hard limit. The child is killed when it's exceeded.
        env: Full environment for the child. None inherits ours.
    """
    start = time.monotonic()

    try:
        completed = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            env=dict(env) if env is not None else None,
        )
    except subprocess.TimeoutExpired:
        elapsed = time.monotonic() - start
        _logger.warning(
            "External tool timed out",
            extra={"command": command[0], "timeout_seconds": timeout_seconds},
        )
        return ToolResult(
            exit_code=-1,
            stdout="",
            stderr=f"{command[0]} timed out after {timeout_seconds}s",
            elapsed_seconds=elapsed,
            timed_out=True,
        )
    except FileNotFoundError:
        elapsed = time.monotonic() - start
        _logger.error("External tool not found", extra={"command": command[0]})
        return ToolResult(
            exit_code=-1,
            stdout="",
            stderr=f"{command[0]} executable not found",
            elapsed_seconds=elapsed,
            missing=True,
        )

    elapsed = time.monotonic() - start
    _logger.debug(
        "External tool finished",
        extra={
            "command": list(command),
            "exit_code": completed.returncode,
            "elapsed_seconds": round(elapsed, 3),
        },
    )
    return ToolResult(
        exit_code=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
        elapsed_seconds=elapsed,
    )
