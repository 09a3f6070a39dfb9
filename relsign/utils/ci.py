# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CI integration helpers.

GitHub Actions passes step outputs through a file named by $GITHUB_OUTPUT,
one `key=value` line per output. Later steps (uploading the signed artifact,
attaching it to a release) read the signed path from there instead of
guessing the filename.
"""

from collections.abc import Mapping
from pathlib import Path

GITHUB_OUTPUT_ENV = "GITHUB_OUTPUT"


def append_github_output(output_file: Path, values: Mapping[str, str]) -> None:
    """
    Append `key=value` lines to a GitHub Actions output file.

    Raises:
        ValueError: A key or value contains a newline, which the simple
                    key=value format can't carry.
    """
    lines: list[str] = []
    for key, value in values.items():
        if "\n" in key or "\n" in value or "=" in key:
            raise ValueError(f"Cannot write output {key!r}: newline or '=' in key/value")
        lines.append(f"{key}={value}\n")

    with open(output_file, "a", encoding="utf-8") as f:
        f.writelines(lines)
