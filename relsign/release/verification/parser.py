# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Parser for `jarsigner -verify -verbose -certs` output.

jarsigner's verification output is free-form text meant for humans, and a
legitimate release build signed with a self-signed upload key produces a
screenful of warnings: self-signed certificate, no timestamp, certificate
chain not validated. None of those mean the signature is bad. Grepping for
"warning" or "error" would fail every real release.

So the rule is:
  - a small closed set of fatal markers is authoritative. If any of them
    appears anywhere, the artifact is NOT verified, whatever else is printed.
  - everything else is advisory. Lines under a "Warning:" header, and lines
    matching a known advisory phrase, are collected in order and reported,
    but never fail the run.
"""

import re
from dataclasses import dataclass
from typing import Optional

FATAL_MARKERS: tuple[str, ...] = (
    "NOT verified",
    "verified, with signer errors",
    "jar is unsigned",
)

# Known advisories. Matching is case-insensitive.
ADVISORY_PHRASES: tuple[str, ...] = (
    "self-signed",
    "not timestamped",
    "do not include a timestamp",
    "-tsa",
    "certificate chain is invalid",
    "certificate chain is not validated",
    "will expire",
    "has expired",
    "POSIX file permission",
    "not signed by alias in this keystore",
)

_WARNING_HEADER = re.compile(r"^\s*Warning:\s*(?P<rest>.*)$")
_DIGEST_ALGORITHM = re.compile(r"Digest algorithm:\s*(?P<value>[^\s,]+)")
_SIGNATURE_ALGORITHM = re.compile(r"Signature algorithm:\s*(?P<value>[^\s,]+)")


@dataclass(frozen=True)
class VerificationOutput:
    """What we could read out of one verification run."""

    verified: bool
    fatal_markers: tuple[str, ...]
    warnings: tuple[str, ...]
    signature_algorithm: Optional[str] = None
    digest_algorithm: Optional[str] = None


def find_fatal_markers(text: str) -> tuple[str, ...]:
    """Every fatal marker present in `text`, in FATAL_MARKERS order."""
    return tuple(marker for marker in FATAL_MARKERS if marker in text)


def is_advisory(line: str) -> bool:
    lowered = line.lower()
    return any(phrase.lower() in lowered for phrase in ADVISORY_PHRASES)


def _collect_warnings(text: str) -> list[str]:
    warnings: list[str] = []
    in_warning_block = False

    for raw_line in text.splitlines():
        line = raw_line.strip()

        header = _WARNING_HEADER.match(raw_line)
        if header:
            in_warning_block = True
            rest = header.group("rest").strip()
            if rest:
                warnings.append(rest)
            continue

        if not line:
            in_warning_block = False
            continue

        if find_fatal_markers(line):
            continue

        if in_warning_block or is_advisory(line):
            warnings.append(line)

    # jarsigner repeats some advisories in verbose mode. Keep first occurrence.
    return list(dict.fromkeys(warnings))


def _first_match(pattern: re.Pattern[str], text: str) -> Optional[str]:
    match = pattern.search(text)
    return match.group("value") if match else None


def parse_verification_output(text: str) -> VerificationOutput:
    """
    Classify jarsigner verification output.

    Returns:
        VerificationOutput with verified=False if and only if a fatal marker
        is present. Warnings keep the order the tool printed them in.
    """
    fatal = find_fatal_markers(text)
    return VerificationOutput(
        verified=not fatal,
        fatal_markers=fatal,
        warnings=tuple(_collect_warnings(text)),
        signature_algorithm=_first_match(_SIGNATURE_ALGORITHM, text),
        digest_algorithm=_first_match(_DIGEST_ALGORITHM, text),
    )
