# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for relsign.

This is the single root command. Every operation is a subcommand of
`relsign`. No interactive prompts: secrets come from the environment, so the
same command works on a laptop and in a CI job.

The global options (--config, --log-level, --dry-run) are inherited by every
subcommand through argparse's parent parser mechanism.

Usage:
    relsign sign --output-dir bin --kind aab
    relsign locate --output-dir bin --kind apk
    relsign verify bin/app-release-signed.apk
    relsign encode-keystore release.jks --output release.jks.b64
"""

import argparse
import sys

from relsign.cli.commands import (
    handle_encode_keystore,
    handle_locate,
    handle_sign,
    handle_verify,
)
from relsign.cli.exit_codes import USER_ERROR
from relsign.release.models import ArtifactKind


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    These options get inherited by every subcommand. We use a separate parent
    parser (with add_help=False) so that help text doesn't collide between the
    parent and the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides the config).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Report what would happen without touching any artifact.",
    )
    return parent


def _add_artifact_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        dest="output_dir",
        help="Build output directory holding the *-release-unsigned artifact.",
    )
    parser.add_argument(
        "--kind",
        type=str,
        default=ArtifactKind.AAB.value,
        choices=[kind.value for kind in ArtifactKind],
        help="Artifact type to look for (default: aab).",
    )


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register all subcommands with their handler functions.

    Each subcommand gets the global options from the parent parser and sets
    its handler function via set_defaults(func=...).
    """
    sign_parser = subparsers.add_parser(
        "sign",
        parents=[parent],
        help="Sign, verify and rename the unsigned release artifact.",
    )
    _add_artifact_options(sign_parser)
    sign_parser.add_argument(
        "--github-output",
        type=str,
        default=None,
        dest="github_output",
        help="File to append signed_path=<path> to (default: $GITHUB_OUTPUT if set).",
    )
    sign_parser.set_defaults(func=handle_sign)

    locate_parser = subparsers.add_parser(
        "locate",
        parents=[parent],
        help="Find the unsigned release artifact without signing it.",
    )
    _add_artifact_options(locate_parser)
    locate_parser.set_defaults(func=handle_locate)

    verify_parser = subparsers.add_parser(
        "verify",
        parents=[parent],
        help="Verify the signature on an artifact.",
    )
    verify_parser.add_argument("artifact", type=str, help="Path to the signed artifact.")
    verify_parser.set_defaults(func=handle_verify)

    encode_parser = subparsers.add_parser(
        "encode-keystore",
        parents=[parent],
        help="Base64-encode a keystore for storage as a CI secret.",
    )
    encode_parser.add_argument("keystore", type=str, help="Path to the keystore file.")
    encode_parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Where to write the base64 text (written with mode 0600).",
    )
    encode_parser.set_defaults(func=handle_encode_keystore)


def main() -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="relsign",
        description="relsign: sign, verify and rename Android release artifacts.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args()

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
