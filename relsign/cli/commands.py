# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the relsign CLI.

Each function here corresponds to one CLI subcommand and returns an exit code
from exit_codes. Stage failures map to their stage's code; config and secret
problems map to CONFIG_ERROR before any artifact is touched.

No print() calls. Everything goes through the structured logger.
"""

import argparse
import logging
import os
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path

from relsign.cli.exit_codes import (
    CONFIG_ERROR,
    INTERRUPTED,
    LOCATE_ERROR,
    RUNTIME_ERROR,
    STAGE_EXIT_CODES,
    SUCCESS,
    USER_ERROR,
    VERIFY_ERROR,
)
from relsign.config.exceptions import ConfigError
from relsign.config.loader import default_config, load_config
from relsign.config.schema import RelsignConfig
from relsign.logging.logger import clear_registered_secrets, get_logger
from relsign.release.errors import LocateError, VerifyError
from relsign.release.keystore.keystore import (
    KeystoreError,
    KeystoreSecrets,
    MaterializedKeystore,
    encode_keystore,
    read_keystore_secrets,
)
from relsign.release.locator.locator import locate_unsigned_artifact
from relsign.release.models import ArtifactKind, PipelineRequest, PipelineRun
from relsign.release.pipeline.orchestrator import format_summary, run_pipeline
from relsign.release.signing.signer import JarsignerSigner
from relsign.release.verification.verifier import JarsignerVerifier
from relsign.runtime.bootstrap import bootstrap
from relsign.utils.ci import GITHUB_OUTPUT_ENV, append_github_output
from relsign.utils.filesystem import atomic_write


def _load_and_bootstrap(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, RelsignConfig | None, logging.Logger]:
    """
    The shared setup every command needs: load config, run bootstrap.

    Returns a tuple of (exit_code, config, logger). If exit_code is not SUCCESS,
    the caller should return it immediately. Something went wrong during setup.
    """
    logger = get_logger(f"relsign.cli.{command_name}", log_level=args.log_level or "INFO")

    if args.config is None:
        config = default_config()
        logger.debug(
            "No config provided, running with defaults",
            extra={"command": command_name},
        )
    else:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    logger = bootstrap(config, command_name, log_level=args.log_level)
    return SUCCESS, config, logger


def _keystore_context(secrets: KeystoreSecrets) -> AbstractContextManager[Path]:
    """Materialize base64 keystore bytes for the run, or use the on-disk path as-is."""
    if secrets.keystore_bytes is not None:
        return MaterializedKeystore(secrets.keystore_bytes)
    if secrets.keystore_path is None:
        raise KeystoreError("Neither keystore bytes nor a keystore path were provided")
    return nullcontext(secrets.keystore_path)


def _github_output_target(args: argparse.Namespace) -> Path | None:
    if args.github_output is not None:
        return Path(args.github_output)
    env_value = os.environ.get(GITHUB_OUTPUT_ENV)
    return Path(env_value) if env_value else None


def _report(run: PipelineRun, logger: logging.Logger) -> int:
    summary = format_summary(run)
    if run.succeeded:
        logger.info(summary, extra={"final_path": str(run.final_path)})
        return SUCCESS

    if run.error is None:
        logger.error(summary)
        return RUNTIME_ERROR

    logger.error(
        summary,
        extra={
            "stage": run.error.stage.value,
            "error_code": run.error.code,
            "diagnostics": run.error.diagnostics,
            "completed_stages": run.completed_stages,
        },
    )
    return STAGE_EXIT_CODES[run.error.stage]


def handle_sign(args: argparse.Namespace) -> int:
    """Locate, sign, verify and rename the release artifact."""
    exit_code, config, logger = _load_and_bootstrap(args, "sign")
    if exit_code != SUCCESS or config is None:
        return exit_code

    output_dir = Path(args.output_dir)
    kind = ArtifactKind(args.kind)

    if args.dry_run:
        try:
            candidate = locate_unsigned_artifact(output_dir, kind)
        except LocateError as err:
            logger.error("Dry run failed", extra={"error_code": err.code, "error": err.message})
            return LOCATE_ERROR
        logger.info(
            "Dry run: would sign, verify and rename artifact",
            extra={"path": str(candidate.path), "signer": config.signer.executable},
        )
        return SUCCESS

    try:
        secrets = read_keystore_secrets(config.secrets, os.environ)
        keystore = _keystore_context(secrets)
    except ConfigError as err:
        logger.error("Signing secrets unavailable", extra={"error": str(err)})
        clear_registered_secrets()
        return CONFIG_ERROR

    try:
        with keystore as keystore_path:
            request = PipelineRequest(
                output_dir=output_dir,
                kind=kind,
                keystore=secrets.reference(keystore_path),
            )
            run = run_pipeline(
                request,
                signer=JarsignerSigner(config.signer),
                verifier=JarsignerVerifier(config.signer),
            )

        exit_code = _report(run, logger)

        target = _github_output_target(args)
        if exit_code == SUCCESS and target is not None:
            append_github_output(target, {"signed_path": str(run.final_path)})
            logger.info("Wrote step output", extra={"file": str(target)})

        return exit_code

    except KeyboardInterrupt:
        logger.warning("Interrupted, signing aborted")
        return INTERRUPTED
    except Exception as err:
        logger.error("Sign failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR
    finally:
        clear_registered_secrets()


def handle_locate(args: argparse.Namespace) -> int:
    """Find the unsigned artifact and report it, without signing."""
    exit_code, config, logger = _load_and_bootstrap(args, "locate")
    if exit_code != SUCCESS:
        return exit_code

    try:
        candidate = locate_unsigned_artifact(Path(args.output_dir), ArtifactKind(args.kind))
    except LocateError as err:
        logger.error("Locate failed", extra={"error_code": err.code, "error": err.message})
        return LOCATE_ERROR

    logger.info("Unsigned artifact found", extra={"path": str(candidate.path)})
    return SUCCESS


def handle_verify(args: argparse.Namespace) -> int:
    """Verify the signature on an already signed artifact."""
    exit_code, config, logger = _load_and_bootstrap(args, "verify")
    if exit_code != SUCCESS or config is None:
        return exit_code

    artifact = Path(args.artifact)
    try:
        result = JarsignerVerifier(config.signer).verify(artifact)
    except VerifyError as err:
        logger.error(
            "Verify failed",
            extra={"error_code": err.code, "error": err.message, "diagnostics": err.diagnostics},
        )
        return VERIFY_ERROR
    except KeyboardInterrupt:
        logger.warning("Interrupted, verification aborted")
        return INTERRUPTED

    extra = {
        "path": str(artifact),
        "signature_algorithm": result.signature_algorithm,
        "digest_algorithm": result.digest_algorithm,
        "warnings": list(result.warnings),
    }
    if not result.verified:
        logger.error(f"{artifact.name} is NOT verified", extra=extra)
        return VERIFY_ERROR

    logger.info(
        f"{artifact.name} verified with {len(result.warnings)} warning(s)",
        extra=extra,
    )
    return SUCCESS


def handle_encode_keystore(args: argparse.Namespace) -> int:
    """Base64-encode a keystore so it can be stored as a CI secret."""
    exit_code, config, logger = _load_and_bootstrap(args, "encode-keystore")
    if exit_code != SUCCESS:
        return exit_code

    try:
        encoded = encode_keystore(Path(args.keystore))
    except KeystoreError as err:
        logger.error("Cannot encode keystore", extra={"error": str(err)})
        return USER_ERROR

    output = Path(args.output)
    if args.dry_run:
        logger.info("Dry run: would write encoded keystore", extra={"output": str(output)})
        return SUCCESS

    try:
        atomic_write(output, encoded + "\n")
    except OSError as err:
        logger.error("Cannot write encoded keystore", extra={"error": str(err)})
        return RUNTIME_ERROR

    logger.info(
        "Encoded keystore written",
        extra={"output": str(output), "size_chars": len(encoded)},
    )
    return SUCCESS
