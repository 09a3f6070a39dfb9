# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release pipeline orchestrator.

One run turns one unsigned build artifact into a verified, renamed, signed
artifact:

    Started -> Located -> Signed -> Verified -> Renamed -> Done

with Failed(stage, cause) as the terminal state reachable from any of them.

Every transition is strictly sequential. The only gate is verification: an
artifact that didn't verify is never renamed. Nothing is retried. The first
ReleaseError ends the run, is recorded on the PipelineRun unchanged, and is
reported with its stage and kind so an operator knows what to fix (rotate
secrets, install a JDK, clean the output directory) before re-running.

The run never raises a ReleaseError to its caller. It always returns the
PipelineRun. KeyboardInterrupt and anything that is not a ReleaseError are the
exception: the run is marked failed at the in-flight stage and the error
propagates. The adapters keep the filesystem consistent on the way out.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from relsign.logging.logger import get_logger
from relsign.release.errors import ReleaseError, Stage, VerificationFailedError
from relsign.release.interfaces import Signer, Verifier
from relsign.release.locator.locator import locate_unsigned_artifact
from relsign.release.models import (
    PipelineRequest,
    PipelineRun,
    PipelineState,
    SigningResult,
)
from relsign.release.renaming.renamer import rename_signed_artifact

_logger: logging.Logger = get_logger(__name__)

T = TypeVar("T")


def _run_stage(run: PipelineRun, stage: Stage, action: Callable[[], T]) -> T:
    """Run one stage, recording the failure on `run` if it raises."""
    _logger.debug("Stage started", extra={"stage": stage.value})
    try:
        return action()
    except ReleaseError as err:
        run.state = PipelineState.FAILED
        run.failed_stage = err.stage
        run.error = err
        _logger.error(
            "Stage failed",
            extra={
                "stage": err.stage.value,
                "error_code": err.code,
                "error": err.message,
                "diagnostics": err.diagnostics,
            },
        )
        raise
    except KeyboardInterrupt:
        run.state = PipelineState.FAILED
        run.failed_stage = stage
        _logger.warning("Run interrupted", extra={"stage": stage.value})
        raise
    except Exception as err:
        run.state = PipelineState.FAILED
        run.failed_stage = stage
        _logger.error(
            "Stage crashed",
            extra={"stage": stage.value, "error": f"{type(err).__name__}: {err}"},
        )
        raise


def _advance(run: PipelineRun, state: PipelineState) -> None:
    run.state = state
    run.completed_stages.append(state.value)
    _logger.info("Stage completed", extra={"state": state.value})


def _require_verified(result: SigningResult) -> None:
    if not result.verified:
        raise VerificationFailedError(
            f"Signature on {result.output_path.name} was NOT verified",
            diagnostics="\n".join(result.warnings),
        )


def run_pipeline(
    request: PipelineRequest,
    signer: Signer,
    verifier: Verifier,
) -> PipelineRun:
    """
    Locate, sign, verify and rename one artifact.

    Args:
        request: Output directory, artifact kind and keystore for this run.
        signer: Signs the located artifact in place.
        verifier: Checks the signature afterwards.

    Returns:
        The PipelineRun. `run.succeeded` tells you whether it reached Done;
        otherwise `run.failed_stage` and `run.error` say where and why.
    """
    run = PipelineRun(request=request)
    _logger.info(
        "Release pipeline started",
        extra={"output_dir": str(request.output_dir), "kind": request.kind.value},
    )

    try:
        run.candidate = _run_stage(
            run,
            Stage.LOCATE,
            lambda: locate_unsigned_artifact(request.output_dir, request.kind),
        )
        _advance(run, PipelineState.LOCATED)

        candidate_path = run.candidate.path
        run.signed_path = _run_stage(
            run,
            Stage.SIGN,
            lambda: signer.sign(candidate_path, request.keystore),
        )
        _advance(run, PipelineState.SIGNED)

        signed_path = run.signed_path
        verification = _run_stage(run, Stage.VERIFY, lambda: verifier.verify(signed_path))
        verified_result = replace(verification, input_path=candidate_path)
        run.result = verified_result
        _run_stage(run, Stage.VERIFY, lambda: _require_verified(verified_result))
        _advance(run, PipelineState.VERIFIED)

        run.final_path = _run_stage(
            run,
            Stage.RENAME,
            lambda: rename_signed_artifact(verified_result),
        )
        _advance(run, PipelineState.RENAMED)
    except ReleaseError:
        return run

    _advance(run, PipelineState.DONE)
    _logger.info(
        "Release pipeline finished",
        extra={"final_path": str(run.final_path), "warnings": list(run.warnings)},
    )
    return run


def format_summary(run: PipelineRun) -> str:
    """One human-readable line describing how the run ended, with all warnings."""
    if run.succeeded:
        head = f"Signed artifact ready: {run.final_path}"
    elif run.error is not None:
        head = f"Release pipeline failed at {run.error.code}: {run.error.message}"
    else:
        stage = run.failed_stage.value if run.failed_stage else run.state.value
        head = f"Release pipeline stopped during {stage}"

    warnings = run.warnings
    if not warnings:
        return f"{head} (no verification warnings)"
    return f"{head} ({len(warnings)} verification warning(s): {'; '.join(warnings)})"
