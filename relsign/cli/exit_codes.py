# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

These are the only exit codes relsign is allowed to use. Each pipeline stage
gets its own code so a CI job can branch on the failure class without
parsing log output.
"""

from relsign.release.errors import Stage

SUCCESS: int = 0
USER_ERROR: int = 1
CONFIG_ERROR: int = 2
RUNTIME_ERROR: int = 3
LOCATE_ERROR: int = 5
SIGN_ERROR: int = 6
VERIFY_ERROR: int = 7
RENAME_ERROR: int = 8
INTERRUPTED: int = 130

STAGE_EXIT_CODES: dict[Stage, int] = {
    Stage.LOCATE: LOCATE_ERROR,
    Stage.SIGN: SIGN_ERROR,
    Stage.VERIFY: VERIFY_ERROR,
    Stage.RENAME: RENAME_ERROR,
}
