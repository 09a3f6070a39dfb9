# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Runtime bootstrap for relsign.

The one-time setup every command goes through before doing real work:
  1. Validate the environment (Python version)
  2. Initialize the logger from the global config
  3. Log where the signer executable resolves to

After bootstrap completes, log output goes where the config says it should.
"""

import logging
from pathlib import Path

from relsign.config.schema import RelsignConfig
from relsign.logging.logger import apply_log_level, get_logger
from relsign.runtime.environment import check_minimum_python, get_system_info


def bootstrap(config: RelsignConfig, command_name: str, log_level: str | None = None) -> logging.Logger:
    """
    Run the bootstrap sequence and return the command's logger.

    Args:
        config: The validated configuration.
        command_name: Subcommand being run, used for the logger name.
        log_level: --log-level from the command line. Overrides the config.
    """
    check_minimum_python()

    global_config = config.global_config
    log_file = Path(global_config.log_file) if global_config.log_file is not None else None
    level = log_level or global_config.log_level

    logger = get_logger(f"relsign.cli.{command_name}", log_level=level, log_file=log_file)
    apply_log_level(level)

    system_info = get_system_info(config.signer.executable)
    logger.debug(
        "relsign bootstrap complete",
        extra={
            "project_name": global_config.project_name,
            "python_version": system_info.python_version,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
            "signer_path": system_info.signer_path,
        },
    )
    return logger
