# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/logging_config.py
# Author: Elven Observability
# Details of functionality of this file: Configures installer logging to file and console

"""
Logging setup for the installer.

Diagnostics go to the log file (and to the console at WARNING and above
unless --verbose). Operator-facing progress lines are printed by the
orchestrator, not logged.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_LEVEL_ENV_VAR = "TELEMETRY_INSTALLER_LOG_LEVEL"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(log_file: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure logging to file and console.

    Args:
        log_file: Log file path. If its directory cannot be created, logs go to the console only.
        verbose: Show DEBUG output on the console

    Returns:
        Package logger
    """
    level_name = os.environ.get(LOG_LEVEL_ENV_VAR, 'DEBUG' if verbose else 'INFO').upper()
    level = getattr(logging, level_name, logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers = [console]

    file_error = None
    if log_file is not None:
        log_file = Path(log_file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            handlers.append(file_handler)
        except OSError as e:
            file_error = e

    logging.basicConfig(
        level=min(level, console.level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger('telemetry_installer')
    if file_error is not None:
        logger.warning(f"Cannot write log file {log_file} ({file_error}); logging to console only")
    return logger
