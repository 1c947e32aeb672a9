# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/config/validation.py
# Author: Elven Observability
# Details of functionality of this file: Runs an agent's own config validator and surfaces its output verbatim on failure

"""
Config validation through the agent binary itself
(`otelcol-contrib validate --config=...`, `zabbix_proxy -T -c ...`).
"""

import logging
import shutil
from pathlib import Path
from typing import List

from ..errors import ConfigValidationError
from ..system.commands import format_command, run_command

logger = logging.getLogger(__name__)


class ConfigValidator:
    """Fail-closed wrapper around a validator command."""

    def __init__(self, runner=run_command):
        self.runner = runner

    def validate(self, command: List[str], config_path: Path) -> bool:
        """
        Run `command`; non-zero exit is fatal.

        Returns:
            True if validated, False if the validator binary is not present (skipped)

        Raises:
            ConfigValidationError: Validator rejected the configuration
        """
        binary = command[0]
        if not Path(binary).exists() and shutil.which(binary) is None:
            logger.warning(f"Validator {binary} not found; skipping validation of {config_path}")
            print(f"⚠ Cannot validate {config_path}: {binary} not found")
            return False

        print("Validating configuration...")
        result = self.runner(command, timeout=60)
        if result.returncode != 0:
            diagnostic = '\n'.join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
            raise ConfigValidationError(
                f"Invalid configuration: {config_path}",
                diagnostic=diagnostic,
                remediation=f"Fix the configuration and check with: {format_command(command)}",
            )
        print("✓ Configuration is valid!")
        logger.info(f"Validated {config_path}")
        return True
