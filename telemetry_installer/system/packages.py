# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/packages.py
# Author: Elven Observability
# Details of functionality of this file: apt/dnf/yum wrapper with RHEL subscription diagnostics

"""
Package Manager: update caches and install OS packages.

RHEL hosts without a subscription fail in a recognizable way; that case is
reported with concrete remediation instead of the raw package-manager log.
"""

import logging
import os
import re
import shutil
from typing import List, Sequence

from ..errors import PackageError
from ..models import PlatformDescriptor
from .commands import format_command, run_command

logger = logging.getLogger(__name__)

SUBSCRIPTION_PATTERN = re.compile(r'subscription|entitlement|cdn\.redhat\.com', re.IGNORECASE)

RHEL_SUBSCRIPTION_REMEDIATION = """This RHEL system is not properly registered.
Please choose one of these solutions:

1. Install EPEL (works without subscription):
   sudo dnf install -y https://dl.fedoraproject.org/pub/epel/epel-release-latest-8.noarch.rpm

2. Register with Red Hat subscription:
   sudo subscription-manager register
   sudo subscription-manager attach --auto

3. Use CentOS/Rocky repos (alternative):
   sudo dnf install -y https://dl.rockylinux.org/pub/rocky/8/BaseOS/x86_64/os/Packages/r/rocky-release-8.9-1.6.el8.noarch.rpm"""

# dnf/yum check-update exits 100 when updates are available
CHECK_UPDATE_OK = (0, 100)


class PackageManager:
    """Installs OS packages with the probed package manager."""

    INSTALL_TIMEOUT = 900

    def __init__(self, platform: PlatformDescriptor):
        if not platform.package_manager:
            raise PackageError(f"No package manager available on {platform.display_name}")
        self.name = platform.package_manager

    def _check_subscription(self, output: str) -> None:
        if SUBSCRIPTION_PATTERN.search(output or ''):
            raise PackageError("Red Hat subscription issue detected!",
                               remediation=RHEL_SUBSCRIPTION_REMEDIATION)

    def update(self) -> None:
        """Refresh package metadata. Non-subscription failures only warn."""
        if self.name == 'apt':
            cmd = ['apt-get', 'update']
            ok_codes = (0,)
        else:
            cmd = [self.name, 'check-update']
            ok_codes = CHECK_UPDATE_OK

        result = run_command(cmd, timeout=self.INSTALL_TIMEOUT)
        if result.returncode not in ok_codes:
            self._check_subscription(result.stdout + result.stderr)
            logger.warning(f"Package update had issues (exit {result.returncode}), continuing anyway")

    def install(self, packages: Sequence[str]) -> None:
        """
        Install packages non-interactively.

        Raises:
            PackageError: On failure, with subscription remediation when applicable
        """
        cmd = self.install_command(packages)
        logger.info(f"Installing packages: {' '.join(packages)}")
        result = run_command(cmd, timeout=self.INSTALL_TIMEOUT, env=self._env())
        if result.returncode != 0:
            output = result.stdout + result.stderr
            self._check_subscription(output)
            raise PackageError(
                f"Failed to install {' '.join(packages)}:\n{output.strip()[-2000:]}",
                remediation=f"Run manually: {format_command(cmd)}",
            )

    def _env(self):
        if self.name == 'apt':
            return dict(os.environ, DEBIAN_FRONTEND='noninteractive')
        return None

    def install_command(self, packages: Sequence[str]) -> List[str]:
        if self.name == 'apt':
            return ['apt-get', 'install', '-y'] + list(packages)
        return [self.name, 'install', '-y'] + list(packages)

    def ensure_commands(self, commands: Sequence[str]) -> List[str]:
        """
        Install packages providing any missing commands (package name == command name).

        Returns:
            Commands still missing after the attempt
        """
        missing = [c for c in commands if shutil.which(c) is None]
        if not missing:
            return []
        self.install(missing)
        return [c for c in commands if shutil.which(c) is None]
