# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/platform_probe.py
# Author: Elven Observability
# Details of functionality of this file: Detects OS family, distribution, architecture, package manager, service manager and optional tools

"""
Platform Probe: builds the PlatformDescriptor consumed by every later stage.

Unsupported distributions and architectures fail here, before any input is
requested or anything is mutated.
"""

import logging
import os
import platform
import shutil
import socket
import sys
from pathlib import Path
from typing import Callable, Optional

import distro

from ..errors import ValidationError
from ..models import PlatformDescriptor

logger = logging.getLogger(__name__)

ARCH_MAP = {
    'x86_64': 'amd64',
    'amd64': 'amd64',
    'aarch64': 'arm64',
    'arm64': 'arm64',
}

APT_DISTROS = ('ubuntu', 'debian')
RHEL_DISTROS = ('rhel', 'centos', 'rocky', 'almalinux', 'ol')
SUPPORTED_DISTROS_TEXT = "Ubuntu, Debian, RHEL, CentOS, Rocky, AlmaLinux, Oracle Linux, Fedora, Amazon Linux"

SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")


def normalize_arch(machine: str) -> str:
    """Map `uname -m` style names to release-asset architecture names."""
    arch = ARCH_MAP.get(machine.lower())
    if arch is None:
        raise ValidationError(f"Unsupported architecture: {machine}",
                              remediation="Supported architectures: x86_64 (amd64), aarch64 (arm64)")
    return arch


def detect_package_manager(distro_id: str, which: Callable[[str], Optional[str]] = shutil.which) -> str:
    """
    Pick the package manager for a Linux distribution id.

    Raises:
        ValidationError: If the distribution is not supported
    """
    if distro_id in APT_DISTROS:
        return 'apt'
    if distro_id in RHEL_DISTROS:
        return 'dnf' if which('dnf') else 'yum'
    if distro_id == 'fedora':
        return 'dnf'
    if distro_id == 'amzn':
        return 'yum'
    raise ValidationError(f"Unsupported distribution: {distro_id or 'unknown'}",
                          remediation=f"Supported: {SUPPORTED_DISTROS_TEXT}")


def is_admin() -> bool:
    """True when running as root (POSIX) or with an elevated token (Windows)."""
    if sys.platform == 'win32':
        try:
            import ctypes
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def probe_platform() -> PlatformDescriptor:
    """
    Probe the host once.

    Returns:
        PlatformDescriptor

    Raises:
        ValidationError: Unsupported OS, distribution or architecture
    """
    system = platform.system().lower()
    arch = normalize_arch(platform.machine())
    hostname = socket.gethostname()
    has_tar = shutil.which('tar') is not None
    has_7zip = bool(shutil.which('7z') or shutil.which('7za'))

    if system == 'linux':
        distro_id = distro.id().lower()
        if not distro_id:
            raise ValidationError("Cannot detect Linux distribution",
                                  remediation="/etc/os-release is missing or unreadable")
        package_manager = detect_package_manager(distro_id)
        service_manager = 'systemd' if SYSTEMD_RUNTIME_DIR.exists() else None
        descriptor = PlatformDescriptor(
            os_family='linux',
            arch=arch,
            hostname=hostname,
            distro_id=distro_id,
            distro_version=distro.version(),
            distro_name=distro.name(pretty=True) or distro_id,
            distro_codename=distro.codename(),
            package_manager=package_manager,
            service_manager=service_manager,
            has_tar=has_tar,
            has_7zip=has_7zip,
            is_admin=is_admin(),
        )
    elif system == 'windows':
        descriptor = PlatformDescriptor(
            os_family='windows',
            arch=arch,
            hostname=hostname,
            distro_id='windows',
            distro_version=platform.version(),
            distro_name=f"Windows {platform.release()}",
            package_manager=None,
            service_manager='windows',
            has_tar=has_tar,
            has_7zip=has_7zip,
            is_admin=is_admin(),
        )
    else:
        raise ValidationError(f"Unsupported operating system: {platform.system()}")

    logger.info(f"Platform: {descriptor}")
    return descriptor


def require_admin(descriptor: PlatformDescriptor) -> None:
    """Fail pre-flight unless the installer has administrative privileges."""
    if descriptor.is_admin:
        return
    if descriptor.is_windows:
        raise ValidationError("Please run as Administrator",
                              remediation="Open an elevated PowerShell (Run as Administrator) and re-run")
    raise ValidationError("Please run as root (use sudo)",
                          remediation="sudo -E telemetry-installer install <profile>")


def require_systemd(descriptor: PlatformDescriptor) -> None:
    if descriptor.is_linux and descriptor.service_manager != 'systemd':
        raise ValidationError("systemd is not running on this host",
                              remediation="These agents are registered as systemd services; boot with systemd")
