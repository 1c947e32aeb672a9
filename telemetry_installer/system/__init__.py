# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Host inspection and OS collaborator package initialization

"""
System package: platform probe, package manager, process/port inspection,
file permissions and external command execution.
"""

from .platform_probe import probe_platform, require_admin, require_systemd
from .packages import PackageManager

__all__ = ['probe_platform', 'require_admin', 'require_systemd', 'PackageManager']
