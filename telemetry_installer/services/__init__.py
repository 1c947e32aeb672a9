# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/services/__init__.py
# Author: Elven Observability
# Details of functionality of this file: OS service registration package initialization

"""
Services package: systemd and Windows service managers plus the idempotent
registrar.
"""

from ..models import PlatformDescriptor
from .registrar import ServiceRegistrar
from .systemd_manager import SystemdServiceManager
from .windows_manager import WindowsServiceManager


def service_manager_for(platform: PlatformDescriptor, settings):
    """Pick the ServiceManager matching the probed platform."""
    if platform.is_windows:
        return WindowsServiceManager()
    return SystemdServiceManager(unit_dir=settings.systemd_unit_dir)


__all__ = ['ServiceRegistrar', 'SystemdServiceManager', 'WindowsServiceManager', 'service_manager_for']
