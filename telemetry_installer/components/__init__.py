# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Agent components and installation profiles package initialization

"""
Components package: one class per installable agent plus the profiles that
group them.
"""

from .base import AgentComponent, ComponentResult, InstallContext
from .profiles import PROFILES, InstallProfile, get_profile

__all__ = ['AgentComponent', 'ComponentResult', 'InstallContext', 'PROFILES', 'InstallProfile', 'get_profile']
