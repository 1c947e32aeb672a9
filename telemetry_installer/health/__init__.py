# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/health/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Post-install health verification package initialization

from .verifier import HealthVerifier

__all__ = ['HealthVerifier']
