# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/inputs/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Input resolution package initialization

"""
Inputs package: environment/prompt resolution and custom label parsing.
"""

from .labels import parse_custom_labels
from .prompter import ConsolePrompter
from .resolver import InputResolver

__all__ = ['parse_custom_labels', 'ConsolePrompter', 'InputResolver']
