# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/config/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Agent configuration rendering package initialization

"""
Config package: collector YAML, Faro env file, Zabbix proxy config and
validation through each agent's own binary.
"""

from .env_renderer import render_faro_env
from .otel_renderer import render_otel_config
from .validation import ConfigValidator
from .zabbix_renderer import performance_params, render_zabbix_proxy_conf

__all__ = [
    'render_faro_env',
    'render_otel_config',
    'ConfigValidator',
    'performance_params',
    'render_zabbix_proxy_conf',
]
