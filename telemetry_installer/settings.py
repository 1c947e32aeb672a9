# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/settings.py
# Author: Elven Observability
# Details of functionality of this file: Installer constants and optional YAML settings overrides validated against a JSON schema

"""
Installer Settings: pinned versions, fixed paths and retry bounds.

Defaults live here. An optional YAML file (--config or
TELEMETRY_INSTALLER_CONFIG) may override them; it is validated with
jsonschema before use. Request fields (tenant, token, ...) are NOT settings;
they come from environment variables or prompts.
"""

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml

from .errors import ConfigurationError

CONFIG_ENV_VAR = "TELEMETRY_INSTALLER_CONFIG"

# Pinned component versions
NODE_EXPORTER_VERSION = "1.8.2"
OTEL_VERSION = "0.114.0"
WINDOWS_EXPORTER_VERSION = "0.29.2"
ZABBIX_VERSION = "7.0"
ZABBIX_RELEASE = "7.0-2"
POSTGRES_VERSION = "17"

DEFAULT_VERSIONS = {
    'node_exporter': NODE_EXPORTER_VERSION,
    'otelcol': OTEL_VERSION,
    'windows_exporter': WINDOWS_EXPORTER_VERSION,
    'zabbix': ZABBIX_VERSION,
    'postgres': POSTGRES_VERSION,
}

DEFAULT_ENDPOINT = "https://mimir.elvenobservability.com/api/v1/push"
DEFAULT_LOKI_URL = "https://loki.elvenobservability.com"
DEFAULT_ENVIRONMENT = "production"
FARO_GITHUB_REPO = "elven-observability/collector-fe-instrumentation"
# Last-resort tag when the releases API cannot be read (Faro only)
FARO_FALLBACK_VERSION = "v0.1.0"

SETTINGS_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "versions": {
            "type": "object",
            "additionalProperties": {"type": "string", "minLength": 1},
        },
        "default_endpoint": {"type": "string", "pattern": "^https?://"},
        "default_loki_url": {"type": "string", "pattern": "^https?://"},
        "install_root": {"type": "string", "minLength": 1},
        "otel_config_dir": {"type": "string", "minLength": 1},
        "faro_install_dir": {"type": "string", "minLength": 1},
        "faro_config_dir": {"type": "string", "minLength": 1},
        "faro_repo": {"type": "string", "pattern": "^[^/\\s]+/[^/\\s]+$"},
        "windows_install_root": {"type": "string", "minLength": 1},
        "windows_config_dir": {"type": "string", "minLength": 1},
        "systemd_unit_dir": {"type": "string", "minLength": 1},
        "state_dir": {"type": "string", "minLength": 1},
        "log_file": {"type": "string", "minLength": 1},
        "zabbix_conf": {"type": "string", "minLength": 1},
        "download_attempts": {"type": "integer", "minimum": 1, "maximum": 10},
        "download_delay": {"type": "number", "minimum": 0},
        "http_timeout": {"type": "number", "exclusiveMinimum": 0},
        "probe_attempts": {"type": "integer", "minimum": 1, "maximum": 10},
        "probe_delay": {"type": "number", "minimum": 0},
        "service_poll_attempts": {"type": "integer", "minimum": 1, "maximum": 60},
        "service_poll_delay": {"type": "number", "minimum": 0},
        "restart_max": {"type": "integer", "minimum": 0, "maximum": 10},
        "restart_delay": {"type": "integer", "minimum": 1},
        "restart_reset_window": {"type": "integer", "minimum": 1},
    },
}


@dataclass(frozen=True)
class InstallerSettings:
    """Effective installer settings for one run."""
    versions: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_VERSIONS))
    default_endpoint: str = DEFAULT_ENDPOINT
    default_loki_url: str = DEFAULT_LOKI_URL
    install_root: str = "/opt/monitoring"
    otel_config_dir: str = "/etc/otelcol"
    faro_install_dir: str = "/opt/collector-fe-instrumentation"
    faro_config_dir: str = "/etc/collector-fe-instrumentation"
    faro_repo: str = FARO_GITHUB_REPO
    windows_install_root: str = r"C:\Program Files\ElvenObservability"
    windows_config_dir: str = r"C:\ProgramData\ElvenObservability"
    systemd_unit_dir: str = "/etc/systemd/system"
    state_dir: str = "/var/lib/telemetry-installer"
    log_file: str = "/var/log/telemetry-installer/install.log"
    zabbix_conf: str = "/etc/zabbix/zabbix_proxy.conf"
    download_attempts: int = 3
    download_delay: float = 3.0
    http_timeout: float = 60.0
    probe_attempts: int = 3
    probe_delay: float = 2.0
    service_poll_attempts: int = 5
    service_poll_delay: float = 2.0
    restart_max: int = 3
    restart_delay: int = 5
    restart_reset_window: int = 86400

    def version(self, component: str) -> str:
        try:
            return self.versions[component]
        except KeyError:
            raise ConfigurationError(f"No pinned version for component '{component}'")


def load_settings(path: Optional[Path] = None) -> InstallerSettings:
    """
    Load settings, applying overrides from a YAML file if one is given.

    Args:
        path: Explicit settings file. Falls back to $TELEMETRY_INSTALLER_CONFIG.

    Returns:
        InstallerSettings

    Raises:
        ConfigurationError: If the file is missing, unreadable or fails schema validation
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR, '').strip()
        if not env_path:
            return InstallerSettings()
        path = Path(env_path)

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Settings file not found: {path}",
            remediation=f"Create the file or unset {CONFIG_ENV_VAR}",
        )

    try:
        with open(path, 'r') as f:
            overrides = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read settings file {path}: {e}")

    return apply_overrides(InstallerSettings(), overrides, source=str(path))


def apply_overrides(settings: InstallerSettings, overrides: Dict[str, Any],
                    source: str = "<overrides>") -> InstallerSettings:
    """Validate an override mapping and merge it into `settings`."""
    try:
        jsonschema.validate(overrides, SETTINGS_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '.'.join(str(p) for p in e.absolute_path) or '<root>'
        raise ConfigurationError(f"Invalid settings in {source} at {location}: {e.message}")

    known = {f.name for f in fields(InstallerSettings)}
    changes = {k: v for k, v in overrides.items() if k in known and k != 'versions'}
    if 'versions' in overrides:
        merged = dict(settings.versions)
        merged.update(overrides['versions'])
        changes['versions'] = merged
    return replace(settings, **changes)
