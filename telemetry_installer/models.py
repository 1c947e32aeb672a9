# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/models.py
# Author: Elven Observability
# Details of functionality of this file: Immutable data model passed between installer stages

"""
Installer data model.

Everything here is constructed fresh on each run from environment, prompts
and the probed platform, then passed explicitly through the stages. Nothing
is cached between runs.
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import ValidationError

ENDPOINT_PATTERN = re.compile(r'^https?://')

# Label keys set by the installer itself; custom labels may not override them
PROTECTED_LABEL_KEYS = frozenset({'hostname', 'instance', 'environment', 'os', 'customer', 'distro'})


class ArchiveKind(Enum):
    """How a downloaded artifact is turned into an installed binary."""
    TAR_GZ = "tar.gz"
    ZIP = "zip"
    BINARY = "binary"


class StartMode(Enum):
    AUTOMATIC = "auto"
    MANUAL = "demand"


@dataclass(frozen=True)
class InstallationRequest:
    """Resolved inputs for a metrics agent installation (exporter + collector)."""
    tenant_id: str
    auth_token: str
    instance_name: str
    environment: str
    endpoint_url: str
    customer_name: str = ""
    custom_labels: Dict[str, str] = field(default_factory=dict)
    versions: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.tenant_id.strip():
            raise ValidationError("Tenant ID cannot be empty!")
        if not self.auth_token.strip():
            raise ValidationError("API Token cannot be empty!")
        if not ENDPOINT_PATTERN.match(self.endpoint_url):
            raise ValidationError(
                f"Endpoint must start with http:// or https:// (got '{self.endpoint_url}')",
                remediation="Example: https://metrics.example.com/api/v1/push",
            )
        clashes = sorted(set(self.custom_labels) & PROTECTED_LABEL_KEYS)
        if clashes:
            raise ValidationError(
                f"Custom labels may not override installer labels: {', '.join(clashes)}"
            )

    def masked_summary(self) -> List[Tuple[str, str]]:
        """Operator-facing summary. The token is never shown."""
        rows = [
            ("Tenant ID", self.tenant_id),
            ("Instance", self.instance_name),
        ]
        if self.customer_name:
            rows.append(("Customer", self.customer_name))
        rows.append(("Environment", self.environment))
        rows.append(("Endpoint", self.endpoint_url))
        if self.custom_labels:
            rows.append(("Labels", ', '.join(f"{k}={v}" for k, v in self.custom_labels.items())))
        return rows


@dataclass(frozen=True)
class FaroRequest:
    """Resolved inputs for the Faro frontend collector."""
    secret_key: str
    loki_url: str
    loki_api_token: str
    allow_origins: str = "*"
    port: int = 3000
    jwt_issuer: str = "trusted-issuer"
    jwt_validate_exp: str = "false"
    github_repo: str = ""
    version: str = "latest"
    github_token: Optional[str] = None
    local_binary: Optional[str] = None
    binary_url: Optional[str] = None

    MIN_SECRET_LENGTH = 64

    def __post_init__(self):
        if len(self.secret_key) < self.MIN_SECRET_LENGTH:
            raise ValidationError(f"SECRET_KEY must be at least {self.MIN_SECRET_LENGTH} characters")
        if not self.loki_api_token.strip():
            raise ValidationError("LOKI_API_TOKEN cannot be empty")
        if not ENDPOINT_PATTERN.match(self.loki_url):
            raise ValidationError(f"LOKI_URL must start with http:// or https:// (got '{self.loki_url}')")
        if not 1 <= self.port <= 65535:
            raise ValidationError(f"PORT must be between 1 and 65535 (got {self.port})")
        if self.jwt_validate_exp not in ('true', 'false'):
            raise ValidationError(f"JWT_VALIDATE_EXP must be 'true' or 'false' (got '{self.jwt_validate_exp}')")

    def masked_summary(self) -> List[Tuple[str, str]]:
        return [
            ("SECRET_KEY", f"(set, {len(self.secret_key)} chars)"),
            ("LOKI_URL", self.loki_url),
            ("LOKI_API_TOKEN", "****"),
            ("ALLOW_ORIGINS", self.allow_origins),
            ("PORT", str(self.port)),
        ]


PERFORMANCE_PROFILES = ('light', 'medium', 'heavy', 'ultra')


@dataclass(frozen=True)
class ZabbixProxyRequest:
    """Resolved inputs for Zabbix Proxy + PostgreSQL."""
    zabbix_server: str
    proxy_name: str
    db_password: str
    proxy_mode: int = 0
    performance_profile: str = "medium"

    MIN_PASSWORD_LENGTH = 8

    def __post_init__(self):
        if not self.zabbix_server.strip():
            raise ValidationError("Zabbix Server cannot be empty!")
        if not self.proxy_name.strip():
            raise ValidationError("Proxy Name cannot be empty!")
        if len(self.db_password) < self.MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {self.MIN_PASSWORD_LENGTH} characters!")
        if self.proxy_mode not in (0, 1):
            raise ValidationError(f"Proxy mode must be 0 (active) or 1 (passive), got {self.proxy_mode}")
        if self.performance_profile not in PERFORMANCE_PROFILES:
            raise ValidationError(f"Unknown performance profile: {self.performance_profile}")

    @property
    def mode_name(self) -> str:
        return 'Active' if self.proxy_mode == 0 else 'Passive'

    def masked_summary(self) -> List[Tuple[str, str]]:
        return [
            ("Zabbix Server", self.zabbix_server),
            ("Proxy Name", self.proxy_name),
            ("Proxy Mode", self.mode_name),
            ("Performance", self.performance_profile),
        ]


@dataclass(frozen=True)
class PlatformDescriptor:
    """Host capabilities, probed once per run."""
    os_family: str
    arch: str
    hostname: str
    distro_id: str = ""
    distro_version: str = ""
    distro_name: str = ""
    distro_codename: str = ""
    package_manager: Optional[str] = None
    service_manager: Optional[str] = None
    has_tar: bool = False
    has_7zip: bool = False
    is_admin: bool = False

    @property
    def is_linux(self) -> bool:
        return self.os_family == 'linux'

    @property
    def is_windows(self) -> bool:
        return self.os_family == 'windows'

    @property
    def display_name(self) -> str:
        return self.distro_name or self.os_family


@dataclass(frozen=True)
class ArtifactSpec:
    """A (name, version, os, arch) tuple mapped to a download URL and install location."""
    name: str
    version: str
    os: str
    arch: str
    url: str
    kind: ArchiveKind
    binary_name: str
    install_dir: Path

    @property
    def install_path(self) -> Path:
        return self.install_dir / self.binary_name

    @property
    def download_name(self) -> str:
        return self.url.rstrip('/').rsplit('/', 1)[-1]


@dataclass(frozen=True)
class RestartPolicy:
    """Bounded restart-on-failure: max_restarts within reset_window seconds, delay between."""
    max_restarts: int = 3
    delay_seconds: int = 5
    reset_window_seconds: int = 86400


@dataclass(frozen=True)
class ServiceDescriptor:
    """OS service entry bound to an installed binary."""
    name: str
    display_name: str
    description: str
    binary_path: Path
    arguments: Tuple[str, ...] = ()
    start_mode: StartMode = StartMode.AUTOMATIC
    restart: RestartPolicy = field(default_factory=RestartPolicy)
    environment_file: Optional[Path] = None
    documentation: Optional[str] = None
    user: str = "root"

    def command_line(self) -> str:
        parts = [str(self.binary_path)] + list(self.arguments)
        return ' '.join(_quote_arg(p) for p in parts)


def _quote_arg(arg: str) -> str:
    if not arg or any(c in arg for c in ' \t"'):
        return '"' + arg.replace('"', '\\"') + '"'
    return arg


@dataclass
class RenderedConfig:
    """A generated configuration document and where it is written."""
    path: Path
    text: str
    document: Any = None
    mode: int = 0o600
    owner: Optional[str] = None

    def write(self) -> Path:
        """Write the document, creating the file with `mode` so credentials are never world-readable."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, self.mode)
        with os.fdopen(fd, 'w') as f:
            f.write(self.text)
        # Existing files keep their old mode through O_CREAT
        os.chmod(self.path, self.mode)
        return self.path


@dataclass(frozen=True)
class HealthEndpoint:
    """HTTP endpoint probed after start. Content check is advisory."""
    url: str
    expected_prefix: Optional[str] = None
