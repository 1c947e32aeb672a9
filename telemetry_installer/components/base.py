# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/base.py
# Author: Elven Observability
# Details of functionality of this file: Shared install pipeline for agent components - fetch, extract, render, validate, register, verify

"""
Agent component base.

Every binary-distributed agent goes through the same pipeline:

    fetch -> extract -> render -> validate -> register -> verify

Subclasses describe WHAT (artifact, config, service, endpoint); the base
class owns HOW. Package-installed components override install().
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import ValidationError
from ..models import (
    ArtifactSpec,
    HealthEndpoint,
    PlatformDescriptor,
    RenderedConfig,
    RestartPolicy,
    ServiceDescriptor,
)
from ..settings import InstallerSettings
from ..system.commands import run_command
from ..system.file_security import chown_to, restrict_to_owner
from ..system.processes import foreign_listeners

logger = logging.getLogger(__name__)


@dataclass
class InstallContext:
    """Collaborators shared by every component in one run."""
    settings: InstallerSettings
    platform: PlatformDescriptor
    workspace: Path
    fetcher: object
    releases: object
    archives: object
    validator: object
    manager: object
    registrar: object
    verifier: object
    rollback: object
    packages: object = None
    runner: object = run_command

    def restart_policy(self) -> RestartPolicy:
        return RestartPolicy(
            max_restarts=self.settings.restart_max,
            delay_seconds=self.settings.restart_delay,
            reset_window_seconds=self.settings.restart_reset_window,
        )


@dataclass
class ComponentResult:
    """What one component installed."""
    name: str
    version: str
    services: List[str] = field(default_factory=list)
    binaries: List[Path] = field(default_factory=list)
    configs: List[Path] = field(default_factory=list)
    directories: List[Path] = field(default_factory=list)
    endpoint_ok: bool = True
    notes: Dict[str, str] = field(default_factory=dict)


class AgentComponent:
    """Base class for an installable agent."""

    name = ""
    display_name = ""
    description = ""
    documentation: Optional[str] = None
    process_pattern = ""
    port: Optional[int] = None

    def __init__(self, ctx: InstallContext):
        self.ctx = ctx

    # -- description hooks --------------------------------------------

    def artifact(self) -> ArtifactSpec:
        raise NotImplementedError

    def render(self) -> Optional[RenderedConfig]:
        return None

    def validate_command(self, config: RenderedConfig) -> Optional[List[str]]:
        return None

    def service(self, binary: Path) -> ServiceDescriptor:
        raise NotImplementedError

    def endpoint(self) -> Optional[HealthEndpoint]:
        return None

    def config_dirs(self) -> List[Path]:
        return []

    # -- pipeline -----------------------------------------------------

    def preflight(self) -> None:
        """
        Raises:
            ValidationError: Required port held by a process that is not this agent
        """
        if self.port is None:
            return
        others = foreign_listeners(self.port, self.process_pattern)
        if others:
            holders = ', '.join(sorted({f"{l.process_name or 'unknown'} (pid {l.pid})" for l in others}))
            raise ValidationError(
                f"Port {self.port} required by {self.display_name} is already in use by {holders}",
                remediation=f"Stop the process using port {self.port} and re-run the installer",
            )

    def obtain(self, spec: ArtifactSpec) -> Path:
        """Download the artifact into the run workspace."""
        print(f"Downloading {spec.name} v{spec.version}...")
        destination = self.ctx.workspace / spec.download_name
        return self.ctx.fetcher.fetch(spec.url, destination,
                                      max_retries=self.ctx.settings.download_attempts)

    def after_binary(self, binary: Path) -> None:
        """Hook for post-install binary adjustments."""

    def write_config(self, config: RenderedConfig) -> Path:
        path = config.write()
        restrict_to_owner(path, config.mode)
        if config.owner:
            chown_to(path, config.owner)
        self.ctx.rollback.record_path(path)
        print(f"✓ Configuration created: {path}")
        return path

    def install(self) -> ComponentResult:
        ctx = self.ctx
        spec = self.artifact()
        result = ComponentResult(name=self.name, version=spec.version)

        archive = self.obtain(spec)
        binary = ctx.archives.install(archive, spec)
        ctx.rollback.record_path(spec.install_dir)
        result.binaries.append(binary)
        result.directories.append(spec.install_dir)
        self.after_binary(binary)

        config = self.render()
        if config is not None:
            result.configs.append(self.write_config(config))
            command = self.validate_command(config)
            if command:
                ctx.validator.validate(command, config.path)
        result.directories.extend(self.config_dirs())

        ctx.registrar.register(self.service(binary), self.process_pattern)
        result.services.append(self.name)
        result.endpoint_ok = ctx.verifier.verify(self.name, self.endpoint())
        return result
