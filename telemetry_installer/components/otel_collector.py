# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/otel_collector.py
# Author: Elven Observability
# Details of functionality of this file: OpenTelemetry Collector (contrib) component - scrapes the local exporter and remote-writes to Mimir

"""
OpenTelemetry Collector component.

Scrapes one local exporter and pushes to the tenant's remote-write
endpoint. The rendered config embeds the API token, so it is written owner
read/write only and validated with `otelcol-contrib validate` before the
service is registered.
"""

from pathlib import Path
from typing import List

from ..artifacts.catalog import otelcol_spec
from ..config.otel_renderer import render_otel_config
from ..models import (
    ArtifactSpec,
    HealthEndpoint,
    InstallationRequest,
    RenderedConfig,
    ServiceDescriptor,
)
from .base import AgentComponent, InstallContext

TELEMETRY_PORT = 8888


class OtelCollector(AgentComponent):
    name = "otelcol"
    display_name = "OpenTelemetry Collector"
    description = "OpenTelemetry Collector"
    documentation = "https://opentelemetry.io/docs/collector/"
    process_pattern = r"otelcol"
    port = TELEMETRY_PORT

    def __init__(self, ctx: InstallContext, request: InstallationRequest, scrape_target: str, job_name: str):
        super().__init__(ctx)
        self.request = request
        self.scrape_target = scrape_target
        self.job_name = job_name

    @property
    def config_dir(self) -> Path:
        settings = self.ctx.settings
        if self.ctx.platform.is_windows:
            return Path(settings.windows_config_dir) / 'otelcol'
        return Path(settings.otel_config_dir)

    @property
    def config_path(self) -> Path:
        return self.config_dir / 'config.yaml'

    def artifact(self) -> ArtifactSpec:
        platform = self.ctx.platform
        install_root = self.ctx.settings.windows_install_root if platform.is_windows else self.ctx.settings.install_root
        version = self.request.versions.get('otelcol') or self.ctx.settings.version('otelcol')
        return otelcol_spec(version, platform.os_family, platform.arch, Path(install_root))

    def render(self) -> RenderedConfig:
        print("Creating configuration...")
        return render_otel_config(self.request, self.ctx.platform, self.scrape_target,
                                  self.job_name, self.config_path)

    def validate_command(self, config: RenderedConfig) -> List[str]:
        return [str(self.artifact().install_path), 'validate', f'--config={config.path}']

    def config_dirs(self) -> List[Path]:
        return [self.config_dir]

    def service(self, binary: Path) -> ServiceDescriptor:
        return ServiceDescriptor(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            binary_path=binary,
            arguments=(f'--config={self.config_path}',),
            restart=self.ctx.restart_policy(),
            documentation=self.documentation,
        )

    def endpoint(self) -> HealthEndpoint:
        return HealthEndpoint(url=f"http://localhost:{TELEMETRY_PORT}/metrics", expected_prefix="otelcol_")
