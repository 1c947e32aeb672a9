# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/windows_exporter.py
# Author: Elven Observability
# Details of functionality of this file: Prometheus Windows Exporter component (Windows host metrics on :9182)

from pathlib import Path

from ..artifacts.catalog import windows_exporter_spec
from ..models import ArtifactSpec, HealthEndpoint, ServiceDescriptor, StartMode
from .base import AgentComponent

WINDOWS_EXPORTER_PORT = 9182
DEFAULT_COLLECTORS = "cpu,cs,logical_disk,memory,net,os,service,system"


class WindowsExporter(AgentComponent):
    name = "windows_exporter"
    display_name = "Windows Exporter"
    description = "Prometheus exporter for Windows machines"
    process_pattern = r"windows_exporter"
    port = WINDOWS_EXPORTER_PORT

    def artifact(self) -> ArtifactSpec:
        settings = self.ctx.settings
        return windows_exporter_spec(settings.version('windows_exporter'), self.ctx.platform.arch,
                                     Path(settings.windows_install_root))

    def service(self, binary: Path) -> ServiceDescriptor:
        return ServiceDescriptor(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            binary_path=binary,
            arguments=(f"--collectors.enabled={DEFAULT_COLLECTORS}",
                       f"--web.listen-address=:{self.port}"),
            start_mode=StartMode.AUTOMATIC,
            restart=self.ctx.restart_policy(),
        )

    def endpoint(self) -> HealthEndpoint:
        return HealthEndpoint(url=f"http://localhost:{self.port}/metrics", expected_prefix="windows_")
