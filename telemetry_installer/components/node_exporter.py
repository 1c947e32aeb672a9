# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/node_exporter.py
# Author: Elven Observability
# Details of functionality of this file: Prometheus Node Exporter component (Linux host metrics on :9100)

from pathlib import Path

from ..artifacts.catalog import node_exporter_spec
from ..models import ArtifactSpec, HealthEndpoint, ServiceDescriptor
from .base import AgentComponent

NODE_EXPORTER_PORT = 9100


class NodeExporter(AgentComponent):
    name = "node_exporter"
    display_name = "Node Exporter"
    description = "Node Exporter"
    documentation = "https://prometheus.io/docs/guides/node-exporter/"
    process_pattern = r"node_exporter"
    port = NODE_EXPORTER_PORT

    def artifact(self) -> ArtifactSpec:
        settings = self.ctx.settings
        return node_exporter_spec(settings.version('node_exporter'), self.ctx.platform.arch,
                                  Path(settings.install_root))

    def service(self, binary: Path) -> ServiceDescriptor:
        return ServiceDescriptor(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            binary_path=binary,
            restart=self.ctx.restart_policy(),
            documentation=self.documentation,
        )

    def endpoint(self) -> HealthEndpoint:
        return HealthEndpoint(url=f"http://localhost:{self.port}/metrics", expected_prefix="node_")
