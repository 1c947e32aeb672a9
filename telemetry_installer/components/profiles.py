# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/profiles.py
# Author: Elven Observability
# Details of functionality of this file: Installation profiles - which OS they run on, which inputs they need and which components they install

"""
Installation profiles.

A profile is one logical agent installation:

    linux    Node Exporter + OpenTelemetry Collector      (Linux)
    windows  Windows Exporter + OpenTelemetry Collector   (Windows)
    faro     Faro frontend collector                      (Linux)
    zabbix   Zabbix Proxy + PostgreSQL                    (Linux, packages)
"""

from typing import Dict, List, Tuple

from ..errors import ValidationError
from ..models import PlatformDescriptor
from ..settings import ZABBIX_RELEASE
from .base import AgentComponent, InstallContext
from .faro_collector import FaroCollector
from .node_exporter import NODE_EXPORTER_PORT, NodeExporter
from .otel_collector import OtelCollector
from .windows_exporter import WINDOWS_EXPORTER_PORT, WindowsExporter
from .zabbix_proxy import ZabbixProxy


class InstallProfile:
    """Base profile. Subclasses fill in the class attributes and hooks."""

    name = ""
    title = ""
    os_family = "linux"
    uses_packages = False
    service_names: Tuple[str, ...] = ()

    def check_platform(self, platform: PlatformDescriptor) -> None:
        if platform.os_family != self.os_family:
            raise ValidationError(
                f"Profile '{self.name}' installs on {self.os_family}, this host runs {platform.os_family}",
                remediation=f"Use one of: {', '.join(p.name for p in profiles_for(platform.os_family))}",
            )

    def resolve(self, resolver):
        raise NotImplementedError

    def summary_rows(self, request, platform: PlatformDescriptor) -> List[Tuple[str, str]]:
        return [("Host", platform.hostname), ("OS", platform.display_name)] + request.masked_summary()

    def components(self, ctx: InstallContext, request) -> List[AgentComponent]:
        raise NotImplementedError

    def useful_commands(self, services: List[str]) -> List[str]:
        commands = []
        for service in services:
            commands.append(f"systemctl status {service}")
            commands.append(f"journalctl -u {service} -f")
        return commands

    def next_steps(self, request) -> List[str]:
        return []


class LinuxMetricsProfile(InstallProfile):
    name = "linux"
    title = "Node Exporter + OpenTelemetry Collector"
    service_names = (NodeExporter.name, OtelCollector.name)

    def resolve(self, resolver):
        return resolver.resolve_metrics()

    def components(self, ctx, request):
        return [
            NodeExporter(ctx),
            OtelCollector(ctx, request, f"localhost:{NODE_EXPORTER_PORT}", "node_exporter"),
        ]

    def next_steps(self, request):
        return [f'Grafana query: up{{hostname="{request.instance_name}"}}']


class WindowsMetricsProfile(InstallProfile):
    name = "windows"
    title = "Windows Exporter + OpenTelemetry Collector"
    os_family = "windows"
    service_names = (WindowsExporter.name, OtelCollector.name)

    def resolve(self, resolver):
        return resolver.resolve_metrics()

    def components(self, ctx, request):
        return [
            WindowsExporter(ctx),
            OtelCollector(ctx, request, f"localhost:{WINDOWS_EXPORTER_PORT}", "windows_exporter"),
        ]

    def useful_commands(self, services):
        commands = []
        for service in services:
            commands.append(f"sc.exe query {service}")
            commands.append(f"Restart-Service {service}")
        return commands

    def next_steps(self, request):
        return [f'Grafana query: up{{hostname="{request.instance_name}"}}']


class FaroProfile(InstallProfile):
    name = "faro"
    title = "Faro Collector (Frontend Instrumentation)"
    service_names = (FaroCollector.name,)

    def resolve(self, resolver):
        return resolver.resolve_faro()

    def components(self, ctx, request):
        return [FaroCollector(ctx, request)]

    def next_steps(self, request):
        return [
            f"Health check: curl http://localhost:{request.port}/health",
            "Point the Faro SDK at this collector and sign requests with SECRET_KEY",
        ]


class ZabbixProfile(InstallProfile):
    name = "zabbix"
    title = "Zabbix Proxy + PostgreSQL"
    uses_packages = True
    service_names = (ZabbixProxy.name,)

    def check_platform(self, platform):
        super().check_platform(platform)
        if platform.package_manager != 'apt' and platform.arch != 'amd64':
            raise ValidationError(
                f"Zabbix packages for {platform.display_name} are published for x86_64 only (host is {platform.arch})")

    def resolve(self, resolver):
        return resolver.resolve_zabbix()

    def components(self, ctx, request):
        return [ZabbixProxy(ctx, request, release=ZABBIX_RELEASE)]

    def next_steps(self, request):
        steps = [
            "In the Zabbix frontend: Administration -> Proxies -> Create proxy",
            f"  Proxy name: {request.proxy_name}",
            f"  Proxy mode: {request.mode_name}",
        ]
        if request.proxy_mode == 1:
            steps.append("  Proxy address: this host, port 10051")
        steps.append("Logs: tail -f /var/log/zabbix/zabbix_proxy.log")
        return steps


PROFILES: Dict[str, InstallProfile] = {
    profile.name: profile
    for profile in (LinuxMetricsProfile(), WindowsMetricsProfile(), FaroProfile(), ZabbixProfile())
}


def get_profile(name: str) -> InstallProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValidationError(f"Unknown profile: {name}",
                              remediation=f"Available profiles: {', '.join(PROFILES)}")


def profiles_for(os_family: str) -> List[InstallProfile]:
    return [p for p in PROFILES.values() if p.os_family == os_family]
