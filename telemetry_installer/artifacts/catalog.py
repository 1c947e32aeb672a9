# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/catalog.py
# Author: Elven Observability
# Details of functionality of this file: Deterministic mapping from (component, version, os, arch) to release download URLs

"""
Artifact catalog. Same inputs always give the same URL.
"""

from pathlib import Path

from ..models import ArchiveKind, ArtifactSpec

NODE_EXPORTER_URL = ("https://github.com/prometheus/node_exporter/releases/download/"
                     "v{version}/node_exporter-{version}.{os}-{arch}.tar.gz")
OTELCOL_URL = ("https://github.com/open-telemetry/opentelemetry-collector-releases/releases/download/"
               "v{version}/otelcol-contrib_{version}_{os}_{arch}.tar.gz")
WINDOWS_EXPORTER_URL = ("https://github.com/prometheus-community/windows_exporter/releases/download/"
                        "v{version}/windows_exporter-{version}-{arch}.exe")
FARO_ASSET_NAME = "collector-fe-instrumentation-linux-{arch}"
FARO_URL = "https://github.com/{repo}/releases/download/{tag}/" + FARO_ASSET_NAME


def node_exporter_spec(version: str, arch: str, install_root: Path) -> ArtifactSpec:
    return ArtifactSpec(
        name='node_exporter',
        version=version,
        os='linux',
        arch=arch,
        url=NODE_EXPORTER_URL.format(version=version, os='linux', arch=arch),
        kind=ArchiveKind.TAR_GZ,
        binary_name='node_exporter',
        install_dir=Path(install_root) / 'node_exporter',
    )


def otelcol_spec(version: str, os_family: str, arch: str, install_root: Path) -> ArtifactSpec:
    binary = 'otelcol-contrib.exe' if os_family == 'windows' else 'otelcol-contrib'
    return ArtifactSpec(
        name='otelcol-contrib',
        version=version,
        os=os_family,
        arch=arch,
        url=OTELCOL_URL.format(version=version, os=os_family, arch=arch),
        kind=ArchiveKind.TAR_GZ,
        binary_name=binary,
        install_dir=Path(install_root) / 'otelcol',
    )


def windows_exporter_spec(version: str, arch: str, install_root: Path) -> ArtifactSpec:
    return ArtifactSpec(
        name='windows_exporter',
        version=version,
        os='windows',
        arch=arch,
        url=WINDOWS_EXPORTER_URL.format(version=version, arch=arch),
        kind=ArchiveKind.BINARY,
        binary_name='windows_exporter.exe',
        install_dir=Path(install_root) / 'windows_exporter',
    )


def faro_spec(repo: str, tag: str, arch: str, install_dir: Path, url: str = None) -> ArtifactSpec:
    """Faro collector is a bare binary; `url` overrides the public release URL (BINARY_URL)."""
    return ArtifactSpec(
        name='collector-fe-instrumentation',
        version=tag,
        os='linux',
        arch=arch,
        url=url or FARO_URL.format(repo=repo, tag=tag, arch=arch),
        kind=ArchiveKind.BINARY,
        binary_name='collector-fe-instrumentation',
        install_dir=Path(install_dir),
    )
