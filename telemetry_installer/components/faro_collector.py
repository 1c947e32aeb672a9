# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/faro_collector.py
# Author: Elven Observability
# Details of functionality of this file: Faro frontend collector component - binary source selection, env file, SELinux labelling

"""
Faro collector (frontend instrumentation to Loki).

Binary source, first match wins:

1. LOCAL_BINARY  - copy an operator-supplied file
2. BINARY_URL    - download from an explicit URL
3. GITHUB_TOKEN  - private release asset through the GitHub API
4. public release download URL

"latest" is resolved through the releases API, falling back to a fixed tag
when the API cannot be read.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional

from ..artifacts.archive_installer import binary_source_path
from ..artifacts.catalog import FARO_ASSET_NAME, faro_spec
from ..config.env_renderer import render_faro_env
from ..models import ArtifactSpec, FaroRequest, HealthEndpoint, RenderedConfig, ServiceDescriptor
from ..settings import FARO_FALLBACK_VERSION
from ..system.file_security import apply_bin_context
from .base import AgentComponent, InstallContext

logger = logging.getLogger(__name__)


class FaroCollector(AgentComponent):
    name = "collector-fe-instrumentation"
    display_name = "Faro Collector"
    description = "Faro Collector (Frontend Instrumentation to Loki)"
    process_pattern = r"collector-fe"

    def __init__(self, ctx: InstallContext, request: FaroRequest):
        super().__init__(ctx)
        self.request = request
        self.port = request.port
        self._tag: Optional[str] = None
        self._token: Optional[str] = request.github_token

    @property
    def documentation(self) -> str:
        return f"https://github.com/{self.request.github_repo}"

    @property
    def env_path(self) -> Path:
        return Path(self.ctx.settings.faro_config_dir) / 'env'

    def github_token(self) -> Optional[str]:
        """GITHUB_TOKEN, else a token from an authenticated `gh` CLI."""
        if self._token is None and shutil.which('gh'):
            result = self.ctx.runner(['gh', 'auth', 'token'], timeout=15, secret=True)
            if result.returncode == 0 and result.stdout.strip():
                self._token = result.stdout.strip()
        return self._token

    def tag(self) -> str:
        if self._tag is None:
            if self.request.version == 'latest':
                self._tag = self.ctx.releases.resolve_latest(
                    self.request.github_repo, token=self.github_token(), fallback=FARO_FALLBACK_VERSION)
                print(f"Release: {self._tag}")
            else:
                self._tag = self.request.version
        return self._tag

    def artifact(self) -> ArtifactSpec:
        request = self.request
        tag = 'local' if request.local_binary else ('custom' if request.binary_url else self.tag())
        return faro_spec(request.github_repo, tag, self.ctx.platform.arch,
                         Path(self.ctx.settings.faro_install_dir), url=request.binary_url)

    def obtain(self, spec: ArtifactSpec) -> Path:
        request = self.request
        if request.local_binary:
            print(f"Copying from {request.local_binary}...")
            return binary_source_path(request.local_binary)

        if request.binary_url:
            print("Downloading from BINARY_URL...")
            return super().obtain(spec)

        token = self.github_token()
        if token:
            asset = FARO_ASSET_NAME.format(arch=self.ctx.platform.arch)
            print(f"Repo: {request.github_repo} (private) | Downloading asset: {asset}")
            url, headers = self.ctx.releases.asset_download(request.github_repo, spec.version, asset, token)
            destination = self.ctx.workspace / asset
            return self.ctx.fetcher.fetch(url, destination, max_retries=self.ctx.settings.download_attempts,
                                          headers=headers)

        print(f"Repo: {request.github_repo} | Downloading: {spec.url}")
        return super().obtain(spec)

    def after_binary(self, binary: Path) -> None:
        if apply_bin_context(binary):
            print("✓ SELinux OK")

    def render(self) -> RenderedConfig:
        print("Writing configuration...")
        return render_faro_env(self.request, self.env_path)

    def config_dirs(self) -> List[Path]:
        return [self.env_path.parent]

    def service(self, binary: Path) -> ServiceDescriptor:
        return ServiceDescriptor(
            name=self.name,
            display_name=self.display_name,
            description=self.description,
            binary_path=binary,
            restart=self.ctx.restart_policy(),
            environment_file=self.env_path,
            documentation=self.documentation,
        )

    def endpoint(self) -> HealthEndpoint:
        return HealthEndpoint(url=f"http://localhost:{self.port}/health")
