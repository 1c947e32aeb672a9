# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/zabbix_proxy.py
# Author: Elven Observability
# Details of functionality of this file: Zabbix Proxy with PostgreSQL backend - packages, database, tuned config, service start

"""
Zabbix Proxy component.

Unlike the binary agents, the proxy and its database come from OS packages
(PGDG and repo.zabbix.com). Order:

    PostgreSQL -> tuning -> database/user -> Zabbix packages ->
    schema import -> zabbix_proxy.conf -> validate -> start -> listener check
"""

import logging
import shutil
from pathlib import Path

from ..config.zabbix_renderer import (
    LISTEN_PORT,
    performance_params,
    render_postgres_tuning,
    render_zabbix_proxy_conf,
)
from ..errors import PackageError
from ..models import ZabbixProxyRequest
from ..system.commands import format_command
from ..system.file_security import chown_to
from ..system.processes import cpu_count, memory_gb
from .base import AgentComponent, ComponentResult, InstallContext
from .postgres import PostgresServer

logger = logging.getLogger(__name__)

ZABBIX_PACKAGES = ['zabbix-proxy-pgsql', 'zabbix-sql-scripts']
ZABBIX_LOG_DIR = Path("/var/log/zabbix")
APT_RELEASE_URL = ("https://repo.zabbix.com/zabbix/{version}/{distro}/pool/main/z/zabbix-release/"
                   "zabbix-release_latest_{codename}_all.deb")
RPM_RELEASE_URL = ("https://repo.zabbix.com/zabbix/{version}/rhel/{rhel}/x86_64/"
                   "zabbix-release-{release}.el{rhel}.noarch.rpm")


class ZabbixProxy(AgentComponent):
    name = "zabbix-proxy"
    display_name = "Zabbix Proxy"
    description = "Zabbix Proxy (PostgreSQL)"
    process_pattern = r"zabbix_proxy"
    port = LISTEN_PORT

    def __init__(self, ctx: InstallContext, request: ZabbixProxyRequest, release: str):
        super().__init__(ctx)
        self.request = request
        self.release = release
        self.postgres = PostgresServer(ctx.platform, ctx.packages, ctx.fetcher, ctx.workspace,
                                       ctx.settings.version('postgres'), runner=ctx.runner)

    @property
    def version(self) -> str:
        return self.ctx.settings.version('zabbix')

    @property
    def conf_path(self) -> Path:
        return Path(self.ctx.settings.zabbix_conf)

    def install(self) -> ComponentResult:
        ctx = self.ctx
        result = ComponentResult(name=self.name, version=self.version)

        mem, cpus = memory_gb(), cpu_count()
        params = performance_params(self.request.performance_profile, mem, cpus)
        print(f"✓ Performance parameters for {self.request.performance_profile} profile:")
        print(f"  System: {mem}GB RAM, {cpus} CPUs")
        print(f"  Pollers: {params.start_pollers}")
        print(f"  Trappers: {params.start_trappers}")
        print(f"  Cache Size: {params.cache_size}")
        print(f"  History Cache: {params.history_cache_size}")
        print(f"  PostgreSQL Shared Buffers: {params.pg_shared_buffers}")

        if ctx.manager.exists(self.name) and ctx.manager.is_running(self.name):
            print(f"Stopping {self.name}...")
            ctx.manager.stop(self.name)

        print("")
        print(f"Installing PostgreSQL {self.postgres.version}")
        self.postgres.install()
        pg_service = self.postgres.start(ctx.manager, ctx.verifier)
        tuned = self.postgres.apply_tuning(render_postgres_tuning(params, cpus))
        if tuned is not None:
            ctx.verifier.verify(pg_service, start=False, restart=True, record=False)
            result.notes['postgres_conf'] = str(tuned)
        self.postgres.create_database(self.request.db_password)

        print("")
        print(f"Installing Zabbix Proxy {self.version} LTS")
        self.install_packages()
        self.postgres.import_schema(self.request.db_password)

        print("")
        print("Configuring Zabbix Proxy")
        if self.conf_path.exists():
            shutil.copy2(self.conf_path, self.conf_path.with_name(self.conf_path.name + '.backup'))
        config = render_zabbix_proxy_conf(self.request, params, self.conf_path)
        result.configs.append(self.write_config(config))
        ZABBIX_LOG_DIR.mkdir(parents=True, exist_ok=True)
        chown_to(ZABBIX_LOG_DIR, 'zabbix')
        ctx.validator.validate(['zabbix_proxy', '-T', '-c', str(self.conf_path)], self.conf_path)

        print("Starting Zabbix Proxy...")
        ctx.manager.enable(self.name)
        ctx.rollback.record_service(self.name, self.process_pattern)
        ctx.verifier.verify(self.name, start=False, restart=True)
        result.services.append(self.name)
        result.endpoint_ok = ctx.verifier.check_listener(LISTEN_PORT, self.process_pattern)
        result.notes['postgres_service'] = pg_service
        return result

    def install_packages(self) -> None:
        platform = self.ctx.platform
        packages = self.ctx.packages
        runner = self.ctx.runner
        print("Adding Zabbix repository...")

        if platform.package_manager == 'apt':
            url = APT_RELEASE_URL.format(version=self.version, distro=platform.distro_id,
                                         codename=platform.distro_codename)
            deb = self.ctx.fetcher.fetch(url, self.ctx.workspace / 'zabbix-release.deb',
                                         max_retries=self.ctx.settings.download_attempts)
            cmd = ['dpkg', '-i', str(deb)]
            if runner(cmd).returncode != 0:
                raise PackageError("Failed to install the Zabbix repository package",
                                   remediation=f"Run manually: {format_command(cmd)}")
            packages.update()
        else:
            rhel = self.postgres.rhel_major
            url = RPM_RELEASE_URL.format(version=self.version, rhel=rhel, release=self.release)
            cmd = ['rpm', '-Uvh', url]
            result = runner(cmd, timeout=300)
            if result.returncode != 0 and 'already installed' not in (result.stdout + result.stderr):
                raise PackageError(f"Failed to add the Zabbix repository: {result.stderr.strip()}",
                                   remediation=f"Run manually: {format_command(cmd)}")
            runner([packages.name, 'clean', 'all'])

        print("Installing Zabbix Proxy...")
        packages.install(ZABBIX_PACKAGES)
        print("✓ Zabbix Proxy installed!")
