# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/installer.py
# Author: Elven Observability
# Details of functionality of this file: Main installer orchestrator - pre-flight, inputs, confirmation, component install with rollback, install record, summary

"""
Telemetry Installer: main orchestrator.

One run installs one profile through a linear pipeline:

    pre-flight -> inputs -> port checks -> confirmation ->
    install (rollback on failure) -> install record -> summary

The run workspace is removed whatever the outcome. `uninstall` is the only
path that deletes installed files.
"""

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, List, Mapping, Optional

import requests

from . import __version__
from .artifacts import ArchiveInstaller, ArtifactFetcher, ReleaseResolver
from .components import ComponentResult, InstallContext, get_profile
from .config import ConfigValidator
from .errors import InstallerError
from .health import HealthVerifier
from .inputs import InputResolver
from .manifest import InstallRecordStore
from .models import PlatformDescriptor
from .rollback import RollbackManager, RunWorkspace
from .services import ServiceRegistrar, service_manager_for
from .settings import InstallerSettings
from .system import PackageManager, probe_platform, require_admin, require_systemd
from .system.commands import run_command

logger = logging.getLogger(__name__)

RULE = "=" * 60


class TelemetryInstaller:
    """Installs or removes one profile."""

    INSTALL_STEPS = 7
    UNINSTALL_STEPS = 3

    def __init__(self, profile_name: str, settings: InstallerSettings,
                 env: Optional[Mapping[str, str]] = None, prompter=None,
                 probe: Callable[[], PlatformDescriptor] = probe_platform,
                 manager=None, session: Optional[requests.Session] = None,
                 runner=run_command, sleep: Callable[[float], None] = time.sleep):
        self.profile = get_profile(profile_name)
        self.settings = settings
        self.env = env
        self.prompter = prompter
        self.probe = probe
        self.manager = manager
        self.session = session or requests.Session()
        self.runner = runner
        self.sleep = sleep
        self.records = InstallRecordStore(Path(settings.state_dir))
        self.results: List[ComponentResult] = []

    def _step(self, n: int, total: int, title: str) -> None:
        prefix = "" if n == 1 else "\n"
        print(f"{prefix}[{n}/{total}] {title}...")

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def _preflight(self) -> PlatformDescriptor:
        """
        Raises:
            ValidationError: Wrong OS for the profile, missing privileges, no systemd
        """
        platform = self.probe()
        print(f"✓ OS: {platform.display_name} ({platform.arch})")
        self.profile.check_platform(platform)
        require_admin(platform)
        print("✓ Running with administrative privileges")
        require_systemd(platform)
        if self.manager is None:
            self.manager = service_manager_for(platform, self.settings)
        return platform

    def _context(self, platform: PlatformDescriptor, workspace: Path, rollback: RollbackManager) -> InstallContext:
        settings = self.settings
        verifier = HealthVerifier(
            self.manager,
            poll_attempts=settings.service_poll_attempts,
            poll_delay=settings.service_poll_delay,
            probe_attempts=settings.probe_attempts,
            probe_delay=settings.probe_delay,
            session=self.session,
            rollback=rollback,
            sleep=self.sleep,
        )
        return InstallContext(
            settings=settings,
            platform=platform,
            workspace=workspace,
            fetcher=ArtifactFetcher(self.session, timeout=settings.http_timeout,
                                    delay=settings.download_delay, sleep=self.sleep),
            releases=ReleaseResolver(self.session),
            archives=ArchiveInstaller(platform, workspace / 'extract', runner=self.runner),
            validator=ConfigValidator(self.runner),
            manager=self.manager,
            registrar=ServiceRegistrar(self.manager, poll_attempts=settings.service_poll_attempts,
                                       poll_delay=settings.service_poll_delay, rollback=rollback,
                                       sleep=self.sleep),
            verifier=verifier,
            rollback=rollback,
            packages=PackageManager(platform) if self.profile.uses_packages else None,
            runner=self.runner,
        )

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def run(self) -> List[ComponentResult]:
        """
        Install the profile.

        Raises:
            InstallerError: Any fatal stage failure (service state already rolled back)
            InstallationCancelled: Operator declined the confirmation
        """
        total = self.INSTALL_STEPS
        print(RULE)
        print(f"  Elven Observability - {self.profile.title}")
        print(RULE)
        print(f"Installer version: {__version__}\n")

        self._step(1, total, "Running pre-flight checks")
        platform = self._preflight()

        self._step(2, total, "Resolving installation inputs")
        resolver = InputResolver(self.settings, platform.hostname, env=self.env, prompter=self.prompter)
        request = self.profile.resolve(resolver)
        print("✓ Inputs validated")

        with RunWorkspace() as workspace:
            rollback = RollbackManager(self.manager)
            ctx = self._context(platform, workspace, rollback)
            components = self.profile.components(ctx, request)

            self._step(3, total, "Checking required ports")
            for component in components:
                component.preflight()
                if component.port is not None:
                    print(f"✓ Port {component.port} available for {component.display_name}")

            self._step(4, total, "Confirming installation")
            resolver.confirm(f"Installing {self.profile.title}",
                             self.profile.summary_rows(request, platform))

            self._step(5, total, "Installing components")
            try:
                for index, component in enumerate(components, start=1):
                    print(f"\n--- {component.display_name} ({index}/{len(components)}) ---")
                    self.results.append(component.install())
            except InstallerError as e:
                rollback.rollback(reason=e.message)
                raise
            except KeyboardInterrupt:
                rollback.rollback(reason="interrupted")
                raise
            except Exception as e:
                logger.exception("Unexpected failure during component installation")
                rollback.rollback(reason=f"unexpected error: {e}")
                raise

        self._step(6, total, "Saving install record")
        self._write_record()

        self._step(7, total, "Installation complete")
        self._print_summary(request)
        return self.results

    def _write_record(self) -> Path:
        record = self.records.build(
            profile=self.profile.name,
            services=[s for r in self.results for s in r.services],
            binaries=[b for r in self.results for b in r.binaries],
            configs=[c for r in self.results for c in r.configs],
            versions={r.name: r.version for r in self.results},
            directories=[d for r in self.results for d in r.directories],
        )
        try:
            path = self.records.write(record)
        except OSError as e:
            # Services are already running; a missing record only affects uninstall
            logger.error(f"Failed to write install record: {e}")
            print(f"⚠ Could not write install record: {e}")
            return self.records.path_for(self.profile.name)
        print(f"✓ Install record: {path}")
        return path

    def _print_summary(self, request) -> None:
        services = [s for r in self.results for s in r.services]
        print("")
        print(RULE)
        print("  INSTALLATION SUMMARY")
        print(RULE)
        print("Services:")
        for service in services:
            state = "running" if self.manager.is_running(service) else "NOT running"
            marker = "✓" if state == "running" else "✗"
            print(f"  {marker} {service}: {state}")

        for result in self.results:
            if not result.endpoint_ok:
                print(f"  ⚠ {result.name}: endpoint check failed (see log)")

        files = [c for r in self.results for c in r.configs] + [b for r in self.results for b in r.binaries]
        if files:
            print("Files:")
            for path in files:
                print(f"  {path}")

        print("Useful commands:")
        for command in self.profile.useful_commands(services):
            print(f"  {command}")

        steps = self.profile.next_steps(request)
        if steps:
            print("Next steps:")
            for step in steps:
                print(f"  {step}")
        print(f"Log file: {self.settings.log_file}")
        print(RULE)

    # ------------------------------------------------------------------
    # Uninstall
    # ------------------------------------------------------------------

    def uninstall(self) -> List[str]:
        """
        Remove the profile's services and, for binary-installed profiles, its files.

        Returns:
            Services that were removed
        """
        total = self.UNINSTALL_STEPS
        print(RULE)
        print(f"  Uninstalling {self.profile.title}")
        print(RULE)

        self._step(1, total, "Running pre-flight checks")
        self._preflight()
        record = self.records.read(self.profile.name)
        if record is None:
            print(f"⚠ No install record for '{self.profile.name}', using default service names")
            record = {'services': list(self.profile.service_names), 'configs': [], 'directories': []}
        else:
            changed = self.records.verify_binaries(record)
            for path in changed:
                print(f"⚠ {path} changed since installation")

        self._step(2, total, "Removing services")
        registrar = ServiceRegistrar(self.manager, poll_attempts=self.settings.service_poll_attempts,
                                     poll_delay=self.settings.service_poll_delay, sleep=self.sleep)
        removed = []
        for name in reversed(record.get('services', [])):
            if registrar.unregister(name):
                removed.append(name)
                print(f"✓ Removed service {name}")
            else:
                print(f"⚠ Service {name} not found")

        self._step(3, total, "Removing files")
        if self.profile.uses_packages:
            print("⚠ Packages, configuration and database are left in place")
        else:
            for config in record.get('configs', []):
                path = Path(config)
                if path.exists():
                    path.unlink()
                    print(f"✓ Removed {path}")
            for directory in record.get('directories', []):
                path = Path(directory)
                if path.exists():
                    shutil.rmtree(path)
                    print(f"✓ Removed {path}")
        self.records.remove(self.profile.name)
        print("\n✓ Uninstall complete")
        return removed
