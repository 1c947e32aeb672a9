# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/rollback.py
# Author: Elven Observability
# Details of functionality of this file: Service-state rollback after a failed install and per-run temporary workspace

"""
Rollback and cleanup.

Rollback undoes SERVICE state only: every service registered or started
during this run is stopped and deleted, and leftover agent processes are
killed. Installed binaries, configs and logs are preserved so the operator
can inspect them; only `uninstall` deletes files.

The run workspace (temporary downloads) is always removed, whatever the
outcome.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from .errors import InstallerError
from .system.processes import kill_matching

logger = logging.getLogger(__name__)


class RollbackManager:
    """Records what this run changed and reverts service state on failure."""

    def __init__(self, manager, killer: Optional[Callable[[str], List[int]]] = None):
        self.manager = manager
        self.killer = killer or kill_matching
        self.services: List[str] = []
        self.process_patterns: List[str] = []
        self.preserved: List[Path] = []

    def record_service(self, name: str, process_pattern: Optional[str] = None) -> None:
        if name not in self.services:
            self.services.append(name)
        if process_pattern and process_pattern not in self.process_patterns:
            self.process_patterns.append(process_pattern)

    def record_started(self, name: str) -> None:
        if name not in self.services:
            self.services.append(name)

    def record_path(self, path: Path) -> None:
        path = Path(path)
        if path not in self.preserved:
            self.preserved.append(path)

    def rollback(self, reason: str) -> List[str]:
        """
        Stop and delete recorded services, kill matching processes.

        Returns:
            Failures encountered (rollback continues past each one)
        """
        failures = []
        if not self.services and not self.process_patterns:
            return failures

        print("")
        print(f"Rolling back service changes ({reason})...")
        logger.warning(f"Rollback started: {reason}")

        for name in reversed(self.services):
            try:
                self.manager.stop(name)
                self.manager.delete(name)
                print(f"  ✓ Removed service {name}")
            except InstallerError as e:
                failures.append(f"{name}: {e}")
                logger.error(f"Rollback of service {name} failed: {e}")
                print(f"  ✗ Could not remove service {name}: {e}")

        for pattern in self.process_patterns:
            pids = self.killer(pattern)
            if pids:
                print(f"  ✓ Stopped leftover processes matching {pattern}: {pids}")

        if self.preserved:
            print("  Preserved for inspection:")
            for path in self.preserved:
                print(f"    {path}")

        if failures:
            print("  Manual cleanup:")
            for name in self.services:
                for command in self.manager.manual_commands(name):
                    print(f"    {command}")

        self.services = []
        self.process_patterns = []
        return failures


class RunWorkspace:
    """Temporary per-run directory for downloads and extraction; removed on exit."""

    def __init__(self, prefix: str = "telemetry-installer-"):
        self.prefix = prefix
        self.path: Optional[Path] = None

    def __enter__(self) -> Path:
        self.path = Path(tempfile.mkdtemp(prefix=self.prefix))
        logger.debug(f"Workspace {self.path}")
        return self.path

    def __exit__(self, exc_type, exc, tb):
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug(f"Removed workspace {self.path}")
        return False
