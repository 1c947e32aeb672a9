# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/services/systemd_manager.py
# Author: Elven Observability
# Details of functionality of this file: Writes systemd unit files for agent services and drives systemctl

"""
Systemd service manager.

Units are written to /etc/systemd/system/<name>.service with a bounded
restart policy (Restart=on-failure, RestartSec, StartLimitBurst within
StartLimitIntervalSec). Every state change goes through systemctl.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..errors import ServiceError
from ..models import ServiceDescriptor
from ..system.commands import format_command, run_command

logger = logging.getLogger(__name__)

SYSTEMCTL_TIMEOUT = 30


class SystemdServiceManager:
    """ServiceManager backed by systemd."""

    def __init__(self, unit_dir: Path = Path("/etc/systemd/system"), runner=run_command):
        self.unit_dir = Path(unit_dir)
        self.runner = runner

    def unit_path(self, name: str) -> Path:
        return self.unit_dir / f"{name}.service"

    def render_unit(self, descriptor: ServiceDescriptor) -> str:
        """Generate the unit file content for `descriptor`."""
        restart = descriptor.restart
        unit_lines = [
            f"Description={descriptor.description}",
        ]
        if descriptor.documentation:
            unit_lines.append(f"Documentation={descriptor.documentation}")
        unit_lines.extend([
            "After=network-online.target",
            "Wants=network-online.target",
            f"StartLimitIntervalSec={restart.reset_window_seconds}",
            f"StartLimitBurst={restart.max_restarts}",
        ])

        service_lines = [
            "Type=simple",
            f"User={descriptor.user}",
        ]
        if descriptor.environment_file:
            service_lines.append(f"EnvironmentFile={descriptor.environment_file}")
        service_lines.extend([
            f"ExecStart={descriptor.command_line()}",
            "Restart=on-failure",
            f"RestartSec={restart.delay_seconds}",
            "StandardOutput=journal",
            "StandardError=journal",
        ])

        unit_block = '\n'.join(unit_lines)
        service_block = '\n'.join(service_lines)
        return f"""# {self.unit_path(descriptor.name)}
# Generated by telemetry-installer for {descriptor.display_name}

[Unit]
{unit_block}

[Service]
{service_block}

[Install]
WantedBy=multi-user.target
"""

    def _systemctl(self, *args: str, check: bool = True, name: Optional[str] = None):
        cmd = ['systemctl'] + list(args)
        result = self.runner(cmd, timeout=SYSTEMCTL_TIMEOUT)
        if check and result.returncode != 0:
            raise ServiceError(
                f"systemctl {' '.join(args)} failed: {(result.stderr or result.stdout).strip()}",
                service_name=name,
                command=format_command(cmd),
            )
        return result

    def exists(self, name: str) -> bool:
        if self.unit_path(name).exists():
            return True
        result = self._systemctl('list-unit-files', f"{name}.service", '--no-legend', check=False)
        return result.returncode == 0 and bool(result.stdout.strip())

    def is_running(self, name: str) -> bool:
        return self._systemctl('is-active', '--quiet', name, check=False).returncode == 0

    def create_command(self, descriptor: ServiceDescriptor) -> str:
        return f"systemctl daemon-reload && systemctl enable {descriptor.name}"

    def create(self, descriptor: ServiceDescriptor) -> Path:
        """Write the unit, reload systemd and enable it (not started)."""
        path = self.unit_path(descriptor.name)
        self.unit_dir.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            f.write(self.render_unit(descriptor))
        os.chmod(path, 0o644)
        logger.info(f"Wrote unit {path}")

        try:
            self.daemon_reload()
            self.enable(descriptor.name)
        except ServiceError:
            # no half-registered unit survives a failed create
            path.unlink()
            self._systemctl('daemon-reload', check=False)
            logger.warning(f"Removed partially created unit {path}")
            raise
        return path

    def daemon_reload(self) -> None:
        self._systemctl('daemon-reload')

    def enable(self, name: str) -> None:
        self._systemctl('enable', name, name=name)

    def start(self, name: str) -> None:
        self._systemctl('start', name, name=name)

    def restart(self, name: str) -> None:
        self._systemctl('restart', name, name=name)

    def stop(self, name: str) -> None:
        self._systemctl('stop', name, check=False, name=name)

    def delete(self, name: str) -> None:
        """Stop, disable and remove the unit file. Package-owned units outside unit_dir are left alone."""
        self.stop(name)
        self._systemctl('disable', name, check=False, name=name)
        path = self.unit_path(name)
        if path.exists():
            path.unlink()
            logger.info(f"Removed unit {path}")
        self._systemctl('daemon-reload', check=False)
        self._systemctl('reset-failed', name, check=False)

    def diagnostics(self, name: str, lines: int = 20) -> str:
        result = self.runner(['journalctl', '-u', name, '-n', str(lines), '--no-pager'], timeout=SYSTEMCTL_TIMEOUT)
        return (result.stdout or result.stderr or '').strip()

    def manual_commands(self, name: str) -> list:
        return [
            f"systemctl status {name}",
            f"journalctl -u {name} -n 50 --no-pager",
            f"systemctl stop {name} && systemctl disable {name}",
        ]
