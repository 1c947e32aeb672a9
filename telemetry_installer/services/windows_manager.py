# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/services/windows_manager.py
# Author: Elven Observability
# Details of functionality of this file: Registers and controls Windows services through sc.exe

"""
Windows service manager (sc.exe).

Failure actions implement the restart policy: `restart/<delay ms>` repeated
max_restarts times with `reset=` set to the reset window in seconds.
"""

import logging
from typing import List

from ..errors import ServiceError
from ..models import ServiceDescriptor
from ..system.commands import format_command, run_command

logger = logging.getLogger(__name__)

SC = 'sc.exe'
SC_TIMEOUT = 30
ERROR_SERVICE_DOES_NOT_EXIST = 1060


class WindowsServiceManager:
    """ServiceManager backed by the Windows Service Control Manager."""

    def __init__(self, runner=run_command):
        self.runner = runner

    def _sc(self, *args: str, check: bool = True, name: str = None):
        cmd = [SC] + list(args)
        result = self.runner(cmd, timeout=SC_TIMEOUT)
        if check and result.returncode != 0:
            raise ServiceError(
                f"sc.exe {args[0]} failed (exit {result.returncode}): {(result.stdout or result.stderr).strip()}",
                service_name=name,
                command=format_command(cmd),
            )
        return result

    def create_args(self, descriptor: ServiceDescriptor) -> List[str]:
        return [
            SC, 'create', descriptor.name,
            'binPath=', descriptor.command_line(),
            'start=', descriptor.start_mode.value,
            'DisplayName=', descriptor.display_name,
        ]

    def failure_args(self, descriptor: ServiceDescriptor) -> List[str]:
        restart = descriptor.restart
        delay_ms = restart.delay_seconds * 1000
        actions = '/'.join([f"restart/{delay_ms}"] * max(restart.max_restarts, 1))
        return [SC, 'failure', descriptor.name,
                'reset=', str(restart.reset_window_seconds), 'actions=', actions]

    def create_command(self, descriptor: ServiceDescriptor) -> str:
        return format_command(self.create_args(descriptor))

    def exists(self, name: str) -> bool:
        result = self._sc('query', name, check=False)
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return False
        return result.returncode == 0

    def is_running(self, name: str) -> bool:
        result = self._sc('query', name, check=False)
        return result.returncode == 0 and 'RUNNING' in result.stdout

    def create(self, descriptor: ServiceDescriptor) -> None:
        cmd = self.create_args(descriptor)
        result = self.runner(cmd, timeout=SC_TIMEOUT)
        if result.returncode != 0:
            raise ServiceError(
                f"Failed to create service {descriptor.name}: {(result.stdout or result.stderr).strip()}",
                service_name=descriptor.name,
                command=format_command(cmd),
            )
        self._sc('description', descriptor.name, descriptor.description, check=False, name=descriptor.name)

        failure = self.failure_args(descriptor)
        if self.runner(failure, timeout=SC_TIMEOUT).returncode != 0:
            logger.warning(f"Could not set failure actions on {descriptor.name}: {format_command(failure)}")
        logger.info(f"Created Windows service {descriptor.name}")

    def enable(self, name: str) -> None:
        self._sc('config', name, 'start=', 'auto', name=name)

    def start(self, name: str) -> None:
        self._sc('start', name, name=name)

    def restart(self, name: str) -> None:
        self.stop(name)
        self.start(name)

    def stop(self, name: str) -> None:
        self._sc('stop', name, check=False, name=name)

    def delete(self, name: str) -> None:
        self.stop(name)
        self._sc('delete', name, check=False, name=name)

    def diagnostics(self, name: str, lines: int = 20) -> str:
        result = self._sc('query', name, check=False)
        return (result.stdout or result.stderr or '').strip()

    def manual_commands(self, name: str) -> list:
        return [
            f"sc.exe query {name}",
            f"sc.exe stop {name}",
            f"sc.exe delete {name}",
        ]
