# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/health/verifier.py
# Author: Elven Observability
# Details of functionality of this file: Starts a service, confirms it stays running and probes its metrics endpoint

"""
Health Verifier.

The process state reported by the service manager is authoritative: a
service that does not reach "running" is a fatal ServiceError. The HTTP
endpoint check that follows is advisory; failing it logs an
EndpointWarning and the installation still completes.
"""

import logging
import time
import warnings
from typing import Callable, Optional

import requests

from ..errors import EndpointWarning, ServiceError
from ..models import HealthEndpoint
from ..retry import with_retry
from ..system.processes import foreign_listeners, is_port_listening

logger = logging.getLogger(__name__)


class HealthVerifier:
    """Post-start checks for one service at a time."""

    def __init__(self, manager, poll_attempts: int = 5, poll_delay: float = 2.0,
                 probe_attempts: int = 3, probe_delay: float = 2.0, http_timeout: float = 5.0,
                 session: Optional[requests.Session] = None, rollback=None,
                 sleep: Callable[[float], None] = time.sleep):
        self.manager = manager
        self.poll_attempts = poll_attempts
        self.poll_delay = poll_delay
        self.probe_attempts = probe_attempts
        self.probe_delay = probe_delay
        self.http_timeout = http_timeout
        self.session = session or requests.Session()
        self.rollback = rollback
        self.sleep = sleep

    def verify(self, service_name: str, endpoint: Optional[HealthEndpoint] = None,
               start: bool = True, restart: bool = False, record: bool = True) -> bool:
        """
        Start `service_name` and wait for it to be running, then probe `endpoint`.

        Returns:
            True if the endpoint check passed (or there was none), False on an advisory failure

        Raises:
            ServiceError: Service did not reach the running state
        """
        if restart:
            self.manager.restart(service_name)
        elif start:
            self.manager.start(service_name)
        if self.rollback is not None and record:
            self.rollback.record_started(service_name)

        self.wait_running(service_name)
        print(f"✓ {service_name} running!")

        if endpoint is None:
            return True
        return self.probe(endpoint)

    def wait_running(self, service_name: str) -> None:
        def check(attempt: int) -> None:
            if not self.manager.is_running(service_name):
                raise ServiceError(f"{service_name} is not running yet", service_name=service_name)

        try:
            with_retry(check, max_attempts=self.poll_attempts, delay=self.poll_delay,
                       retry_on=(ServiceError,), sleep=self.sleep, describe=f"wait for {service_name}")
        except ServiceError:
            details = self.manager.diagnostics(service_name)
            print(f"✗ {service_name} failed to start")
            if details:
                print(details)
            raise ServiceError(
                f"{service_name} failed to start\n{details}" if details else f"{service_name} failed to start",
                service_name=service_name,
                remediation='; '.join(self.manager.manual_commands(service_name)[:2]),
            )

    def probe(self, endpoint: HealthEndpoint) -> bool:
        """Up to probe_attempts GETs expecting HTTP 200 and the expected metric prefix."""
        def attempt(n: int) -> None:
            try:
                with self.session.get(endpoint.url, timeout=self.http_timeout) as response:
                    status, body = response.status_code, response.text
            except requests.RequestException as e:
                raise EndpointWarning(f"{endpoint.url} unreachable: {e}", url=endpoint.url)
            if status != 200:
                raise EndpointWarning(f"{endpoint.url} answered HTTP {status}", url=endpoint.url)
            if endpoint.expected_prefix and endpoint.expected_prefix not in body:
                raise EndpointWarning(f"{endpoint.url} does not expose {endpoint.expected_prefix}* metrics",
                                      url=endpoint.url)

        try:
            with_retry(attempt, max_attempts=self.probe_attempts, delay=self.probe_delay,
                       retry_on=(EndpointWarning,), sleep=self.sleep, describe=f"probe {endpoint.url}")
        except EndpointWarning as warning:
            self._advise(warning)
            return False
        print(f"✓ Metrics available at {endpoint.url}")
        return True

    def check_listener(self, port: int, own_pattern: str) -> bool:
        """Advisory TCP listener check (Zabbix proxy on 10051)."""
        if not is_port_listening(port):
            self._advise(EndpointWarning(f"Nothing is listening on port {port}"))
            return False
        others = foreign_listeners(port, own_pattern)
        if others:
            names = ', '.join(sorted({l.process_name or str(l.pid) for l in others}))
            self._advise(EndpointWarning(f"Port {port} is held by another process: {names}"))
            return False
        print(f"✓ Listening on port {port}")
        return True

    @staticmethod
    def _advise(warning: EndpointWarning) -> None:
        logger.warning(str(warning))
        warnings.warn(warning)
        print(f"⚠ {warning.message} (service is running; check the endpoint manually)")
