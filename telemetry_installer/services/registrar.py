# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/services/registrar.py
# Author: Elven Observability
# Details of functionality of this file: Idempotent service registration - replaces any same-named service and records it for rollback

"""
Service Registrar.

Registering a service that already exists stops and deletes the old one,
polls until the OS confirms it is gone, then creates it again. After a
successful register() exactly one service with that name exists. Creation
is retried a bounded number of times; the final failure is a ServiceError
carrying the exact command for manual remediation.
"""

import logging
import time
from typing import Callable, Optional

from ..errors import ServiceError
from ..models import ServiceDescriptor
from ..retry import with_retry

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 3


class ServiceRegistrar:
    """Registers agent services through a ServiceManager."""

    def __init__(self, manager, poll_attempts: int = 5, poll_delay: float = 2.0,
                 rollback=None, sleep: Callable[[float], None] = time.sleep):
        self.manager = manager
        self.poll_attempts = poll_attempts
        self.poll_delay = poll_delay
        self.rollback = rollback
        self.sleep = sleep

    def register(self, descriptor: ServiceDescriptor, process_pattern: Optional[str] = None) -> None:
        """
        Create (or replace) the service described by `descriptor`.

        Raises:
            ServiceError: Old service would not go away, or creation failed after retries
        """
        name = descriptor.name
        if self.manager.exists(name):
            print(f"Stopping existing {name}...")
            self.manager.stop(name)
            self.manager.delete(name)
            self._wait_until_gone(name)

        def create(attempt: int):
            return self.manager.create(descriptor)

        try:
            with_retry(create, max_attempts=CREATE_ATTEMPTS, delay=self.poll_delay,
                       retry_on=(ServiceError,), sleep=self.sleep, describe=f"create service {name}")
        except ServiceError as e:
            if self.rollback is not None and self.manager.exists(name):
                self.rollback.record_service(name, process_pattern)
            raise ServiceError(
                f"Failed to create service {name}: {e.message}",
                service_name=name,
                command=e.command or self.manager.create_command(descriptor),
            )

        if self.rollback is not None:
            self.rollback.record_service(name, process_pattern)
        print(f"✓ Service: {name}")
        logger.info(f"Registered service {name}")

    def _wait_until_gone(self, name: str) -> None:
        def check(attempt: int) -> None:
            if self.manager.exists(name):
                raise ServiceError(f"Service {name} still present after delete", service_name=name)

        try:
            with_retry(check, max_attempts=self.poll_attempts, delay=self.poll_delay,
                       retry_on=(ServiceError,), sleep=self.sleep, describe=f"wait for {name} removal")
        except ServiceError:
            raise ServiceError(
                f"Existing service {name} could not be removed",
                service_name=name,
                remediation="Remove it manually, then re-run: " + '; '.join(self.manager.manual_commands(name)),
            )

    def unregister(self, name: str) -> bool:
        """Stop and delete a service. Returns False if it did not exist."""
        if not self.manager.exists(name):
            return False
        self.manager.stop(name)
        self.manager.delete(name)
        logger.info(f"Unregistered service {name}")
        return True
