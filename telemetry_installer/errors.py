# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/errors.py
# Author: Elven Observability
# Details of functionality of this file: Installer error taxonomy - every fatal error carries remediation text for the operator

"""
Installer Errors: one exception type per failure class.

Pre-flight errors (ValidationError, ConfigurationError) abort before any
mutation. Errors raised after mutation has started trigger a rollback of
service state only; on-disk artifacts are preserved.
"""

from typing import Optional


class InstallerError(Exception):
    """Base class for all fatal installer errors."""

    exit_code = 1

    def __init__(self, message: str, remediation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.remediation = remediation

    def __str__(self) -> str:
        return self.message


class ValidationError(InstallerError):
    """Bad or missing user input, or a failed pre-flight check."""


class ConfigurationError(InstallerError):
    """Installer cannot obtain its configuration (non-interactive without input, bad settings file)."""


class DownloadError(InstallerError):
    """Network, DNS or HTTP failure while fetching an artifact or release metadata."""

    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None, remediation: Optional[str] = None):
        super().__init__(message, remediation)
        self.url = url
        self.status_code = status_code


class ExtractionError(InstallerError):
    """Missing or incompatible extraction tooling, or a corrupt/unsafe archive."""


class ConfigValidationError(InstallerError):
    """Rendered configuration rejected. `diagnostic` holds the validator output verbatim."""

    def __init__(self, message: str, diagnostic: str = "", remediation: Optional[str] = None):
        super().__init__(message, remediation)
        self.diagnostic = diagnostic

    def __str__(self) -> str:
        if self.diagnostic:
            return f"{self.message}\n{self.diagnostic}"
        return self.message


class ServiceError(InstallerError):
    """Service creation, start or removal failure."""

    def __init__(self, message: str, service_name: Optional[str] = None,
                 command: Optional[str] = None, remediation: Optional[str] = None):
        if remediation is None and command:
            remediation = f"Run manually: {command}"
        super().__init__(message, remediation)
        self.service_name = service_name
        self.command = command


class PackageError(InstallerError):
    """Package manager failure (repository, subscription, missing package)."""


class InstallationCancelled(InstallerError):
    """Operator declined the confirmation prompt. Not a failure."""

    exit_code = 0


class EndpointWarning(UserWarning):
    """Service is running but its HTTP endpoint did not answer as expected. Logged, never raised."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        return self.message
