# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/inputs/resolver.py
# Author: Elven Observability
# Details of functionality of this file: Builds validated installation requests from environment variables, settings and interactive prompts

"""
Input Resolver.

Precedence: environment variables > settings file > interactive prompts >
documented defaults. When the required environment variables are present the
run is fully non-interactive; when they are missing and no terminal is
attached the run stops with a ConfigurationError. Validation happens here,
before anything touches the network or the filesystem.
"""

import logging
import os
from typing import Callable, List, Mapping, Optional, Tuple

from ..errors import ConfigurationError, InstallationCancelled, ValidationError
from ..models import (
    ENDPOINT_PATTERN,
    PERFORMANCE_PROFILES,
    FaroRequest,
    InstallationRequest,
    ZabbixProxyRequest,
)
from ..settings import DEFAULT_ENVIRONMENT, InstallerSettings
from .labels import merge_labels, parse_custom_labels, parse_label_pair
from .prompter import ConsolePrompter

logger = logging.getLogger(__name__)


class InputResolver:
    """Resolves one request per run. Nothing is cached."""

    def __init__(self, settings: InstallerSettings, hostname: str,
                 env: Optional[Mapping[str, str]] = None, prompter=None):
        self.settings = settings
        self.hostname = hostname
        self.env = os.environ if env is None else env
        self.prompter = prompter or ConsolePrompter()

    def _env(self, name: str) -> Optional[str]:
        """Environment value, with blank treated as unset."""
        value = self.env.get(name)
        if value is None or not value.strip():
            return None
        return value.strip()

    def _require_terminal(self, missing: List[str]):
        if not self.prompter.is_interactive():
            raise ConfigurationError(
                "Non-interactive installation blocked: missing required environment variables",
                remediation=f"Set {' and '.join(missing)} before running the installer",
            )

    def _ask_until(self, prompt: str, check: Callable[[str], None],
                   default: Optional[str] = None, secret: bool = False) -> str:
        """Prompt until `check` accepts the answer (check raises ValidationError to reject)."""
        while True:
            if secret:
                answer = self.prompter.ask_secret(prompt)
            else:
                answer = self.prompter.ask(prompt, default)
            try:
                check(answer)
                return answer
            except ValidationError as e:
                self.prompter.error(e.message)

    # ------------------------------------------------------------------
    # Metrics agents (node exporter / windows exporter + collector)
    # ------------------------------------------------------------------

    def resolve_metrics(self, versions: Optional[Mapping[str, str]] = None) -> InstallationRequest:
        """
        Resolve an InstallationRequest.

        Raises:
            ValidationError: Empty tenant/token, bad endpoint or bad labels
            ConfigurationError: Required values missing and no terminal
        """
        tenant = self._env('TENANT_ID')
        token = self._env('API_TOKEN')
        versions = dict(versions or self.settings.versions)

        if tenant and token:
            logger.info("Metrics inputs resolved from environment")
            return InstallationRequest(
                tenant_id=tenant,
                auth_token=token,
                instance_name=self._env('INSTANCE_NAME') or self.hostname,
                environment=self._env('ENVIRONMENT') or DEFAULT_ENVIRONMENT,
                endpoint_url=self._env('MIMIR_ENDPOINT') or self.settings.default_endpoint,
                customer_name=self._env('CUSTOMER_NAME') or "",
                custom_labels=parse_custom_labels(self._env('CUSTOM_LABELS')),
                versions=versions,
            )

        self._require_terminal([name for name, value in (('TENANT_ID', tenant), ('API_TOKEN', token))
                                if not value])
        p = self.prompter
        p.say("")
        p.say("Please provide the following information:")
        p.say("")

        tenant = tenant or self._ask_until("Tenant ID", _not_empty("Tenant ID"))
        token = token or self._ask_until("API Token", _not_empty("API Token"), secret=True)
        instance = self._env('INSTANCE_NAME') or p.ask("Instance name", self.hostname)
        customer = self._env('CUSTOMER_NAME') or p.ask("Customer name (optional)", "")
        environment = self._env('ENVIRONMENT') or p.ask("Environment", DEFAULT_ENVIRONMENT)
        endpoint = self._env('MIMIR_ENDPOINT') or self._ask_until(
            "Mimir endpoint", _check_endpoint, default=self.settings.default_endpoint)

        labels = parse_custom_labels(self._env('CUSTOM_LABELS'))
        labels = self._prompt_labels(labels)

        return InstallationRequest(
            tenant_id=tenant,
            auth_token=token,
            instance_name=instance,
            environment=environment,
            endpoint_url=endpoint,
            customer_name=customer,
            custom_labels=labels,
            versions=versions,
        )

    def _prompt_labels(self, labels):
        """Repeated `key=value` entries; a blank line finishes. Later keys overwrite earlier ones."""
        self.prompter.say("Custom labels (key=value, blank line to finish):")
        while True:
            entry = self.prompter.ask("  label", "")
            if not entry:
                return labels
            try:
                labels = merge_labels([parse_label_pair(entry)], base=labels)
            except ValidationError as e:
                self.prompter.error(e.message)

    # ------------------------------------------------------------------
    # Faro collector
    # ------------------------------------------------------------------

    def resolve_faro(self) -> FaroRequest:
        secret = self._env('SECRET_KEY')
        loki_token = self._env('LOKI_API_TOKEN')
        source = dict(
            github_repo=self._env('GITHUB_REPO') or self.settings.faro_repo,
            version=self._env('COLLECTOR_VERSION') or 'latest',
            github_token=self._env('GITHUB_TOKEN'),
            local_binary=self._env('LOCAL_BINARY'),
            binary_url=self._env('BINARY_URL'),
        )

        if secret and loki_token:
            logger.info("Faro inputs resolved from environment")
            return FaroRequest(
                secret_key=secret,
                loki_url=self._env('LOKI_URL') or self.settings.default_loki_url,
                loki_api_token=loki_token,
                allow_origins=self._env('ALLOW_ORIGINS') or '*',
                port=_parse_port(self._env('PORT') or '3000'),
                jwt_issuer=self._env('JWT_ISSUER') or 'trusted-issuer',
                jwt_validate_exp=(self._env('JWT_VALIDATE_EXP') or 'false').lower(),
                **source,
            )

        self._require_terminal([name for name, value in (('SECRET_KEY', secret), ('LOKI_API_TOKEN', loki_token))
                                if not value])
        p = self.prompter
        p.say("")
        p.say("Interactive configuration")

        secret = secret or self._ask_until("SECRET_KEY (min 64 chars)", _check_secret_key, secret=True)
        loki_url = self._env('LOKI_URL') or self._ask_until(
            "LOKI_URL", _check_endpoint, default=self.settings.default_loki_url)
        loki_token = loki_token or self._ask_until("LOKI_API_TOKEN", _not_empty("LOKI_API_TOKEN"), secret=True)
        origins = self._env('ALLOW_ORIGINS') or p.ask("ALLOW_ORIGINS (comma-separated)", "*")
        port = self._env('PORT') or self._ask_until("PORT", _parse_port, default="3000")
        issuer = self._env('JWT_ISSUER') or p.ask("JWT_ISSUER", "trusted-issuer")
        validate_exp = self._env('JWT_VALIDATE_EXP') or self._ask_until(
            "JWT_VALIDATE_EXP (true/false)", _check_bool, default="false")

        return FaroRequest(
            secret_key=secret,
            loki_url=loki_url,
            loki_api_token=loki_token,
            allow_origins=origins,
            port=_parse_port(port),
            jwt_issuer=issuer,
            jwt_validate_exp=validate_exp.lower(),
            **source,
        )

    # ------------------------------------------------------------------
    # Zabbix proxy
    # ------------------------------------------------------------------

    def resolve_zabbix(self) -> ZabbixProxyRequest:
        server = self._env('ZABBIX_SERVER')
        name = self._env('PROXY_NAME')
        password = self._env('DB_PASSWORD')

        if server and name and password:
            logger.info("Zabbix inputs resolved from environment")
            return ZabbixProxyRequest(
                zabbix_server=server,
                proxy_name=name,
                db_password=password,
                proxy_mode=_parse_mode(self._env('PROXY_MODE') or '0'),
                performance_profile=self._profile_or_default(self._env('PERFORMANCE_PROFILE')),
            )

        self._require_terminal([var for var, value in
                                (('ZABBIX_SERVER', server), ('PROXY_NAME', name), ('DB_PASSWORD', password))
                                if not value])
        p = self.prompter
        p.say("")
        p.say("Zabbix Proxy configuration")

        server = server or self._ask_until("Zabbix Server (IP or hostname)", _not_empty("Zabbix Server"))
        name = name or self._ask_until("Proxy Name", _not_empty("Proxy Name"), default=self.hostname)
        mode = self._env('PROXY_MODE') or self._ask_until(
            "Proxy Mode (0=Active, 1=Passive)", _parse_mode, default="0")
        password = password or self._ask_until(
            "PostgreSQL password (min 8 chars)", _check_db_password, secret=True)
        p.say("Performance profiles: light (<500 hosts), medium (500-2000), heavy (2000-5000), ultra (5000+)")
        profile = self._env('PERFORMANCE_PROFILE') or p.ask("Performance profile", "medium")

        return ZabbixProxyRequest(
            zabbix_server=server,
            proxy_name=name,
            db_password=password,
            proxy_mode=_parse_mode(mode),
            performance_profile=self._profile_or_default(profile),
        )

    def _profile_or_default(self, profile: Optional[str]) -> str:
        profile = (profile or 'medium').lower()
        if profile not in PERFORMANCE_PROFILES:
            self.prompter.warn(f"Invalid performance profile '{profile}', using medium")
            return 'medium'
        return profile

    # ------------------------------------------------------------------

    def confirm(self, title: str, rows: List[Tuple[str, str]]) -> None:
        """
        Show a masked summary and ask to proceed. Skipped without a terminal.

        Raises:
            InstallationCancelled: Anything other than y/Y
        """
        p = self.prompter
        p.say("")
        p.say(title)
        for label, value in rows:
            p.say(f"  {label + ':':<16} {value}")
        p.say("")
        if not p.is_interactive():
            return
        answer = p.ask("Continue with installation? (y/N)", "")
        if answer not in ('y', 'Y'):
            raise InstallationCancelled("Installation cancelled by user")


def _not_empty(label: str) -> Callable[[str], None]:
    def check(value: str) -> None:
        if not value.strip():
            raise ValidationError(f"{label} cannot be empty!")
    return check


def _check_endpoint(value: str) -> None:
    if not ENDPOINT_PATTERN.match(value):
        raise ValidationError("Endpoint must start with http:// or https://")


def _check_secret_key(value: str) -> None:
    if len(value) < FaroRequest.MIN_SECRET_LENGTH:
        raise ValidationError(f"SECRET_KEY must be at least {FaroRequest.MIN_SECRET_LENGTH} characters "
                              f"(got {len(value)})")


def _check_db_password(value: str) -> None:
    if len(value) < ZabbixProxyRequest.MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {ZabbixProxyRequest.MIN_PASSWORD_LENGTH} characters!")


def _check_bool(value: str) -> None:
    if value.lower() not in ('true', 'false'):
        raise ValidationError("Please answer true or false")


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ValidationError(f"PORT must be a number (got '{value}')")
    if not 1 <= port <= 65535:
        raise ValidationError(f"PORT must be between 1 and 65535 (got {port})")
    return port


def _parse_mode(value: str) -> int:
    if value not in ('0', '1'):
        raise ValidationError("Invalid mode! Use 0 (Active) or 1 (Passive)")
    return int(value)
