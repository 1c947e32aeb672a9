# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/config/env_renderer.py
# Author: Elven Observability
# Details of functionality of this file: Renders the Faro collector KEY=value environment file read by systemd

"""
Faro collector environment file (systemd EnvironmentFile=).

Every value is double-quoted with backslashes and double quotes escaped, so
systemd hands the collector the exact string (quotes, spaces and all).
"""

from pathlib import Path

from ..errors import ValidationError
from ..models import FaroRequest, RenderedConfig


def _env_line(key: str, value: str) -> str:
    if '\n' in value or '\r' in value:
        raise ValidationError(f"{key} must not contain line breaks")
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'{key}="{escaped}"'


def render_faro_env(request: FaroRequest, path: Path) -> RenderedConfig:
    values = [
        ('SECRET_KEY', request.secret_key),
        ('LOKI_URL', request.loki_url),
        ('LOKI_API_TOKEN', request.loki_api_token),
        ('ALLOW_ORIGINS', request.allow_origins),
        ('PORT', str(request.port)),
        ('JWT_ISSUER', request.jwt_issuer),
        ('JWT_VALIDATE_EXP', request.jwt_validate_exp),
    ]
    lines = [_env_line(key, value) for key, value in values]
    return RenderedConfig(path=Path(path), text='\n'.join(lines) + '\n',
                          document=dict(values), mode=0o600)
