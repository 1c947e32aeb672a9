# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/config/otel_renderer.py
# Author: Elven Observability
# Details of functionality of this file: Builds the OpenTelemetry Collector YAML (prometheus scrape -> remote write) as a structured document

"""
OpenTelemetry Collector configuration.

The document is built as nested dicts and serialized with PyYAML; no text
templating. Every value that comes from operator input is emitted
double-quoted so characters such as ':', '#' or quotes in tenant IDs,
tokens or labels cannot break the YAML.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import jsonschema
import yaml

from ..errors import ConfigValidationError
from ..models import InstallationRequest, PlatformDescriptor, RenderedConfig

logger = logging.getLogger(__name__)

SCRAPE_INTERVAL = "30s"
INTERNAL_TELEMETRY_ADDRESS = "localhost:8888"
EXCLUDED_METRICS = ("go_.*", "scrape_.*", "otlp_.*", "promhttp_.*", "process_.*")

RESOURCE_PROCESSOR = "resource/add_labels"

OTEL_CONFIG_SCHEMA = {
    "type": "object",
    "required": ["receivers", "processors", "exporters", "service"],
    "properties": {
        "receivers": {"type": "object", "minProperties": 1, "maxProperties": 1},
        "exporters": {"type": "object", "minProperties": 1, "maxProperties": 1},
        "processors": {"type": "object"},
        "service": {
            "type": "object",
            "required": ["pipelines"],
            "properties": {
                "pipelines": {
                    "type": "object",
                    "required": ["metrics"],
                    "properties": {
                        "metrics": {
                            "type": "object",
                            "required": ["receivers", "exporters"],
                            "properties": {
                                "receivers": {"type": "array", "minItems": 1, "maxItems": 1},
                                "processors": {"type": "array"},
                                "exporters": {"type": "array", "minItems": 1, "maxItems": 1},
                            },
                        },
                    },
                },
            },
        },
    },
}


class QuotedStr(str):
    """A string that is always emitted double-quoted."""


class CollectorDumper(yaml.SafeDumper):
    pass


def _represent_quoted(dumper, data):
    return dumper.represent_scalar('tag:yaml.org,2002:str', str(data), style='"')


CollectorDumper.add_representer(QuotedStr, _represent_quoted)


def _insert(key: str, value: str) -> Dict[str, Any]:
    return {'action': 'insert', 'key': key, 'value': QuotedStr(value)}


def resource_attributes(request: InstallationRequest, platform: PlatformDescriptor) -> List[Dict[str, Any]]:
    """Labels attached to every exported series, in a fixed order."""
    attributes = [
        _insert('hostname', request.instance_name),
        _insert('environment', request.environment),
    ]
    if request.customer_name:
        attributes.append(_insert('customer', request.customer_name))
    for key, value in request.custom_labels.items():
        attributes.append(_insert(key, value))
    attributes.append(_insert('os', platform.os_family))
    if platform.is_linux and platform.distro_id:
        attributes.append(_insert('distro', platform.distro_id))
    return attributes


def build_otel_document(request: InstallationRequest, platform: PlatformDescriptor,
                        scrape_target: str, job_name: str) -> Dict[str, Any]:
    return {
        'receivers': {
            'prometheus': {
                'config': {
                    'scrape_configs': [{
                        'job_name': job_name,
                        'scrape_interval': SCRAPE_INTERVAL,
                        'static_configs': [{'targets': [scrape_target]}],
                    }],
                },
            },
        },
        'exporters': {
            'prometheusremotewrite': {
                'endpoint': QuotedStr(request.endpoint_url),
                'headers': {
                    'X-Scope-OrgID': QuotedStr(request.tenant_id),
                    'Authorization': QuotedStr(f"Bearer {request.auth_token}"),
                },
                'resource_to_telemetry_conversion': {'enabled': True},
            },
        },
        'processors': {
            RESOURCE_PROCESSOR: {'attributes': resource_attributes(request, platform)},
            'batch': {'timeout': '10s', 'send_batch_size': 1024},
            'filter': {
                'metrics': {
                    'exclude': {
                        'match_type': 'regexp',
                        'metric_names': list(EXCLUDED_METRICS),
                    },
                },
            },
        },
        'service': {
            'telemetry': {
                'metrics': {'level': 'basic', 'address': INTERNAL_TELEMETRY_ADDRESS},
            },
            'pipelines': {
                'metrics': {
                    'receivers': ['prometheus'],
                    'processors': [RESOURCE_PROCESSOR, 'batch', 'filter'],
                    'exporters': ['prometheusremotewrite'],
                },
            },
        },
    }


def check_otel_structure(document: Dict[str, Any]) -> None:
    """
    Raises:
        ConfigValidationError: Not exactly one receiver/exporter, or no metrics pipeline
    """
    try:
        jsonschema.validate(document, OTEL_CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = '.'.join(str(p) for p in e.absolute_path) or '<root>'
        raise ConfigValidationError(f"Collector configuration is structurally invalid at {location}",
                                    diagnostic=e.message)


def dump_yaml(document: Dict[str, Any]) -> str:
    return yaml.dump(document, Dumper=CollectorDumper, sort_keys=False, default_flow_style=False)


def render_otel_config(request: InstallationRequest, platform: PlatformDescriptor,
                       scrape_target: str, job_name: str, path: Path) -> RenderedConfig:
    """
    Render the collector configuration for one exporter.

    Args:
        request: Resolved installation request
        platform: Probed platform (os / distro labels)
        scrape_target: host:port of the local exporter
        job_name: Prometheus scrape job name
        path: Where the file will be written

    Returns:
        RenderedConfig (not yet written), mode 0600 since it embeds the token
    """
    document = build_otel_document(request, platform, scrape_target, job_name)
    check_otel_structure(document)
    text = dump_yaml(document)
    logger.info(f"Rendered collector configuration for job {job_name} -> {path}")
    return RenderedConfig(path=Path(path), text=text, document=document, mode=0o600)
