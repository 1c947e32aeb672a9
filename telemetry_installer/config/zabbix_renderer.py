# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/config/zabbix_renderer.py
# Author: Elven Observability
# Details of functionality of this file: Zabbix proxy performance profiles, zabbix_proxy.conf and PostgreSQL tuning rendering

"""
Zabbix Proxy configuration.

Performance profiles size pollers, caches and PostgreSQL memory from the
host's RAM and CPU count:

    light   < 500 hosts
    medium  500 - 2000 hosts
    heavy   2000 - 5000 hosts
    ultra   5000+ hosts
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from ..errors import ValidationError
from ..models import PERFORMANCE_PROFILES, RenderedConfig, ZabbixProxyRequest

LISTEN_PORT = 10051
TUNING_MARKER = "# Zabbix Proxy Tuning"


@dataclass(frozen=True)
class PerformanceParams:
    start_pollers: int
    start_ipmi_pollers: int
    start_pollers_unreachable: int
    start_trappers: int
    start_pingers: int
    start_discoverers: int
    start_http_pollers: int
    cache_size: str
    history_cache_size: str
    history_index_cache_size: str
    trend_cache_size: str
    value_cache_size: str
    pg_shared_buffers: str
    pg_effective_cache_size: str
    pg_work_mem: str
    pg_maintenance_work_mem: str


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def performance_params(profile: str, mem_gb: int, cpu_count: int) -> PerformanceParams:
    """
    Raises:
        ValidationError: Unknown profile
    """
    if profile == 'light':
        return PerformanceParams(5, 0, 1, 5, 1, 1, 1,
                                 '128M', '64M', '32M', '32M', '64M',
                                 '256MB', '512MB', '4MB', '64MB')
    if profile == 'medium':
        return PerformanceParams(_clamp(cpu_count * 2, 10, 30), 0, 3, 10, 3, 3, 3,
                                 '512M', '256M', '128M', '128M', '256M',
                                 f'{mem_gb * 256 // 4}MB', f'{mem_gb * 768 // 4}MB', '16MB', '128MB')
    if profile == 'heavy':
        return PerformanceParams(_clamp(cpu_count * 3, 20, 50), 5, 5, 20, 5, 5, 5,
                                 '1G', '512M', '256M', '256M', '512M',
                                 f'{mem_gb * 256 // 2}MB', f'{mem_gb * 768 // 2}MB', '32MB', '256MB')
    if profile == 'ultra':
        return PerformanceParams(_clamp(cpu_count * 4, 40, 100), 10, 10, 30, 10, 10, 10,
                                 '2G', '1G', '512M', '512M', '1G',
                                 f'{mem_gb * 256}MB', f'{mem_gb * 768}MB', '64MB', '512MB')
    raise ValidationError(f"Unknown performance profile: {profile}",
                          remediation=f"Use one of: {', '.join(PERFORMANCE_PROFILES)}")


def _check_value(key: str, value: str) -> str:
    if '\n' in value or '\r' in value:
        raise ValidationError(f"{key} must not contain line breaks")
    return value


def render_zabbix_proxy_conf(request: ZabbixProxyRequest, params: PerformanceParams,
                             path: Path) -> RenderedConfig:
    """zabbix_proxy.conf; mode 0640, owned by the zabbix account."""
    server = _check_value('Server', request.zabbix_server)
    hostname = _check_value('Hostname', request.proxy_name)
    password = _check_value('DBPassword', request.db_password)

    sections: List[Tuple[str, List[Tuple[str, object]]]] = [
        ("", [
            ('ProxyMode', request.proxy_mode),
            ('Server', server),
            ('Hostname', hostname),
        ]),
        ("Database", [
            ('DBHost', 'localhost'),
            ('DBName', 'zabbix_proxy'),
            ('DBUser', 'zabbix'),
            ('DBPassword', password),
        ]),
        (f"Performance Tuning ({request.performance_profile} profile)", [
            ('StartPollers', params.start_pollers),
            ('StartIPMIPollers', params.start_ipmi_pollers),
            ('StartPollersUnreachable', params.start_pollers_unreachable),
            ('StartTrappers', params.start_trappers),
            ('StartPingers', params.start_pingers),
            ('StartDiscoverers', params.start_discoverers),
            ('StartHTTPPollers', params.start_http_pollers),
        ]),
        ("Timeouts", [
            ('Timeout', 10),
            ('TrapperTimeout', 300),
        ]),
        ("Cache Configuration", [
            ('CacheSize', params.cache_size),
            ('HistoryCacheSize', params.history_cache_size),
            ('HistoryIndexCacheSize', params.history_index_cache_size),
            ('TrendCacheSize', params.trend_cache_size),
            ('ValueCacheSize', params.value_cache_size),
        ]),
        ("Data Transfer", [
            ('ConfigFrequency', 60),
            ('DataSenderFrequency', 5),
        ]),
        ("Logging", [
            ('LogFile', '/var/log/zabbix/zabbix_proxy.log'),
            ('LogFileSize', 10),
            ('DebugLevel', 3),
        ]),
        ("Process Management", [
            ('StartVMwareCollectors', 0),
            ('VMwareFrequency', 60),
            ('VMwarePerfFrequency', 60),
            ('VMwareCacheSize', '8M'),
            ('VMwareTimeout', 10),
        ]),
        ("Network", [
            ('ListenPort', LISTEN_PORT),
        ]),
        ("Other", [
            ('SNMPTrapperFile', '/var/log/snmptrap/snmptrap.log'),
            ('ExternalScripts', '/usr/lib/zabbix/externalscripts'),
            ('FpingLocation', '/usr/bin/fping'),
            ('Fping6Location', '/usr/bin/fping6'),
            ('LogSlowQueries', 3000),
        ]),
    ]

    lines = ["# Zabbix Proxy Configuration", "# Generated by telemetry-installer", ""]
    for title, entries in sections:
        if title:
            lines.append(f"# {title}")
        lines.extend(f"{key}={value}" for key, value in entries)
        lines.append("")

    document = {key: value for _, entries in sections for key, value in entries}
    return RenderedConfig(path=Path(path), text='\n'.join(lines), document=document,
                          mode=0o640, owner='zabbix')


def render_postgres_tuning(params: PerformanceParams, cpu_count: int) -> str:
    """Block appended to postgresql.conf."""
    settings = [
        ('max_connections', 200),
        ('shared_buffers', params.pg_shared_buffers),
        ('effective_cache_size', params.pg_effective_cache_size),
        ('maintenance_work_mem', params.pg_maintenance_work_mem),
        ('checkpoint_completion_target', 0.9),
        ('wal_buffers', '16MB'),
        ('default_statistics_target', 100),
        ('random_page_cost', 1.1),
        ('effective_io_concurrency', 200),
        ('work_mem', params.pg_work_mem),
        ('min_wal_size', '1GB'),
        ('max_wal_size', '4GB'),
        ('max_worker_processes', cpu_count),
        ('max_parallel_workers_per_gather', 2),
        ('max_parallel_workers', cpu_count),
        ('max_parallel_maintenance_workers', 2),
    ]
    body = '\n'.join(f"{key} = {value}" for key, value in settings)
    return f"\n{TUNING_MARKER} - added by telemetry-installer\n{body}\n"
