# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/processes.py
# Author: Elven Observability
# Details of functionality of this file: Process enumeration/termination by name pattern and TCP listener inspection via psutil

"""
Process and port inspection.

Used by pre-flight (is a required port already taken by someone else?),
rollback (kill leftover agent processes) and the Zabbix listener check.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Listener:
    port: int
    pid: Optional[int]
    process_name: str


def _process_name(pid: Optional[int]) -> str:
    if pid is None:
        return ''
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return ''


def find_listeners(port: int) -> List[Listener]:
    """Return processes listening on a local TCP port."""
    listeners = []
    try:
        connections = psutil.net_connections(kind='tcp')
    except psutil.AccessDenied:
        logger.warning(f"Not allowed to inspect sockets; skipping port {port} check")
        return listeners

    for conn in connections:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        if conn.laddr.port == port:
            listeners.append(Listener(port=port, pid=conn.pid, process_name=_process_name(conn.pid)))
    return listeners


def is_port_listening(port: int) -> bool:
    return bool(find_listeners(port))


def foreign_listeners(port: int, own_pattern: str) -> List[Listener]:
    """Listeners on `port` whose process name does not match the component's own pattern."""
    regex = re.compile(own_pattern, re.IGNORECASE)
    return [l for l in find_listeners(port) if not regex.search(l.process_name)]


def kill_matching(pattern: str, timeout: float = 5.0) -> List[int]:
    """
    Terminate processes whose name matches `pattern` (regex), then kill survivors.

    Returns:
        PIDs that were signalled
    """
    regex = re.compile(pattern, re.IGNORECASE)
    victims = []
    for proc in psutil.process_iter(['pid', 'name']):
        name = proc.info.get('name') or ''
        if regex.search(name):
            try:
                proc.terminate()
                victims.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.warning(f"Cannot terminate {name} (pid {proc.pid}): {e}")

    if victims:
        _, alive = psutil.wait_procs(victims, timeout=timeout)
        for proc in alive:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                pass
        logger.info(f"Terminated processes matching '{pattern}': {[p.pid for p in victims]}")
    return [p.pid for p in victims]


def memory_gb() -> int:
    """Total memory in whole GiB (floor), as used by the performance profiles."""
    return int(psutil.virtual_memory().total // (1024 ** 3))


def cpu_count() -> int:
    return psutil.cpu_count(logical=True) or 1
