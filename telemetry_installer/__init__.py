# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Telemetry installer package initialization

"""
Telemetry Installer: provisions observability agents (Node Exporter, Windows
Exporter, OpenTelemetry Collector, Faro collector, Zabbix Proxy) and wires
them to the Elven Observability backend.
"""

__version__ = "1.0.0"
