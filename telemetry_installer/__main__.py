# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/__main__.py
# Author: Elven Observability
# Details of functionality of this file: Module entry point enabling python3 -m telemetry_installer invocation

"""
Module entry point for python3 -m telemetry_installer.
"""

import sys

from telemetry_installer.cli import main

if __name__ == '__main__':
    sys.exit(main())
