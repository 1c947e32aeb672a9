# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/__init__.py
# Author: Elven Observability
# Details of functionality of this file: Artifact download and extraction package initialization

"""
Artifacts package: release URLs, downloads, release lookups and extraction.
"""

from .archive_installer import ArchiveInstaller
from .fetcher import ArtifactFetcher
from .releases import ReleaseResolver
from .tar_reader import ManualTarReader

__all__ = ['ArchiveInstaller', 'ArtifactFetcher', 'ReleaseResolver', 'ManualTarReader']
