# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/releases.py
# Author: Elven Observability
# Details of functionality of this file: GitHub release lookups - latest tag resolution and private release asset URLs

"""
Release metadata from the GitHub releases API.

Pinned versions are the norm. "latest" is resolved with a single request;
an unreadable answer is fatal unless the caller passes an explicit fallback
tag, which is then used with a loud warning.
"""

import logging
from typing import Dict, Optional, Tuple

import requests

from ..errors import DownloadError

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class ReleaseResolver:
    """Thin client over /repos/{repo}/releases."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    @staticmethod
    def auth_headers(token: Optional[str]) -> Dict[str, str]:
        return {'Authorization': f'Bearer {token}'} if token else {}

    def _release(self, repo: str, version: str, token: Optional[str]) -> dict:
        if version == 'latest':
            url = f"{GITHUB_API}/repos/{repo}/releases/latest"
        else:
            url = f"{GITHUB_API}/repos/{repo}/releases/tags/{version}"
        try:
            response = self.session.get(url, headers=self.auth_headers(token), timeout=self.timeout)
        except requests.RequestException as e:
            raise DownloadError(f"Cannot reach GitHub releases API: {e}", url=url)
        if response.status_code != 200:
            raise DownloadError(f"GitHub releases API returned HTTP {response.status_code} for {repo}",
                                url=url, status_code=response.status_code)
        try:
            return response.json()
        except ValueError:
            raise DownloadError(f"GitHub releases API returned invalid JSON for {repo}", url=url)

    def resolve_latest(self, repo: str, token: Optional[str] = None,
                       fallback: Optional[str] = None) -> str:
        """
        Return the tag name of the latest release.

        Raises:
            DownloadError: If the tag cannot be read and no fallback was given
        """
        try:
            tag = self._release(repo, 'latest', token).get('tag_name')
            if not tag:
                raise DownloadError(f"Latest release of {repo} has no tag_name")
        except DownloadError as e:
            if fallback is None:
                raise
            logger.warning(f"Could not fetch latest release of {repo} ({e}); falling back to {fallback}")
            print(f"⚠ Could not fetch latest release from GitHub (repo: {repo}), trying {fallback}")
            return fallback
        logger.info(f"Latest release of {repo}: {tag}")
        return tag

    def asset_download(self, repo: str, version: str, asset_name: str,
                       token: str) -> Tuple[str, Dict[str, str]]:
        """
        Locate a release asset for authenticated download (private repositories).

        Returns:
            (url, headers) to pass to ArtifactFetcher.fetch

        Raises:
            DownloadError: Release or asset not found
        """
        release = self._release(repo, version, token)
        for asset in release.get('assets', []):
            if asset.get('name') == asset_name:
                url = f"{GITHUB_API}/repos/{repo}/releases/assets/{asset['id']}"
                headers = self.auth_headers(token)
                headers['Accept'] = 'application/octet-stream'
                return url, headers
        raise DownloadError(f"Asset {asset_name} not found in release {version} of {repo}")
