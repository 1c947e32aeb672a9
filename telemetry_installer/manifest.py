# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/manifest.py
# Author: Elven Observability
# Details of functionality of this file: Writes, reads and removes the per-profile install record with binary hashes

"""
Install record: what a profile installed, written after a successful run.

/var/lib/telemetry-installer/<profile>.json lists services, installed
binaries (with SHA-256), rendered configs, versions and a timestamp. The
uninstall flow reads it to know what to remove.
"""

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

RECORD_VERSION = 1


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b''):
            digest.update(chunk)
    return digest.hexdigest()


class InstallRecordStore:
    """JSON install records, one file per profile."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def path_for(self, profile: str) -> Path:
        return self.state_dir / f"{profile}.json"

    def build(self, profile: str, services: Iterable[str], binaries: Iterable[Path],
              configs: Iterable[Path], versions: Dict[str, str],
              directories: Iterable[Path] = ()) -> Dict:
        binary_entries = []
        for binary in binaries:
            binary = Path(binary)
            entry = {'path': str(binary)}
            if binary.is_file():
                entry['sha256'] = sha256_file(binary)
            binary_entries.append(entry)

        return {
            'record_version': RECORD_VERSION,
            'profile': profile,
            'installed_at': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'services': list(services),
            'binaries': binary_entries,
            'configs': [str(c) for c in configs],
            'directories': [str(d) for d in directories],
            'versions': dict(versions),
        }

    def write(self, record: Dict) -> Path:
        path = self.path_for(record['profile'])
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(record, f, indent=2, sort_keys=True)
        logger.info(f"Install record written to {path}")
        return path

    def read(self, profile: str) -> Optional[Dict]:
        path = self.path_for(profile)
        if not path.exists():
            return None
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Install record {path} is unreadable: {e}",
                                     remediation=f"Remove {path} and uninstall components manually")

    def remove(self, profile: str) -> bool:
        path = self.path_for(profile)
        if path.exists():
            path.unlink()
            return True
        return False

    def verify_binaries(self, record: Dict) -> List[str]:
        """Binaries whose current hash differs from the recorded one."""
        changed = []
        for entry in record.get('binaries', []):
            path = Path(entry['path'])
            expected = entry.get('sha256')
            if expected and path.is_file() and sha256_file(path) != expected:
                changed.append(str(path))
        return changed
