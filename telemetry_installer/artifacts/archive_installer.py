# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/archive_installer.py
# Author: Elven Observability
# Details of functionality of this file: Extracts a component's executable from its release archive and installs it with the executable bit set

"""
Archive Installer.

Extraction strategies, tried in fixed preference order:

1. native `tar`
2. `7z` / `7za` (two passes: .gz then .tar)
3. in-process ManualTarReader

Only the component's main executable is installed; LICENSE, NOTICE and
other archive members stay in the staging directory.
"""

import logging
import os
import shutil
import sys
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..errors import ExtractionError, ValidationError
from ..models import ArchiveKind, ArtifactSpec, PlatformDescriptor
from ..system.commands import run_command
from .tar_reader import ManualTarReader, check_member_name, check_member_size, resolve_inside

logger = logging.getLogger(__name__)

TAR_REMEDIATION = ("Install tar/gzip and re-run: 'apt install -y tar gzip' (Debian/Ubuntu) "
                   "or 'dnf install -y tar gzip' (RHEL family)")


class ArchiveInstaller:
    """Turns a downloaded artifact into an installed executable."""

    def __init__(self, platform: PlatformDescriptor, staging_dir: Path, runner=run_command):
        self.platform = platform
        self.staging_dir = Path(staging_dir)
        self.runner = runner

    def strategies(self) -> List[Tuple[str, Callable[[Path, Path, str], None]]]:
        """Available tar.gz strategies, best first."""
        available = []
        if self.platform.has_tar:
            available.append(('tar', self._extract_native_tar))
        if self.platform.has_7zip:
            available.append(('7z', self._extract_7zip))
        available.append(('manual', self._extract_manual))
        return available

    def install(self, archive: Path, spec: ArtifactSpec) -> Path:
        """
        Install the executable described by `spec` from `archive`.

        Returns:
            spec.install_path

        Raises:
            ExtractionError: No strategy succeeded or the binary is missing afterwards
        """
        archive = Path(archive)
        if not archive.is_file():
            raise ExtractionError(f"Artifact not found: {archive}")

        print(f"Installing {spec.name} {spec.version}...")
        if spec.kind == ArchiveKind.BINARY:
            source = archive
        elif spec.kind == ArchiveKind.ZIP:
            source = self._extract_zip(archive, spec.binary_name)
        else:
            source = self._extract_tar(archive, spec.binary_name)

        target = spec.install_path
        spec.install_dir.mkdir(parents=True, exist_ok=True)
        # A running binary cannot be opened for writing: stage then swap
        staged = target.with_name(target.name + '.new')
        shutil.copyfile(source, staged)
        if sys.platform != 'win32':
            os.chmod(staged, 0o755)
        os.replace(staged, target)

        if not target.is_file() or target.stat().st_size == 0:
            raise ExtractionError(f"Binary not found after installation: {target}")
        print(f"✓ {spec.binary_name} installed at {target}")
        logger.info(f"Installed {spec.name} {spec.version} to {target}")
        return target

    def _work_dir(self, binary_name: str) -> Path:
        work = self.staging_dir / f"extract-{binary_name}"
        if work.exists():
            shutil.rmtree(work)
        work.mkdir(parents=True)
        return work

    def _extract_tar(self, archive: Path, binary_name: str) -> Path:
        errors = []
        for name, strategy in self.strategies():
            work = self._work_dir(binary_name)
            try:
                strategy(archive, work, binary_name)
                return find_binary(work, binary_name)
            except ExtractionError as e:
                if name == 'manual':
                    if not self.platform.has_tar and e.remediation is None:
                        e.remediation = TAR_REMEDIATION
                    raise
                logger.warning(f"Extraction with {name} failed: {e}")
                errors.append(f"{name}: {e}")
        raise ExtractionError("All extraction strategies failed: " + '; '.join(errors),
                              remediation=TAR_REMEDIATION)

    def _extract_native_tar(self, archive: Path, work: Path, binary_name: str) -> None:
        result = self.runner(['tar', '-xzf', str(archive), '-C', str(work)])
        if result.returncode != 0:
            raise ExtractionError(f"tar exited with {result.returncode}: {result.stderr.strip()}")

    def _extract_7zip(self, archive: Path, work: Path, binary_name: str) -> None:
        tool = '7z' if shutil.which('7z') else '7za'
        first = self.runner([tool, 'x', str(archive), f'-o{work}', '-y'])
        if first.returncode != 0:
            raise ExtractionError(f"{tool} failed on {archive.name}: {first.stderr.strip()}")
        inner = [p for p in work.iterdir() if p.suffix == '.tar']
        if not inner:
            raise ExtractionError(f"{tool} produced no .tar from {archive.name}")
        second = self.runner([tool, 'x', str(inner[0]), f'-o{work}', '-y'])
        if second.returncode != 0:
            raise ExtractionError(f"{tool} failed on {inner[0].name}: {second.stderr.strip()}")

    def _extract_manual(self, archive: Path, work: Path, binary_name: str) -> None:
        ManualTarReader(archive).extract(
            work, select=lambda member: member_basename(member) == binary_name)

    def _extract_zip(self, archive: Path, binary_name: str) -> Path:
        work = self._work_dir(binary_name)
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    check_member_name(info.filename)
                    if info.is_dir() or member_basename(info.filename) != binary_name:
                        continue
                    check_member_size(info.filename, info.file_size)
                    destination = resolve_inside(work, info.filename)
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, open(destination, 'wb') as dst:
                        shutil.copyfileobj(src, dst)
        except zipfile.BadZipFile as e:
            raise ExtractionError(f"Corrupt zip archive {archive}: {e}")
        return find_binary(work, binary_name)


def member_basename(member: str) -> str:
    return member.replace('\\', '/').rstrip('/').rsplit('/', 1)[-1]


def find_binary(root: Path, binary_name: str) -> Path:
    """Locate the extracted executable by file name."""
    matches = sorted(p for p in Path(root).rglob(binary_name) if p.is_file())
    if not matches:
        raise ExtractionError(f"Binary {binary_name} not found in archive")
    if len(matches) > 1:
        logger.warning(f"Multiple {binary_name} entries in archive, using {matches[0]}")
    return matches[0]


def binary_source_path(local_binary: Optional[str]) -> Path:
    """Validate an operator-supplied local binary."""
    path = Path(local_binary)
    if not path.is_file():
        raise ValidationError(f"Local binary not found: {local_binary}")
    return path
