# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/file_security.py
# Author: Elven Observability
# Details of functionality of this file: Owner-only permissions for credential files, ownership changes and SELinux binary labelling

"""
File security helpers.

Rendered configs embed credentials in plaintext, so they are restricted to
the owning account. On SELinux-enforcing hosts, downloaded binaries get the
bin_t context so systemd may execute them.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ..errors import ValidationError
from .commands import format_command, run_command

logger = logging.getLogger(__name__)


def restrict_to_owner(path: Path, mode: int = 0o600) -> None:
    """
    Restrict a file to its owner.

    POSIX: chmod `mode`. Windows: drop inherited ACEs and grant SYSTEM and
    Administrators full control only.
    """
    path = Path(path)
    if sys.platform == 'win32':
        cmd = ['icacls', str(path), '/inheritance:r',
               '/grant:r', 'SYSTEM:F', '/grant:r', 'Administrators:F']
        result = run_command(cmd)
        if result.returncode != 0:
            raise ValidationError(f"Failed to restrict permissions on {path}: {result.stderr.strip()}",
                                  remediation=f"Run manually: {format_command(cmd)}")
        return
    os.chmod(path, mode)


def chown_to(path: Path, user: str, group: Optional[str] = None) -> bool:
    """
    Change ownership to user:group when both exist. Returns False when the account is missing.
    """
    if sys.platform == 'win32':
        return False
    import grp
    import pwd

    try:
        uid = pwd.getpwnam(user).pw_uid
        gid = grp.getgrnam(group or user).gr_gid
    except KeyError:
        logger.warning(f"Account {user}:{group or user} not found; leaving ownership of {path} unchanged")
        return False
    os.chown(path, uid, gid)
    return True


def selinux_enforcing() -> bool:
    result = run_command(['getenforce'], timeout=10)
    if result.returncode != 0:
        return False
    return result.stdout.strip() not in ('', 'Disabled')


def apply_bin_context(binary: Path) -> bool:
    """
    Label a binary bin_t when SELinux is active. Failures only warn.

    Returns:
        True if labelling was attempted
    """
    if sys.platform == 'win32' or not selinux_enforcing():
        return False

    binary = str(binary)
    logger.info(f"Setting SELinux context on {binary}")
    if run_command(['chcon', '-t', 'bin_t', binary]).returncode != 0:
        logger.warning(f"chcon failed for {binary}")

    added = run_command(['semanage', 'fcontext', '-a', '-t', 'bin_t', binary])
    if added.returncode == 127:
        return True
    if added.returncode != 0:
        modified = run_command(['semanage', 'fcontext', '-m', '-t', 'bin_t', binary])
        if modified.returncode != 0:
            logger.warning(f"semanage fcontext failed for {binary}: {modified.stderr.strip()}")
    if run_command(['restorecon', '-v', binary]).returncode != 0:
        logger.warning(f"restorecon failed for {binary}")
    return True
