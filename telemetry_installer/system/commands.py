# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/system/commands.py
# Author: Elven Observability
# Details of functionality of this file: Runs external OS commands with logging, timeouts and captured output

"""
External command runner. Service managers, package managers and archivers
are always invoked as separate processes, never reimplemented.
"""

import logging
import shlex
import subprocess
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


def format_command(cmd: Sequence[str]) -> str:
    """Render an argument list as a copy-pasteable shell command."""
    return ' '.join(shlex.quote(str(c)) for c in cmd)


def run_command(cmd: List[str], check: bool = False, timeout: float = DEFAULT_TIMEOUT,
                input_text: Optional[str] = None, env: Optional[Dict[str, str]] = None,
                secret: bool = False) -> subprocess.CompletedProcess:
    """
    Run a command and capture its output as text.

    A missing executable is reported as returncode 127 instead of raising,
    so callers can treat "tool not installed" like any other failure.

    Args:
        cmd: Argument list
        check: Raise CalledProcessError on non-zero exit
        timeout: Seconds before the command is killed
        input_text: Data written to stdin
        env: Environment for the child process
        secret: Do not log the arguments (they contain credentials)
    """
    logger.debug(f"Running: {'<redacted>' if secret else format_command(cmd)}")
    try:
        result = subprocess.run(
            [str(c) for c in cmd],
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input_text,
            env=env,
            check=False,
        )
    except FileNotFoundError as e:
        result = subprocess.CompletedProcess(cmd, 127, stdout='', stderr=str(e))
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout or ''
        if isinstance(stdout, bytes):
            stdout = stdout.decode(errors='replace')
        result = subprocess.CompletedProcess(cmd, 124, stdout=stdout,
                                             stderr=f"Timed out after {timeout}s")

    if result.returncode != 0:
        logger.debug(f"Exit {result.returncode}: {(result.stderr or '').strip()[:500]}")
    if check and result.returncode != 0:
        raise subprocess.CalledProcessError(result.returncode, cmd, result.stdout, result.stderr)
    return result
