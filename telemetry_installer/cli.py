# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/cli.py
# Author: Elven Observability
# Details of functionality of this file: Command line entry point - install/uninstall a profile and map failures to exit codes

"""
telemetry-installer command line.

    telemetry-installer install <profile> [--config FILE] [--log-file FILE] [--verbose]
    telemetry-installer uninstall <profile>

Exit codes: 0 success or cancelled at confirmation, 1 failure, 130 Ctrl-C.
Everything else is driven by environment variables.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .components import PROFILES
from .errors import InstallationCancelled, InstallerError
from .installer import TelemetryInstaller
from .logging_config import setup_logging
from .settings import load_settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='telemetry-installer',
        description="Install observability agents and connect them to Elven Observability",
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('command', choices=['install', 'uninstall'], help="Action to perform")
    parser.add_argument('profile', choices=sorted(PROFILES), help="Agent profile")
    parser.add_argument('--config', type=Path, help="YAML settings override file")
    parser.add_argument('--log-file', type=Path, help="Log file (default from settings)")
    parser.add_argument('--verbose', '-v', action='store_true', help="Show debug output on the console")
    return parser


def _report(error: InstallerError) -> None:
    print(f"\n✗ {error}", file=sys.stderr)
    if error.remediation:
        print("", file=sys.stderr)
        print(error.remediation, file=sys.stderr)


def main(argv: Optional[List[str]] = None, installer_factory=TelemetryInstaller) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except InstallerError as e:
        setup_logging(None, verbose=args.verbose)
        _report(e)
        return EXIT_FAILURE

    setup_logging(args.log_file or Path(settings.log_file), verbose=args.verbose)
    logger.info(f"telemetry-installer {__version__}: {args.command} {args.profile}")

    try:
        installer = installer_factory(args.profile, settings)
        if args.command == 'install':
            installer.run()
        else:
            installer.uninstall()
    except InstallationCancelled as e:
        print(f"\n{e}")
        logger.info("Installation cancelled at confirmation")
        return EXIT_OK
    except InstallerError as e:
        logger.error(f"{args.command} {args.profile} failed: {e}")
        _report(e)
        return e.exit_code
    except KeyboardInterrupt:
        print("\n\nInstallation interrupted by user.", file=sys.stderr)
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"\n✗ Fatal error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
