# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/tests/cli_test.py
# Author: Elven Observability
# Details of functionality of this file: Tests for command line parsing and exit code mapping

import sys
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from telemetry_installer import cli
from telemetry_installer.errors import ConfigurationError, InstallationCancelled, ServiceError
from telemetry_installer.settings import InstallerSettings


class RecordingInstaller:
    """installer_factory stand-in; raises `error` from run()/uninstall() when set."""

    instances = []

    def __init__(self, profile, settings, error=None):
        self.profile = profile
        self.settings = settings
        self.error = error
        self.called = None
        RecordingInstaller.instances.append(self)

    def run(self):
        self.called = 'run'
        if self.error:
            raise self.error

    def uninstall(self):
        self.called = 'uninstall'
        if self.error:
            raise self.error


def failing_with(error):
    return lambda profile, settings: RecordingInstaller(profile, settings, error)


class TestCli(unittest.TestCase):

    def setUp(self):
        RecordingInstaller.instances = []
        for target, kwargs in (('setup_logging', {}), ('load_settings', {'return_value': InstallerSettings()})):
            p = patch(f'telemetry_installer.cli.{target}', **kwargs)
            setattr(self, target, p.start())
            self.addCleanup(p.stop)

    def test_install_success(self):
        self.assertEqual(cli.main(['install', 'linux'], installer_factory=RecordingInstaller), 0)
        installer = RecordingInstaller.instances[0]
        self.assertEqual((installer.profile, installer.called), ('linux', 'run'))

    def test_uninstall_dispatch(self):
        self.assertEqual(cli.main(['uninstall', 'faro'], installer_factory=RecordingInstaller), 0)
        self.assertEqual(RecordingInstaller.instances[0].called, 'uninstall')

    def test_cancel_exits_zero(self):
        code = cli.main(['install', 'zabbix'],
                        installer_factory=failing_with(InstallationCancelled("Installation cancelled by user")))
        self.assertEqual(code, 0)

    def test_failure_exits_one(self):
        error = ServiceError("otelcol failed to start", service_name='otelcol', command='systemctl start otelcol')
        with patch('sys.stderr'):
            self.assertEqual(cli.main(['install', 'linux'], installer_factory=failing_with(error)), 1)

    def test_interrupt_exits_130(self):
        with patch('sys.stderr'):
            code = cli.main(['install', 'linux'], installer_factory=failing_with(KeyboardInterrupt()))
        self.assertEqual(code, 130)

    def test_unexpected_error_exits_one(self):
        with patch('sys.stderr'):
            code = cli.main(['install', 'linux'], installer_factory=failing_with(RuntimeError("bug")))
        self.assertEqual(code, 1)

    def test_bad_settings_file(self):
        self.load_settings.side_effect = ConfigurationError("Settings file not found: x")
        with patch('sys.stderr'):
            self.assertEqual(cli.main(['install', 'linux', '--config', 'x'],
                                     installer_factory=RecordingInstaller), 1)
        self.assertEqual(RecordingInstaller.instances, [])
        self.load_settings.assert_called_once_with(Path('x'))

    def test_log_file_option(self):
        cli.main(['install', 'linux', '--log-file', '/tmp/custom.log', '-v'], installer_factory=RecordingInstaller)
        self.setup_logging.assert_called_once_with(Path('/tmp/custom.log'), verbose=True)

    def test_unknown_profile_rejected(self):
        with patch('sys.stderr'), self.assertRaises(SystemExit):
            cli.main(['install', 'macos'])


if __name__ == '__main__':
    unittest.main()
