# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/tests/installer_test.py
# Author: Elven Observability
# Details of functionality of this file: Tests for orchestrator stage ordering, pre-flight aborts and the uninstall flow

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from telemetry_installer.components import get_profile
from telemetry_installer.errors import ConfigurationError, InstallationCancelled, ValidationError
from telemetry_installer.installer import TelemetryInstaller
from telemetry_installer.manifest import InstallRecordStore
from telemetry_installer.settings import InstallerSettings
from telemetry_installer.tests.fakes import (
    FakeRunner,
    FakeServiceManager,
    ScriptedPrompter,
    linux_platform,
    windows_platform,
)


class TestInstallerStages(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.settings = InstallerSettings(state_dir=str(self.test_dir / 'state'),
                                          install_root=str(self.test_dir / 'opt'),
                                          log_file=str(self.test_dir / 'install.log'))
        self.session = MagicMock()
        self.manager = FakeServiceManager()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def installer(self, profile='linux', platform=None, env=None, prompter=None):
        return TelemetryInstaller(
            profile, self.settings, env=env or {}, prompter=prompter or ScriptedPrompter(interactive=False),
            probe=lambda: platform or linux_platform(), manager=self.manager, session=self.session,
            runner=FakeRunner(), sleep=lambda s: None,
        )

    def test_wrong_os_aborts_before_inputs(self):
        prompter = ScriptedPrompter()
        with self.assertRaises(ValidationError) as ctx:
            self.installer('linux', platform=windows_platform(), prompter=prompter).run()
        self.assertIn('windows', ctx.exception.remediation)
        self.assertEqual(prompter.prompts, [])
        self.session.get.assert_not_called()

    def test_non_admin_aborts(self):
        with self.assertRaises(ValidationError) as ctx:
            self.installer(platform=linux_platform(is_admin=False),
                           env={'TENANT_ID': 'acme', 'API_TOKEN': 't'}).run()
        self.assertIn('sudo', ctx.exception.remediation)
        self.assertEqual(self.manager.calls, [])

    def test_no_systemd_aborts(self):
        with self.assertRaises(ValidationError):
            self.installer(platform=linux_platform(service_manager='sysvinit')).run()

    def test_blank_tenant_stops_before_network(self):
        with self.assertRaises(ConfigurationError) as ctx:
            self.installer(env={'TENANT_ID': '   ', 'API_TOKEN': 'abc123'}).run()
        self.assertIn('TENANT_ID', ctx.exception.remediation)
        self.session.get.assert_not_called()
        self.assertEqual(self.manager.calls, [])

    def test_bad_endpoint_stops_before_network(self):
        env = {'TENANT_ID': 'acme', 'API_TOKEN': 'abc123', 'MIMIR_ENDPOINT': 'mimir.example.com'}
        with self.assertRaises(ValidationError):
            self.installer(env=env).run()
        self.session.get.assert_not_called()

    def test_cancel_at_confirmation_changes_nothing(self):
        env = {'TENANT_ID': 'acme', 'API_TOKEN': 'abc123'}
        prompter = ScriptedPrompter(answers=['n'], interactive=True)
        installer = self.installer(env=env, prompter=prompter)
        with patch('telemetry_installer.components.base.foreign_listeners', return_value=[]):
            with self.assertRaises(InstallationCancelled):
                installer.run()
        self.session.get.assert_not_called()
        self.assertEqual(self.manager.calls, [])
        self.assertIsNone(installer.records.read('linux'))

    def test_zabbix_requires_amd64_on_rpm(self):
        platform = linux_platform(arch='arm64', distro_id='rhel', package_manager='dnf')
        with self.assertRaises(ValidationError):
            self.installer('zabbix', platform=platform).run()

    def test_scrape_jobs_keep_exporter_names(self):
        for profile, job in (('linux', 'node_exporter'), ('windows', 'windows_exporter')):
            with self.subTest(profile=profile):
                collector = get_profile(profile).components(MagicMock(), MagicMock())[-1]
                self.assertEqual(collector.job_name, job)

    def test_unknown_profile(self):
        with self.assertRaises(ValidationError):
            get_profile('macos')


class TestUninstall(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.settings = InstallerSettings(state_dir=str(self.test_dir / 'state'))
        self.store = InstallRecordStore(self.test_dir / 'state')

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def installer(self, profile, manager):
        return TelemetryInstaller(profile, self.settings, env={}, prompter=ScriptedPrompter(interactive=False),
                                  probe=linux_platform, manager=manager, session=MagicMock(),
                                  runner=FakeRunner(), sleep=lambda s: None)

    def test_removes_recorded_services_and_files(self):
        install_dir = self.test_dir / 'opt' / 'node_exporter'
        install_dir.mkdir(parents=True)
        binary = install_dir / 'node_exporter'
        binary.write_bytes(b'bin')
        config = self.test_dir / 'etc' / 'otelcol' / 'config.yaml'
        config.parent.mkdir(parents=True)
        config.write_text('receivers: {}')
        self.store.write(self.store.build('linux', services=['node_exporter', 'otelcol'], binaries=[binary],
                                          configs=[config], versions={},
                                          directories=[install_dir, config.parent]))

        manager = FakeServiceManager(existing={'node_exporter': True, 'otelcol': True})
        removed = self.installer('linux', manager).uninstall()

        self.assertEqual(removed, ['otelcol', 'node_exporter'])
        self.assertEqual(manager.services, {})
        self.assertFalse(install_dir.exists())
        self.assertFalse(config.exists())
        self.assertIsNone(self.store.read('linux'))

    def test_without_record_uses_default_names(self):
        manager = FakeServiceManager(existing={'collector-fe-instrumentation': True})
        removed = self.installer('faro', manager).uninstall()
        self.assertEqual(removed, ['collector-fe-instrumentation'])

    def test_zabbix_leaves_files_in_place(self):
        conf = self.test_dir / 'zabbix_proxy.conf'
        conf.write_text('Server=10.0.0.5\n')
        self.store.write(self.store.build('zabbix', services=['zabbix-proxy'], binaries=[],
                                          configs=[conf], versions={}))
        manager = FakeServiceManager(existing={'zabbix-proxy': True, 'postgresql': True})
        self.installer('zabbix', manager).uninstall()
        self.assertTrue(conf.exists())
        self.assertIn('postgresql', manager.services)
        self.assertNotIn('zabbix-proxy', manager.services)


if __name__ == '__main__':
    unittest.main()
