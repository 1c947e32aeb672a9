# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/tests/services_test.py
# Author: Elven Observability
# Details of functionality of this file: Tests for systemd/sc.exe service definitions, idempotent registration and post-start health checks

import shutil
import sys
import tempfile
import unittest
import warnings
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from telemetry_installer.errors import EndpointWarning, ServiceError
from telemetry_installer.health import HealthVerifier
from telemetry_installer.models import HealthEndpoint, RestartPolicy, ServiceDescriptor
from telemetry_installer.rollback import RollbackManager
from telemetry_installer.services import ServiceRegistrar, SystemdServiceManager, WindowsServiceManager
from telemetry_installer.system.processes import Listener
from telemetry_installer.tests.fakes import FakeRunner, FakeServiceManager, fake_response


class EnableFailsRunner(FakeRunner):
    """systemctl enable always fails; everything else succeeds."""

    def __call__(self, cmd, **kwargs):
        result = super().__call__(cmd, **kwargs)
        if list(cmd[:2]) == ['systemctl', 'enable']:
            result.returncode = 1
            result.stderr = 'Failed to enable unit: Access denied'
        return result


def descriptor(**overrides):
    values = dict(name='node_exporter', display_name='Node Exporter', description='Node Exporter',
                  binary_path=Path('/opt/monitoring/node_exporter/node_exporter'),
                  restart=RestartPolicy(max_restarts=3, delay_seconds=5, reset_window_seconds=86400))
    values.update(overrides)
    return ServiceDescriptor(**values)


class TestSystemdServiceManager(unittest.TestCase):

    def setUp(self):
        self.unit_dir = Path(tempfile.mkdtemp())
        self.runner = FakeRunner()
        self.manager = SystemdServiceManager(unit_dir=self.unit_dir, runner=self.runner)

    def tearDown(self):
        shutil.rmtree(self.unit_dir)

    def test_unit_restart_policy(self):
        unit = self.manager.render_unit(descriptor())
        self.assertIn('Restart=on-failure', unit)
        self.assertIn('RestartSec=5', unit)
        self.assertIn('StartLimitBurst=3', unit)
        self.assertIn('StartLimitIntervalSec=86400', unit)
        self.assertIn('ExecStart=/opt/monitoring/node_exporter/node_exporter', unit)
        self.assertIn('After=network-online.target', unit)
        self.assertIn('WantedBy=multi-user.target', unit)
        self.assertNotIn('EnvironmentFile', unit)

    def test_unit_arguments_and_environment_file(self):
        unit = self.manager.render_unit(descriptor(
            name='otelcol', arguments=('--config=/etc/otelcol/config.yaml',),
            environment_file=Path('/etc/collector-fe-instrumentation/env')))
        self.assertIn('ExecStart=/opt/monitoring/node_exporter/node_exporter --config=/etc/otelcol/config.yaml', unit)
        self.assertIn('EnvironmentFile=/etc/collector-fe-instrumentation/env', unit)

    def test_create_writes_unit_and_enables(self):
        path = self.manager.create(descriptor())
        self.assertTrue(path.exists())
        self.assertEqual(path.stat().st_mode & 0o777, 0o644)
        self.assertIn(['systemctl', 'daemon-reload'], self.runner.commands)
        self.assertIn(['systemctl', 'enable', 'node_exporter'], self.runner.commands)

    def test_failed_enable_removes_unit(self):
        manager = SystemdServiceManager(unit_dir=self.unit_dir, runner=EnableFailsRunner())
        with self.assertRaises(ServiceError):
            manager.create(descriptor())
        self.assertFalse(manager.unit_path('node_exporter').exists())
        self.assertFalse(manager.exists('node_exporter'))

    def test_failed_registration_leaves_nothing_after_rollback(self):
        manager = SystemdServiceManager(unit_dir=self.unit_dir, runner=EnableFailsRunner())
        rollback = RollbackManager(manager, killer=lambda p: [])
        registrar = ServiceRegistrar(manager, rollback=rollback, sleep=lambda s: None)
        with self.assertRaises(ServiceError) as ctx:
            registrar.register(descriptor(), 'node_exporter')
        self.assertIn('systemctl enable node_exporter', ctx.exception.remediation)
        rollback.rollback("service creation failed")
        self.assertEqual(list(self.unit_dir.iterdir()), [])

    def test_start_failure_names_command(self):
        runner = FakeRunner({'systemctl': {'returncode': 1, 'stderr': 'Unit not found'}})
        manager = SystemdServiceManager(unit_dir=self.unit_dir, runner=runner)
        with self.assertRaises(ServiceError) as ctx:
            manager.start('node_exporter')
        self.assertEqual(ctx.exception.remediation, 'Run manually: systemctl start node_exporter')

    def test_delete_removes_unit(self):
        path = self.manager.create(descriptor())
        self.manager.delete('node_exporter')
        self.assertFalse(path.exists())
        self.assertIn(['systemctl', 'disable', 'node_exporter'], self.runner.commands)


class TestWindowsServiceManager(unittest.TestCase):

    def test_create_and_failure_args(self):
        manager = WindowsServiceManager(runner=FakeRunner())
        d = descriptor(name='windows_exporter', display_name='Windows Exporter',
                       binary_path=Path('C:/Program Files/Elven/windows_exporter.exe'),
                       arguments=('--web.listen-address=:9182',))
        args = manager.create_args(d)
        self.assertEqual(args[:3], ['sc.exe', 'create', 'windows_exporter'])
        self.assertEqual(args[args.index('binPath=') + 1],
                         '"C:/Program Files/Elven/windows_exporter.exe" --web.listen-address=:9182')
        self.assertEqual(args[args.index('start=') + 1], 'auto')
        failure = manager.failure_args(d)
        self.assertEqual(failure[failure.index('reset=') + 1], '86400')
        self.assertEqual(failure[failure.index('actions=') + 1], 'restart/5000/restart/5000/restart/5000')

    def test_exists_and_running(self):
        missing = WindowsServiceManager(runner=FakeRunner({'sc.exe': {'returncode': 1060}}))
        self.assertFalse(missing.exists('windows_exporter'))
        running = WindowsServiceManager(runner=FakeRunner({'sc.exe': {'stdout': 'STATE : 4 RUNNING'}}))
        self.assertTrue(running.exists('windows_exporter'))
        self.assertTrue(running.is_running('windows_exporter'))

    def test_create_failure_carries_command(self):
        manager = WindowsServiceManager(runner=FakeRunner({'sc.exe': {'returncode': 5, 'stdout': 'Access is denied.'}}))
        with self.assertRaises(ServiceError) as ctx:
            manager.create(descriptor(name='windows_exporter'))
        self.assertIn('sc.exe create windows_exporter', ctx.exception.command)


class TestServiceRegistrar(unittest.TestCase):

    def setUp(self):
        self.sleeps = []

    def test_fresh_install(self):
        manager = FakeServiceManager()
        rollback = RollbackManager(manager, killer=lambda p: [])
        ServiceRegistrar(manager, rollback=rollback, sleep=self.sleeps.append).register(descriptor(), 'node_exporter')
        self.assertEqual(list(manager.services), ['node_exporter'])
        self.assertEqual(rollback.services, ['node_exporter'])
        self.assertNotIn(('delete', 'node_exporter'), manager.calls)

    def test_reinstall_replaces_existing_service(self):
        manager = FakeServiceManager(existing={'node_exporter': True})
        ServiceRegistrar(manager, sleep=self.sleeps.append).register(descriptor())
        self.assertEqual(manager.calls[:3], [('stop', 'node_exporter'), ('delete', 'node_exporter'),
                                             ('create', 'node_exporter')])
        self.assertEqual(len(manager.services), 1)
        self.assertEqual(len(manager.created), 1)

    def test_twice_leaves_one_service(self):
        manager = FakeServiceManager()
        registrar = ServiceRegistrar(manager, sleep=self.sleeps.append)
        registrar.register(descriptor())
        registrar.register(descriptor())
        self.assertEqual(list(manager.services), ['node_exporter'])

    def test_creation_retried_then_succeeds(self):
        manager = FakeServiceManager(create_failures=2)
        ServiceRegistrar(manager, poll_delay=1.0, sleep=self.sleeps.append).register(descriptor())
        self.assertEqual([c for c in manager.calls if c[0] == 'create'], [('create', 'node_exporter')] * 3)
        self.assertEqual(self.sleeps, [1.0, 1.0])

    def test_creation_failure_reports_command(self):
        manager = FakeServiceManager(create_failures=5)
        with self.assertRaises(ServiceError) as ctx:
            ServiceRegistrar(manager, sleep=self.sleeps.append).register(descriptor())
        self.assertEqual(ctx.exception.command, 'fake create node_exporter')
        self.assertIn('fake create node_exporter', ctx.exception.remediation)

    def test_stuck_service_fails(self):
        manager = FakeServiceManager(existing={'node_exporter': True}, vanish_on_delete=False)
        with self.assertRaises(ServiceError) as ctx:
            ServiceRegistrar(manager, poll_attempts=3, sleep=self.sleeps.append).register(descriptor())
        self.assertIn('could not be removed', ctx.exception.message)
        self.assertEqual(len(self.sleeps), 2)

    def test_unregister(self):
        manager = FakeServiceManager(existing={'otelcol': True})
        registrar = ServiceRegistrar(manager, sleep=self.sleeps.append)
        self.assertTrue(registrar.unregister('otelcol'))
        self.assertFalse(registrar.unregister('otelcol'))


class TestHealthVerifier(unittest.TestCase):

    def setUp(self):
        self.sleeps = []
        self.session = MagicMock()
        self.endpoint = HealthEndpoint(url='http://localhost:9100/metrics', expected_prefix='node_')

    def verifier(self, manager, **kwargs):
        return HealthVerifier(manager, session=self.session, sleep=self.sleeps.append, **kwargs)

    def test_running_and_metrics_available(self):
        manager = FakeServiceManager(existing={'node_exporter': False})
        response = fake_response(200, text='# HELP node_cpu_seconds_total\n')
        self.session.get.return_value = response
        self.assertTrue(self.verifier(manager).verify('node_exporter', self.endpoint))
        self.assertIn(('start', 'node_exporter'), manager.calls)
        response.__exit__.assert_called_once()

    def test_not_running_is_fatal_with_diagnostics(self):
        manager = FakeServiceManager(existing={'node_exporter': False}, start_fails=True)
        with self.assertRaises(ServiceError) as ctx:
            self.verifier(manager, poll_attempts=4, poll_delay=2.0).verify('node_exporter', self.endpoint)
        self.assertIn('last lines of node_exporter', ctx.exception.message)
        self.assertEqual(self.sleeps, [2.0, 2.0, 2.0])
        self.session.get.assert_not_called()

    def test_endpoint_failure_is_advisory(self):
        manager = FakeServiceManager(existing={'node_exporter': False})
        self.session.get.side_effect = requests.ConnectionError("refused")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            result = self.verifier(manager, probe_attempts=3).verify('node_exporter', self.endpoint)
        self.assertFalse(result)
        self.assertEqual(self.session.get.call_count, 3)
        self.assertTrue(any(issubclass(w.category, EndpointWarning) for w in caught))
        self.assertTrue(manager.is_running('node_exporter'))

    def test_wrong_content_is_advisory(self):
        manager = FakeServiceManager(existing={'otelcol': False})
        self.session.get.return_value = fake_response(200, text='nothing useful')
        endpoint = HealthEndpoint(url='http://localhost:8888/metrics', expected_prefix='otelcol_')
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            self.assertFalse(self.verifier(manager).verify('otelcol', endpoint))

    def test_started_service_recorded_for_rollback(self):
        manager = FakeServiceManager(existing={'postgresql': False})
        rollback = RollbackManager(manager, killer=lambda p: [])
        self.verifier(manager, rollback=rollback).verify('postgresql')
        self.assertEqual(rollback.services, ['postgresql'])
        rollback_two = RollbackManager(manager, killer=lambda p: [])
        self.verifier(manager, rollback=rollback_two).verify('postgresql', record=False)
        self.assertEqual(rollback_two.services, [])

    def test_listener_check(self):
        manager = FakeServiceManager()
        path = 'telemetry_installer.health.verifier'
        with patch(f'{path}.is_port_listening', return_value=True), \
                patch(f'{path}.foreign_listeners', return_value=[]):
            self.assertTrue(self.verifier(manager).check_listener(10051, 'zabbix_proxy'))
        with patch(f'{path}.is_port_listening', return_value=True), \
                patch(f'{path}.foreign_listeners', return_value=[Listener(10051, 99, 'nginx')]), \
                warnings.catch_warnings():
            warnings.simplefilter('ignore')
            self.assertFalse(self.verifier(manager).check_listener(10051, 'zabbix_proxy'))


if __name__ == '__main__':
    unittest.main()
