# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/tests/postgres_test.py
# Author: Elven Observability
# Details of functionality of this file: Tests for PostgreSQL tuning, database creation and service start used by the Zabbix proxy

import gzip
import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from telemetry_installer.components.base import InstallContext
from telemetry_installer.components.postgres import PostgresServer, sql_literal
from telemetry_installer.components.zabbix_proxy import ZABBIX_PACKAGES, ZabbixProxy
from telemetry_installer.config.zabbix_renderer import TUNING_MARKER
from telemetry_installer.errors import InstallerError, ServiceError
from telemetry_installer.health import HealthVerifier
from telemetry_installer.models import ZabbixProxyRequest
from telemetry_installer.settings import InstallerSettings
from telemetry_installer.tests.fakes import FakeServiceManager, linux_platform


class SequencedRunner:
    """Answers each call with the next (returncode, stderr) pair, then succeeds."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.commands = []
        self.inputs = []

    def __call__(self, cmd, check=False, timeout=None, input_text=None, env=None, secret=False):
        self.commands.append([str(c) for c in cmd])
        self.inputs.append(input_text)
        returncode, stderr = self.answers.pop(0) if self.answers else (0, '')
        return subprocess.CompletedProcess(cmd, returncode, stdout='', stderr=stderr)


class TestPostgresServer(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def server(self, runner=None):
        return PostgresServer(linux_platform(), packages=None, fetcher=None, workspace=self.test_dir,
                              version='17', runner=runner or SequencedRunner([]))

    def test_sql_literal_escapes_quotes(self):
        self.assertEqual(sql_literal("p@ss'word"), "'p@ss''word'")

    def test_tuning_applied_once_across_reinstalls(self):
        conf = self.test_dir / 'postgresql.conf'
        conf.write_text("max_connections = 100\n")
        block = "\n" + TUNING_MARKER + "\nshared_buffers = 512MB\n"
        server = self.server()
        with patch.object(PostgresServer, 'conf_path', return_value=conf):
            server.apply_tuning(block)
            server.apply_tuning(block)
        self.assertEqual(conf.read_text(), "max_connections = 100\n" + block)
        self.assertEqual((self.test_dir / 'postgresql.conf.backup').read_text(), "max_connections = 100\n")

    def test_tuning_skipped_without_conf(self):
        with patch.object(PostgresServer, 'conf_path', return_value=None):
            self.assertIsNone(self.server().apply_tuning("x"))

    def test_create_database_tolerates_existing(self):
        runner = SequencedRunner([(1, 'ERROR:  role "zabbix" already exists'),
                                  (1, 'ERROR:  database "zabbix_proxy" already exists')])
        self.server(runner).create_database("s3cret'pw")
        self.assertEqual(len(runner.commands), 4)
        self.assertIn("ALTER USER zabbix WITH PASSWORD 's3cret''pw';", runner.inputs[-1])
        # the password only ever travels on stdin
        self.assertFalse(any('s3cret' in arg for cmd in runner.commands for arg in cmd))

    def test_create_database_failure(self):
        runner = SequencedRunner([(2, 'psql: error: connection refused')])
        with self.assertRaises(InstallerError):
            self.server(runner).create_database("password1")

    def test_read_gzipped_schema(self):
        path = self.test_dir / 'proxy.sql.gz'
        with gzip.open(path, 'wt', encoding='utf-8') as f:
            f.write("CREATE TABLE hosts ();")
        self.assertEqual(PostgresServer.read_schema(path), "CREATE TABLE hosts ();")

    def test_start_prefers_versioned_unit(self):
        manager = FakeServiceManager(existing={'postgresql-17': False, 'postgresql': False})
        verifier = HealthVerifier(manager, sleep=lambda s: None)
        self.assertEqual(self.server().start(manager, verifier), 'postgresql-17')
        self.assertTrue(manager.is_running('postgresql-17'))
        self.assertIn(('enable', 'postgresql-17'), manager.calls)

    def test_start_without_unit(self):
        verifier = HealthVerifier(FakeServiceManager(), sleep=lambda s: None)
        with self.assertRaises(ServiceError):
            self.server().start(FakeServiceManager(), verifier)


class TestZabbixRepository(unittest.TestCase):

    def test_rpm_repository_tolerates_reinstall(self):
        runner = SequencedRunner([(1, 'package zabbix-release-7.0-2.el9.noarch is already installed')])
        packages = MagicMock()
        packages.name = 'dnf'
        platform = linux_platform(distro_id='rhel', distro_version='9.4', package_manager='dnf')
        ctx = InstallContext(settings=InstallerSettings(), platform=platform, workspace=Path('/tmp'),
                             fetcher=None, releases=None, archives=None, validator=None, manager=None,
                             registrar=None, verifier=None, rollback=None, packages=packages, runner=runner)
        request = ZabbixProxyRequest(zabbix_server='10.0.0.5', proxy_name='proxy-sp', db_password='password1')
        ZabbixProxy(ctx, request, release='7.0-2').install_packages()
        self.assertEqual(runner.commands[0], ['rpm', '-Uvh', 'https://repo.zabbix.com/zabbix/7.0/rhel/9/x86_64/'
                                              'zabbix-release-7.0-2.el9.noarch.rpm'])
        self.assertEqual(runner.commands[1], ['dnf', 'clean', 'all'])
        packages.install.assert_called_once_with(ZABBIX_PACKAGES)


if __name__ == '__main__':
    unittest.main()
