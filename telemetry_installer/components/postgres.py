# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/components/postgres.py
# Author: Elven Observability
# Details of functionality of this file: PostgreSQL server setup for the Zabbix proxy - repository, packages, tuning, database and schema

"""
PostgreSQL for the Zabbix proxy.

Server administration (role and database creation) runs as the postgres OS
account through psql, with the SQL on stdin so the password never appears
in a process listing. Schema checks and the schema import connect as the
zabbix role with psycopg2 over localhost.
"""

import gzip
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from ..errors import ConfigurationError, InstallerError, PackageError, ServiceError
from ..config.zabbix_renderer import TUNING_MARKER
from ..models import PlatformDescriptor
from ..system.commands import format_command, run_command

logger = logging.getLogger(__name__)

DB_NAME = "zabbix_proxy"
DB_USER = "zabbix"

APT_KEY_URL = "https://www.postgresql.org/media/keys/ACCC4CF8.asc"
APT_KEYRING = Path("/usr/share/keyrings/postgresql-keyring.gpg")
APT_SOURCE = Path("/etc/apt/sources.list.d/pgdg.list")
PGDG_RPM_URL = ("https://download.postgresql.org/pub/repos/yum/reporpms/"
                "EL-{rhel}-x86_64/pgdg-redhat-repo-latest.noarch.rpm")

SCHEMA_CANDIDATES = (
    Path("/usr/share/zabbix-sql-scripts/postgresql/proxy.sql"),
    Path("/usr/share/doc/zabbix-sql-scripts/postgresql/proxy.sql.gz"),
)


def _psycopg2():
    try:
        import psycopg2
        import psycopg2.extensions
    except ImportError as e:
        raise ConfigurationError("psycopg2 is required for the Zabbix profile",
                                 remediation="pip install psycopg2-binary") from e
    return psycopg2


def sql_literal(value: str) -> str:
    """Quote a string as an SQL literal (psycopg2 escaping)."""
    psycopg2 = _psycopg2()
    quoted = psycopg2.extensions.QuotedString(value)
    quoted.encoding = 'utf8'
    return quoted.getquoted().decode('utf-8')


class PostgresServer:
    """Installs and prepares the local PostgreSQL server."""

    def __init__(self, platform: PlatformDescriptor, packages, fetcher, workspace: Path,
                 version: str, runner=run_command):
        self.platform = platform
        self.packages = packages
        self.fetcher = fetcher
        self.workspace = Path(workspace)
        self.version = version
        self.runner = runner

    @property
    def rhel_major(self) -> str:
        return (self.platform.distro_version or '9').split('.')[0]

    @property
    def is_apt(self) -> bool:
        return self.platform.package_manager == 'apt'

    def service_candidates(self) -> List[str]:
        return [f"postgresql-{self.version}", "postgresql"]

    # -- installation ---------------------------------------------------

    def install(self) -> None:
        print("Adding PostgreSQL repository...")
        if self.is_apt:
            self._add_apt_repository()
            self.packages.update()
            self.packages.install([f"postgresql-{self.version}", f"postgresql-contrib-{self.version}"])
        else:
            self._add_rpm_repository()
            self.packages.install([f"postgresql{self.version}-server", f"postgresql{self.version}-contrib"])
            self._initdb()
        print("✓ PostgreSQL installed!")

    def _add_apt_repository(self) -> None:
        self.packages.install(['wget', 'ca-certificates', 'gnupg', 'lsb-release'])
        key = self.fetcher.fetch(APT_KEY_URL, self.workspace / 'postgresql.asc')
        APT_KEYRING.parent.mkdir(parents=True, exist_ok=True)
        result = self.runner(['gpg', '--dearmor', '--yes', '-o', str(APT_KEYRING), str(key)])
        if result.returncode != 0:
            raise PackageError(f"Failed to import PostgreSQL signing key: {result.stderr.strip()}")
        codename = self.platform.distro_codename
        if not codename:
            raise PackageError("Cannot determine distribution codename for the PostgreSQL repository")
        APT_SOURCE.write_text(
            f"deb [signed-by={APT_KEYRING}] http://apt.postgresql.org/pub/repos/apt {codename}-pgdg main\n")

    def _add_rpm_repository(self) -> None:
        cmd = self.packages.install_command([PGDG_RPM_URL.format(rhel=self.rhel_major)])
        result = self.runner(cmd, timeout=600)
        if result.returncode != 0:
            if self.platform.distro_id == 'amzn':
                logger.warning(f"PGDG repository install failed on Amazon Linux: {result.stderr.strip()}")
            elif 'already installed' not in (result.stdout + result.stderr):
                raise PackageError(f"Failed to add PostgreSQL repository: {result.stderr.strip()}",
                                   remediation=f"Run manually: {format_command(cmd)}")
        if self.packages.name == 'dnf':
            # RHEL 8+ ships a postgresql module that shadows the PGDG packages
            self.runner(['dnf', '-qy', 'module', 'disable', 'postgresql'])

    def _initdb(self) -> None:
        print("Initializing database...")
        setup = f"/usr/pgsql-{self.version}/bin/postgresql-{self.version}-setup"
        result = self.runner([setup, 'initdb'], timeout=300)
        if result.returncode != 0 and 'not empty' not in (result.stdout + result.stderr):
            raise InstallerError(f"PostgreSQL initdb failed: {(result.stdout + result.stderr).strip()}",
                                 remediation=f"Run manually: {setup} initdb")

    # -- service ----------------------------------------------------------

    def start(self, manager, verifier) -> str:
        """Enable and start whichever PostgreSQL unit exists. Returns its name."""
        for name in self.service_candidates():
            if manager.exists(name):
                was_running = manager.is_running(name)
                manager.enable(name)
                verifier.verify(name, start=not was_running, record=not was_running)
                print("✓ PostgreSQL running!")
                return name
        raise ServiceError("PostgreSQL service not found after installation",
                           remediation="systemctl list-unit-files 'postgresql*'")

    # -- tuning -----------------------------------------------------------

    def conf_path(self) -> Optional[Path]:
        for candidate in (Path(f"/etc/postgresql/{self.version}/main/postgresql.conf"),
                          Path(f"/var/lib/pgsql/{self.version}/data/postgresql.conf")):
            if candidate.exists():
                return candidate
        return None

    def apply_tuning(self, tuning_block: str) -> Optional[Path]:
        """Back up postgresql.conf and append the tuning block. Returns the conf path, or None if not found."""
        conf = self.conf_path()
        if conf is None:
            print("⚠ Could not find postgresql.conf, skipping tuning")
            return None
        backup = conf.with_name(conf.name + '.backup')
        current = conf.read_text()
        if TUNING_MARKER in current and backup.exists():
            # Re-install: start again from the untuned original
            base = backup.read_text()
        else:
            shutil.copy2(conf, backup)
            base = current
        conf.write_text(base + tuning_block)
        print("✓ PostgreSQL configured")
        return conf

    # -- database ---------------------------------------------------------

    def _psql_as_postgres(self, sql: str, database: Optional[str] = None):
        cmd = ['sudo', '-u', 'postgres', 'psql', '-v', 'ON_ERROR_STOP=1', '-q']
        if database:
            cmd += ['-d', database]
        return self.runner(cmd, input_text=sql, secret=True)

    def create_database(self, password: str) -> None:
        print("Creating Zabbix database and user...")
        statements = [
            (f"CREATE USER {DB_USER} WITH PASSWORD {sql_literal(password)};", f"User {DB_USER} already exists"),
            (f"CREATE DATABASE {DB_NAME} OWNER {DB_USER};", f"Database {DB_NAME} already exists"),
            (f"GRANT ALL PRIVILEGES ON DATABASE {DB_NAME} TO {DB_USER};", None),
        ]
        for sql, exists_message in statements:
            result = self._psql_as_postgres(sql)
            if result.returncode == 0:
                continue
            if 'already exists' in result.stderr and exists_message:
                print(f"⚠ {exists_message}")
                continue
            raise InstallerError(f"PostgreSQL command failed: {result.stderr.strip()}",
                                 remediation="Check 'sudo -u postgres psql' access and the PostgreSQL log")

        # Keep the stored password in sync on re-install
        result = self._psql_as_postgres(f"ALTER USER {DB_USER} WITH PASSWORD {sql_literal(password)};")
        if result.returncode != 0:
            raise InstallerError(f"Failed to set password for {DB_USER}: {result.stderr.strip()}")
        print("✓ Database created!")

    def connect(self, password: str):
        psycopg2 = _psycopg2()
        return psycopg2.connect(host='localhost', dbname=DB_NAME, user=DB_USER,
                                password=password, connect_timeout=10)

    def schema_imported(self, password: str) -> bool:
        """True if the proxy schema (hosts table) already exists."""
        psycopg2 = _psycopg2()
        try:
            conn = self.connect(password)
        except psycopg2.OperationalError as e:
            logger.warning(f"Cannot connect as {DB_USER} over TCP ({e}); checking through psql")
            result = self._psql_as_postgres("SELECT to_regclass('public.hosts') IS NOT NULL;", database=DB_NAME)
            return result.returncode == 0 and 't' in result.stdout.split()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass('public.hosts') IS NOT NULL")
                return bool(cur.fetchone()[0])
        finally:
            conn.close()

    def find_schema(self) -> Path:
        for candidate in SCHEMA_CANDIDATES:
            if candidate.exists():
                return candidate
        raise InstallerError("Could not find Zabbix schema file",
                             remediation="Install the zabbix-sql-scripts package and re-run")

    @staticmethod
    def read_schema(path: Path) -> str:
        if path.suffix == '.gz':
            with gzip.open(path, 'rt', encoding='utf-8') as f:
                return f.read()
        return path.read_text(encoding='utf-8')

    def import_schema(self, password: str) -> bool:
        """
        Import the proxy schema unless it is already there.

        Returns:
            True if imported, False if skipped
        """
        print("Importing Zabbix database schema...")
        if self.schema_imported(password):
            print("⚠ Schema already imported, skipping")
            return False

        sql = self.read_schema(self.find_schema())
        psycopg2 = _psycopg2()
        try:
            conn = self.connect(password)
        except psycopg2.OperationalError as e:
            logger.warning(f"Cannot connect as {DB_USER} over TCP ({e}); importing through psql")
            result = self.runner(['sudo', '-u', DB_USER, 'psql', '-v', 'ON_ERROR_STOP=1', '-q', DB_NAME],
                                 input_text=sql, timeout=600)
            if result.returncode != 0:
                raise InstallerError(f"Schema import failed: {result.stderr.strip()[-2000:]}")
            print("✓ Schema imported!")
            return True

        try:
            with conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
        except psycopg2.Error as e:
            raise InstallerError(f"Schema import failed: {e}")
        finally:
            conn.close()
        print("✓ Schema imported!")
        return True
