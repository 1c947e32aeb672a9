# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/tests/inputs_test.py
# Author: Elven Observability
# Details of functionality of this file: Tests for custom label parsing, input resolution precedence and the confirmation prompt

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from telemetry_installer.errors import ConfigurationError, InstallationCancelled, ValidationError
from telemetry_installer.inputs import InputResolver, parse_custom_labels
from telemetry_installer.settings import DEFAULT_ENDPOINT, InstallerSettings
from telemetry_installer.tests.fakes import ScriptedPrompter

SECRET = "s" * 64


class TestCustomLabels(unittest.TestCase):

    def test_last_write_wins(self):
        self.assertEqual(parse_custom_labels("a=1,b=2,a=3"), {'a': '3', 'b': '2'})

    def test_empty_and_blank_items(self):
        self.assertEqual(parse_custom_labels(""), {})
        self.assertEqual(parse_custom_labels(None), {})
        self.assertEqual(parse_custom_labels("team=core,,region=sa"), {'team': 'core', 'region': 'sa'})

    def test_value_may_contain_equals(self):
        self.assertEqual(parse_custom_labels("query=a=b"), {'query': 'a=b'})

    def test_invalid_entries(self):
        for text in ("novalue", "1abc=x", "bad-key=x", "empty="):
            with self.subTest(text=text):
                with self.assertRaises(ValidationError):
                    parse_custom_labels(text)

    def test_protected_keys_rejected(self):
        for key in ('hostname', 'environment', 'os', 'customer'):
            with self.subTest(key=key):
                with self.assertRaises(ValidationError):
                    parse_custom_labels(f"{key}=x")


class TestMetricsResolution(unittest.TestCase):

    def setUp(self):
        self.settings = InstallerSettings()

    def resolver(self, env, prompter=None):
        return InputResolver(self.settings, 'web-01', env=env,
                             prompter=prompter or ScriptedPrompter(interactive=False))

    def test_environment_only_uses_defaults(self):
        request = self.resolver({'TENANT_ID': 'acme-prod', 'API_TOKEN': 'abc123'}).resolve_metrics()
        self.assertEqual(request.tenant_id, 'acme-prod')
        self.assertEqual(request.instance_name, 'web-01')
        self.assertEqual(request.environment, 'production')
        self.assertEqual(request.endpoint_url, DEFAULT_ENDPOINT)
        self.assertEqual(request.customer_name, '')
        self.assertEqual(request.versions['otelcol'], self.settings.version('otelcol'))

    def test_environment_overrides(self):
        env = {
            'TENANT_ID': 'acme-prod', 'API_TOKEN': 'abc123', 'INSTANCE_NAME': 'db-7',
            'ENVIRONMENT': 'staging', 'CUSTOMER_NAME': 'Acme', 'MIMIR_ENDPOINT': 'http://mimir:9009/push',
            'CUSTOM_LABELS': 'team=data,a=1,a=2',
        }
        request = self.resolver(env).resolve_metrics()
        self.assertEqual(request.instance_name, 'db-7')
        self.assertEqual(request.environment, 'staging')
        self.assertEqual(request.customer_name, 'Acme')
        self.assertEqual(request.endpoint_url, 'http://mimir:9009/push')
        self.assertEqual(request.custom_labels, {'team': 'data', 'a': '2'})

    def test_bad_endpoint_rejected(self):
        env = {'TENANT_ID': 't', 'API_TOKEN': 'x', 'MIMIR_ENDPOINT': 'ftp://nope'}
        with self.assertRaises(ValidationError):
            self.resolver(env).resolve_metrics()

    def test_non_interactive_without_required_env(self):
        with self.assertRaises(ConfigurationError) as ctx:
            self.resolver({'TENANT_ID': 'acme'}).resolve_metrics()
        self.assertIn('API_TOKEN', ctx.exception.remediation)

    def test_blank_env_values_count_as_missing(self):
        with self.assertRaises(ConfigurationError):
            self.resolver({'TENANT_ID': '  ', 'API_TOKEN': 'abc'}).resolve_metrics()

    def test_interactive_reprompts_empty_tenant(self):
        # tenant: '' then 'acme-prod'; instance, customer, environment, endpoint defaults; one label; blank ends
        prompter = ScriptedPrompter(answers=['', 'acme-prod', '', '', 'staging', '', 'team=web', ''],
                                    secrets=['abc123'])
        request = self.resolver({}, prompter).resolve_metrics()
        self.assertEqual(request.tenant_id, 'acme-prod')
        self.assertEqual(request.auth_token, 'abc123')
        self.assertEqual(request.environment, 'staging')
        self.assertEqual(request.custom_labels, {'team': 'web'})
        self.assertIn("Tenant ID cannot be empty!", prompter.errors)

    def test_interactive_rejects_protected_label_and_continues(self):
        prompter = ScriptedPrompter(answers=['acme', '', '', '', '', 'os=bsd', 'tier=1', ''],
                                    secrets=['tok'])
        request = self.resolver({}, prompter).resolve_metrics()
        self.assertEqual(request.custom_labels, {'tier': '1'})
        self.assertEqual(len(prompter.errors), 1)


class TestFaroAndZabbixResolution(unittest.TestCase):

    def setUp(self):
        self.settings = InstallerSettings()

    def test_faro_from_environment(self):
        env = {'SECRET_KEY': SECRET, 'LOKI_API_TOKEN': 'loki-token', 'PORT': '3100',
               'LOCAL_BINARY': '/tmp/collector', 'JWT_VALIDATE_EXP': 'TRUE'}
        request = InputResolver(self.settings, 'web-01', env=env,
                                prompter=ScriptedPrompter(interactive=False)).resolve_faro()
        self.assertEqual(request.port, 3100)
        self.assertEqual(request.loki_url, self.settings.default_loki_url)
        self.assertEqual(request.local_binary, '/tmp/collector')
        self.assertEqual(request.github_repo, self.settings.faro_repo)
        self.assertEqual(request.jwt_validate_exp, 'true')

    def test_faro_short_secret(self):
        env = {'SECRET_KEY': 'short', 'LOKI_API_TOKEN': 'x'}
        with self.assertRaises(ValidationError):
            InputResolver(self.settings, 'h', env=env,
                          prompter=ScriptedPrompter(interactive=False)).resolve_faro()

    def test_faro_bad_port(self):
        env = {'SECRET_KEY': SECRET, 'LOKI_API_TOKEN': 'x', 'PORT': '70000'}
        with self.assertRaises(ValidationError):
            InputResolver(self.settings, 'h', env=env,
                          prompter=ScriptedPrompter(interactive=False)).resolve_faro()

    def test_zabbix_invalid_profile_falls_back_to_medium(self):
        prompter = ScriptedPrompter(interactive=False)
        env = {'ZABBIX_SERVER': '10.0.0.1', 'PROXY_NAME': 'proxy-01', 'DB_PASSWORD': 'longenough',
               'PERFORMANCE_PROFILE': 'extreme', 'PROXY_MODE': '1'}
        request = InputResolver(self.settings, 'h', env=env, prompter=prompter).resolve_zabbix()
        self.assertEqual(request.performance_profile, 'medium')
        self.assertEqual(request.proxy_mode, 1)
        self.assertEqual(len(prompter.warnings), 1)

    def test_zabbix_short_password(self):
        env = {'ZABBIX_SERVER': 'z', 'PROXY_NAME': 'p', 'DB_PASSWORD': 'short'}
        with self.assertRaises(ValidationError):
            InputResolver(self.settings, 'h', env=env,
                          prompter=ScriptedPrompter(interactive=False)).resolve_zabbix()

    def test_zabbix_interactive_defaults_proxy_name_to_hostname(self):
        prompter = ScriptedPrompter(answers=['zabbix.example.com', '', '', 'heavy'], secrets=['password1'])
        request = InputResolver(self.settings, 'edge-3', env={}, prompter=prompter).resolve_zabbix()
        self.assertEqual(request.proxy_name, 'edge-3')
        self.assertEqual(request.proxy_mode, 0)
        self.assertEqual(request.performance_profile, 'heavy')


class TestConfirmation(unittest.TestCase):

    def test_declined_raises_cancelled(self):
        resolver = InputResolver(InstallerSettings(), 'h', env={}, prompter=ScriptedPrompter(answers=['n']))
        with self.assertRaises(InstallationCancelled) as ctx:
            resolver.confirm("Install", [("Tenant ID", "acme")])
        self.assertEqual(ctx.exception.exit_code, 0)

    def test_uppercase_y_accepted(self):
        resolver = InputResolver(InstallerSettings(), 'h', env={}, prompter=ScriptedPrompter(answers=['Y']))
        resolver.confirm("Install", [])

    def test_skipped_without_terminal(self):
        prompter = ScriptedPrompter(interactive=False)
        InputResolver(InstallerSettings(), 'h', env={}, prompter=prompter).confirm("Install", [("A", "b")])
        self.assertEqual(prompter.prompts, [])

    def test_summary_never_shows_token(self):
        prompter = ScriptedPrompter(answers=['y'])
        resolver = InputResolver(InstallerSettings(), 'web-01',
                                 env={'TENANT_ID': 'acme', 'API_TOKEN': 'super-secret-token'}, prompter=prompter)
        request = resolver.resolve_metrics()
        resolver.confirm("Install", request.masked_summary())
        self.assertFalse(any('super-secret-token' in m for m in prompter.messages))


if __name__ == '__main__':
    unittest.main()
