"""
Tests for the YAML settings loader.

Verifies:
- Empty documents yield a local-only ledger in the default database
- Unknown sections and keys are rejected
- Value validation (timeouts, retries, endpoint, users, log level)
- CASHFLOW_DATABASE_URL overrides storage.database_url
"""

import pytest
import yaml

from cashflow_config.loader import (
    apply_environment,
    load_settings,
    load_yaml_file,
    parse_remote,
    parse_settings,
)
from cashflow_config.schema import CashflowSettings, RemoteKind
from cashflow_kernel.exceptions import ConfigurationError

DIGEST = "5e884898da28047151d0e56f8dc6292773603d0d6aabbdd62a11ef721d1542d8"


def _write(tmp_path, text):
    path = tmp_path / "cashflow.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_no_file_gives_defaults(self):
        settings = load_settings(None, environ={})

        assert settings == CashflowSettings()
        assert settings.storage.database_url == "sqlite:///cashflow.db"
        assert settings.remote.kind is RemoteKind.NONE

    def test_empty_file_gives_defaults(self, tmp_path):
        assert load_settings(_write(tmp_path, ""), environ={}) == CashflowSettings()


class TestFullDocument:
    def test_parses_every_section(self, tmp_path):
        path = _write(
            tmp_path,
            f"""
log_level: debug
storage:
  database_url: sqlite:///ledger.db
  echo: true
remote:
  kind: sheets
  endpoint_url: https://script.test/exec
  sheets_id: abc
  probe_timeout: 2
  write_retries: 3
users:
  - user_id: treasurer
    name: Treasurer
    role: Tesoureiro
    password_sha256: {DIGEST.upper()}
""",
        )

        settings = load_settings(path, environ={})

        assert settings.log_level == "DEBUG"
        assert settings.storage.database_url == "sqlite:///ledger.db"
        assert settings.storage.echo is True
        assert settings.remote.kind is RemoteKind.SHEETS
        assert settings.remote.probe_url == "https://script.test/exec"
        assert settings.remote.probe_timeout == 2.0
        assert settings.remote.write_retries == 3
        assert settings.users[0].password_sha256 == DIGEST

    def test_health_url_preferred_for_probe(self):
        remote = parse_remote(
            {"kind": "rest", "endpoint_url": "https://api.test", "health_url": "https://api.test/health"}
        )
        assert remote.probe_url == "https://api.test/health"


class TestValidation:
    @pytest.mark.parametrize(
        "data, setting",
        [
            ({"remotes": {}}, "settings"),
            ({"storage": {"url": "x"}}, "storage"),
            ({"remote": {"kind": "ftp"}}, "remote.kind"),
            ({"remote": {"kind": "rest"}}, "remote.endpoint_url"),
            ({"remote": {"probe_timeout": 0}}, "remote.probe_timeout"),
            ({"remote": {"write_timeout": -1}}, "remote.write_timeout"),
            ({"remote": {"write_retries": -1}}, "remote.write_retries"),
            ({"remote": {"retry_delay": -0.1}}, "remote.retry_delay"),
            ({"remote": {"probe_timeout": "soon"}}, "remote"),
            ({"log_level": "chatty"}, "log_level"),
            ({"timezone": "Mars/Olympus_Mons"}, "timezone"),
        ],
    )
    def test_rejected(self, data, setting):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_settings(data)
        assert exc_info.value.setting == setting

    def test_user_missing_field(self):
        with pytest.raises(ConfigurationError, match="missing password_sha256"):
            parse_settings({"users": [{"user_id": "a", "name": "A"}]})

    def test_user_bad_digest(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"users": [{"user_id": "a", "name": "A", "password_sha256": "abc"}]})

    def test_duplicate_users(self):
        user = {"user_id": "a", "name": "A", "password_sha256": DIGEST}
        with pytest.raises(ConfigurationError, match="duplicate"):
            parse_settings({"users": [user, dict(user)]})

    def test_non_mapping_document(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_yaml_file(_write(tmp_path, "- just\n- a list\n"))

    def test_malformed_yaml_is_configuration_error(self, tmp_path):
        path = _write(tmp_path, "storage: [unclosed\n")

        with pytest.raises(ConfigurationError, match="invalid YAML") as info:
            load_yaml_file(path)

        assert info.value.setting == str(path)
        assert isinstance(info.value.__cause__, yaml.YAMLError)

    def test_missing_file_propagates(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", environ={})


class TestEnvironment:
    def test_database_url_override(self):
        settings = apply_environment(
            CashflowSettings(), {"CASHFLOW_DATABASE_URL": "postgresql://db/ledger"}
        )
        assert settings.storage.database_url == "postgresql://db/ledger"

    def test_empty_override_ignored(self):
        assert apply_environment(CashflowSettings(), {"CASHFLOW_DATABASE_URL": ""}) == CashflowSettings()
