"""Tests for YAML + environment configuration loading."""
from unittest.mock import patch

import pytest

from tms.config import load_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "tms.yml"
    path.write_text(
        "server:\n"
        "  port: 9000\n"
        "reminders:\n"
        "  cron: '30 7 * * *'\n"
        "  include_events: true\n"
    )
    return str(path)


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        with patch.dict("os.environ", {}, clear=True):
            config = load_config(str(tmp_path / "absent.yml"))
        assert config.server.port == 8001
        assert config.auth.algorithm == "HS256"
        assert config.auth.access_token_expire_minutes == 10080
        assert config.reminders.cron == "0 8 * * *"
        assert config.email.backend == "log"

    def test_yaml_values(self, config_file):
        with patch.dict("os.environ", {}, clear=True):
            config = load_config(config_file)
        assert config.server.port == 9000
        assert config.reminders.cron == "30 7 * * *"
        assert config.reminders.include_events is True

    def test_section_override_coerces_types(self, config_file):
        env = {"CONFIG__SERVER__PORT": "9100", "CONFIG__REMINDERS__ENABLED": "false"}
        with patch.dict("os.environ", env, clear=True):
            config = load_config(config_file)
        assert config.server.port == 9100
        assert config.reminders.enabled is False

    def test_named_variables(self, tmp_path):
        env = {
            "DATABASE_URL": "postgresql://tms@db/tms",
            "JWT_SECRET": "s3cret",
            "PORT": "8080",
            "CLIENT_ORIGIN": "https://tms.example.com",
        }
        with patch.dict("os.environ", env, clear=True):
            config = load_config(str(tmp_path / "absent.yml"))
        assert config.database.url == "postgresql://tms@db/tms"
        assert config.auth.secret_key == "s3cret"
        assert config.server.port == 8080
        assert config.server.cors_origins == ["http://localhost:5173", "https://tms.example.com"]

    def test_mail_credentials_select_smtp(self, tmp_path):
        env = {"EMAIL_USER": "bot@example.com", "EMAIL_PASS": "app-password"}
        with patch.dict("os.environ", env, clear=True):
            config = load_config(str(tmp_path / "absent.yml"))
        assert config.email.backend == "smtp"
        assert config.email.username == "bot@example.com"
        assert "bot@example.com" in config.email.sender
