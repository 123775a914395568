"""
Unit tests for configuration loading and validation.
"""

import logging
from pathlib import Path

import pytest

from webserver.config import ConfigurationError, ServerConfig, env_overrides, file_overrides


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.address == "127.0.0.1"
        assert config.port == 8080
        assert config.threads == 4
        assert config.web_root == "."
        assert config.log_level == "INFO"
        assert config.log_dir is None
        assert config.buffer_size == 4096
        assert config.timeout == 30.0

    def test_defaults_validate(self):
        ServerConfig().validate()

    def test_frozen(self):
        with pytest.raises(AttributeError):
            ServerConfig().port = 9000

    def test_with_overrides_skips_none(self):
        config = ServerConfig().with_overrides(port=9000, threads=None)

        assert config.port == 9000
        assert config.threads == 4

    @pytest.mark.parametrize("overrides", [
        {"port": 0},
        {"port": -1},
        {"port": 65536},
        {"threads": 0},
        {"threads": -3},
        {"address": ""},
        {"web_root": ""},
        {"web_root": "/definitely/not/here"},
        {"log_level": "LOUD"},
        {"buffer_size": 0},
        {"timeout": 0},
        {"backlog": 0},
    ])
    def test_invalid_values(self, overrides: dict):
        with pytest.raises(ConfigurationError):
            ServerConfig(**overrides).validate()

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_web_root_must_be_directory(self, web_root: Path):
        with pytest.raises(ConfigurationError):
            ServerConfig(web_root=str(web_root / "index.html")).validate()

    def test_log_level_is_case_insensitive(self):
        config = ServerConfig(log_level="debug")

        config.validate()
        assert config.log_level_number == logging.DEBUG


class TestEnvironment:
    """Tests for WEBSERVER_* environment variables."""

    def test_env_overrides(self):
        overrides = env_overrides({
            "WEBSERVER_ADDRESS": "0.0.0.0",
            "WEBSERVER_PORT": "3000",
            "WEBSERVER_THREADS": "8",
            "WEBSERVER_DIR": "/srv/www",
            "WEBSERVER_LOG_LEVEL": "DEBUG",
            "WEBSERVER_LOG_DIR": "/var/log/webserver",
            "WEBSERVER_TIMEOUT": "2.5",
            "UNRELATED": "ignored",
        })

        assert overrides == {
            "address": "0.0.0.0",
            "port": 3000,
            "threads": 8,
            "web_root": "/srv/www",
            "log_level": "DEBUG",
            "log_dir": "/var/log/webserver",
            "timeout": 2.5,
        }

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("WEBSERVER_PORT", "3001")
        monkeypatch.delenv("WEBSERVER_THREADS", raising=False)

        config = ServerConfig.from_env()

        assert config.port == 3001
        assert config.threads == 4

    def test_bad_number(self):
        with pytest.raises(ConfigurationError):
            env_overrides({"WEBSERVER_PORT": "eighty"})


class TestConfigFile:
    """Tests for TOML config files."""

    def test_from_file(self, tmp_path: Path):
        path = tmp_path / "webserver.toml"
        path.write_text(
            'address = "0.0.0.0"\n'
            "port = 3000\n"
            "threads = 8\n"
            'dir = "./public"\n'
            'log_level = "DEBUG"\n'
            "timeout = 10\n"
        )

        config = ServerConfig.from_file(path)

        assert config.address == "0.0.0.0"
        assert config.port == 3000
        assert config.threads == 8
        assert config.web_root == "./public"
        assert config.log_level == "DEBUG"
        assert config.timeout == 10.0

    def test_unknown_key(self, tmp_path: Path):
        path = tmp_path / "webserver.toml"
        path.write_text("workers = 8\n")

        with pytest.raises(ConfigurationError, match="workers"):
            file_overrides(path)

    def test_wrong_type(self, tmp_path: Path):
        path = tmp_path / "webserver.toml"
        path.write_text('port = "8080"\n')

        with pytest.raises(ConfigurationError):
            file_overrides(path)

    def test_invalid_toml(self, tmp_path: Path):
        path = tmp_path / "webserver.toml"
        path.write_text("port = = 1\n")

        with pytest.raises(ConfigurationError):
            file_overrides(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            file_overrides(tmp_path / "nope.toml")
