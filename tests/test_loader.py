"""Tests for config file loading and the transport factory."""

import json
import logging
import os

import pytest

from ctxlog import loader
from ctxlog.config import LoggerConfig, RotationMethod
from ctxlog.dates import DateBucket
from ctxlog.errors import ConfigError, InvalidRotationMethodError
from ctxlog.levels import Exclude, Include, LogLevel
from ctxlog.rotating import RotatingFileTransport
from ctxlog.transports import ConsoleTransport, FileTransport, JSONTransport


def _write_yaml(path, text):
    path.write_text(text)
    return str(path)


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(loader.ENV_VAR_NAME, raising=False)


class TestDefaults:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = loader.load_config(str(tmp_path / "nope.yml"))
        assert config.level is LogLevel.INFO
        assert config.default_transports == ["console"]
        assert isinstance(config.transports["console"], ConsoleTransport)

    def test_no_file_discovered(self):
        assert loader.load_config().default_transports == ["console"]


class TestFindConfigFile:
    def test_walks_up(self, tmp_path):
        found = _write_yaml(tmp_path / "ctxlog.config.yml", "level: DEBUG\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert loader.find_config_file(str(nested)) == found

    def test_discovered_from_cwd(self, tmp_path):
        _write_yaml(tmp_path / "ctxlog.config.yaml", "level: TRACE\n")
        assert loader.load_config().level is LogLevel.TRACE


class TestLoadConfig:
    def test_yaml_transports(self, tmp_path):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", f"""
level: debug
timestamp: true
colors: false
includeName: false
transports:
  console:
    type: console
    levels: {{exclude: [TRACE]}}
  file:
    type: file
    path: {tmp_path}/logs/app.log
  json:
    type: json
    path: {tmp_path}/logs/app.jsonl
    levels: {{include: [ERROR]}}
defaultTransports: [console, file]
""")
        config = loader.load_config(path)

        assert config.level is LogLevel.DEBUG
        assert config.timestamp is True
        assert config.colors is False
        assert config.include_name is False
        assert config.include_level is True
        assert isinstance(config.transports["console"], ConsoleTransport)
        assert config.transports["console"].level_filter == Exclude([LogLevel.TRACE])
        assert type(config.transports["file"]) is FileTransport
        assert isinstance(config.transports["json"], JSONTransport)
        assert config.transports["json"].level_filter == Include([LogLevel.ERROR])
        assert config.default_transports == ["console", "file"]

    def test_json_file(self, tmp_path):
        path = tmp_path / "ctxlog.config.json"
        path.write_text(json.dumps({"level": "WARN", "transports": {"out": {"type": "console"}}, "defaultTransports": ["out"]}))
        config = loader.load_config(str(path))
        assert config.level is LogLevel.WARN
        assert list(config.transports) == ["out"]

    def test_log_transport(self, tmp_path):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", f"""
transports:
  app:
    type: log
    path: {tmp_path}/logs/app.log
    method: date
    dateFormat: YYYY-MM-DD-HH
    maxFiles: 7
    archive:
      directory: {tmp_path}/archive
      compress: false
      retentionDays: 0
""")
        transport = loader.load_config(path).transports["app"]

        assert isinstance(transport, RotatingFileTransport)
        assert transport.config.method is RotationMethod.DATE
        assert transport.config.date_bucket is DateBucket.HOUR
        assert transport.config.max_files == 7
        assert transport.config.compress is False
        assert transport.config.retention_days == 0
        assert transport.archive_dir == str(tmp_path / "archive")

    def test_log_transport_defaults(self, tmp_path):
        transport = loader.create_log_transport("app", {"path": str(tmp_path / "app.log"), "method": "size"})
        assert transport.config.max_size_bytes == 10 * 1024 * 1024
        assert transport.config.max_files is None
        assert transport.config.effective_max_files == 5
        assert transport.config.compress is True
        assert transport.config.retention_days == 30
        assert transport.archive_dir == os.path.join(str(tmp_path), "logs", "app")

    def test_list_format(self, tmp_path):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", f"""
transports:
  - type: console
  - type: file
    path: {tmp_path}/app.log
""")
        config = loader.load_config(path)
        assert list(config.transports) == ["console_0", "file_1"]
        assert config.default_transports == ["console_0", "file_1"]

    def test_mapping_without_defaults_uses_every_transport(self, tmp_path):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", f"""
transports:
  out: {{type: console}}
  app: {{type: file, path: {tmp_path}/app.log}}
""")
        config = loader.load_config(path)
        assert config.default_transports == ["out", "app"]

    def test_build_config_validates_defaults(self):
        with pytest.raises(ConfigError, match="non-existent transports: missing"):
            loader.build_config({"defaultTransports": ["console", "missing"]})

    def test_invalid_level_falls_back(self, tmp_path, caplog):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", "level: LOUD\n")
        with caplog.at_level(logging.WARNING, logger="ctxlog.loader"):
            config = loader.load_config(path)
        assert config.level is LogLevel.INFO
        assert "Invalid log level" in caplog.text

    @pytest.mark.parametrize("body", [
        "transports:\n  app: {type: log, path: app.log, method: weekly}\n",
        "transports:\n  c: {type: console, levels: {include: [INFO], exclude: [DEBUG]}}\n",
        "transports:\n  f: {type: file}\n",
        "transports:\n  x: {type: carrier-pigeon}\n",
        "level: [unterminated\n",
        "- just\n- a list\n",
        "transports:\n  c: {type: console}\ndefaultTransports: [c, missing]\n",
    ])
    def test_invalid_file_gives_defaults_with_warning(self, tmp_path, caplog, body):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", body)
        with caplog.at_level(logging.WARNING, logger="ctxlog.loader"):
            config = loader.load_config(path)
        assert config.default_transports == ["console"]
        assert "Failed to load ctxlog config" in caplog.text


class TestEnvironments:
    BODY = """
level: INFO
timestamp: false
transports:
  console: {type: console}
production:
  level: ERROR
  timestamp: true
development:
  level: DEBUG
"""

    def test_explicit_environment(self, tmp_path):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", self.BODY)
        config = loader.load_config(path, environment="production")
        assert config.level is LogLevel.ERROR
        assert config.timestamp is True
        assert "console" in config.transports

    def test_environment_from_env_var(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", self.BODY)
        monkeypatch.setenv(loader.ENV_VAR_NAME, "development")
        assert loader.load_config(path).level is LogLevel.DEBUG

    def test_unknown_environment_uses_root(self, tmp_path, caplog):
        path = _write_yaml(tmp_path / "ctxlog.config.yml", self.BODY)
        with caplog.at_level(logging.WARNING, logger="ctxlog.loader"):
            config = loader.load_config(path, environment="staging")
        assert config.level is LogLevel.INFO
        assert "Environment 'staging' not found" in caplog.text

    def test_extract_drops_other_sections(self):
        raw = {"level": "INFO", "prod": {"level": "ERROR"}, "dev": {"level": "DEBUG"}}
        assert loader.extract_environment_config(raw, "prod") == {"level": "ERROR"}

    def test_deep_merge(self):
        base = {"transports": {"a": {"type": "console", "colors": True}}}
        merged = loader._deep_merge(base, {"transports": {"a": {"colors": False}}})
        assert merged == {"transports": {"a": {"type": "console", "colors": False}}}
        assert base["transports"]["a"]["colors"] is True


class TestLevelFilter:
    def test_none(self):
        assert loader.parse_level_filter(None) is None

    def test_include(self):
        assert loader.parse_level_filter({"include": ["error", "warning"]}) == Include([LogLevel.ERROR, LogLevel.WARN])

    def test_both_rejected(self):
        with pytest.raises(ConfigError, match="both include and exclude"):
            loader.parse_level_filter({"include": ["ERROR"], "exclude": ["DEBUG"]})

    def test_unknown_level_rejected(self):
        with pytest.raises(ConfigError):
            loader.parse_level_filter({"exclude": ["VERBOSE"]})


class TestTransportFactory:
    def test_log_transport_requires_method(self, tmp_path):
        with pytest.raises(ConfigError, match="requires method"):
            loader.create_log_transport("app", {"path": str(tmp_path / "app.log")})

    def test_invalid_method_names_transport(self, tmp_path):
        with pytest.raises(InvalidRotationMethodError, match="'app'"):
            loader.create_log_transport("app", {"path": str(tmp_path / "app.log"), "method": "weekly"})

    def test_invalid_date_format(self, tmp_path):
        with pytest.raises(ConfigError):
            loader.create_log_transport(
                "app", {"path": str(tmp_path / "app.log"), "method": "date", "dateFormat": "DD/MM/YYYY"}
            )


class TestValidation:
    def test_missing_default_transport(self):
        config = LoggerConfig(transports={"console": ConsoleTransport()}, default_transports=["console", "file"])
        with pytest.raises(ConfigError, match="file"):
            loader.validate_config(config)

    def test_valid(self):
        loader.validate_config(loader.default_config())

    def test_no_transports_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="ctxlog.loader"):
            loader.validate_config(LoggerConfig())
        assert "No transports configured" in caplog.text

    def test_resolve_transports(self):
        config = loader.default_config()
        assert loader.resolve_transports(config, ["console"]) == [config.transports["console"]]
        with pytest.raises(ConfigError, match="'missing' not found"):
            loader.resolve_transports(config, ["missing"])
