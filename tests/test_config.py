"""Tests for config module."""

from pathlib import Path

import pytest

from fluent_tagged_logger.config import (
    Config, ConfigError, _parse_bool, build_logger, load_config, load_yaml_config, parse_rules,
)
from fluent_tagged_logger.context import Accessor, Computed, Constant
from fluent_tagged_logger.logger import FluentLogger
from fluent_tagged_logger.sender import ForwardSender
from fluent_tagged_logger.severity import UnknownSeverity

ENV_VARS = (
    "FLUENT_CONFIG", "FLUENT_ENV", "FLUENT_TAG", "FLUENT_HOST", "FLUENT_PORT",
    "FLUENT_LOG_LEVEL", "FLUENT_MESSAGES_TYPE", "FLUENT_SEVERITY_KEY",
    "FLUENT_FLUSH_IMMEDIATELY",
)

YAML = """
development:
  tag: myapp
  fluent_host: collector.local
  fluent_port: 24225
  level: info
  messages_type: string
  flush_immediately: "yes"
  log_tags:
    service: {constant: web}
    path: {accessor: PATH_INFO}
    ip: {computed: "test_config:client_ip"}
    region: eu-west-1
production:
  tag: myapp.prod
  level: warn
"""


def client_ip(request):
    return "127.0.0.1"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "fluent-logger.yml"
    path.write_text(YAML)
    return str(path)


class TestParseBool:
    def test_true_values(self):
        for val in ("true", "True", "1", "yes", " YES "):
            assert _parse_bool(val) is True

    def test_false_values(self):
        for val in ("false", "0", "no", "", "random"):
            assert _parse_bool(val) is False


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.tag == "app"
        assert cfg.fluent_host == "localhost"
        assert cfg.fluent_port == 24224
        assert cfg.level == "DEBUG"
        assert cfg.messages_type == "list"
        assert cfg.severity_key == "level"
        assert cfg.flush_immediately is False
        assert cfg.log_tags == {}

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.tag = "other"

    def test_load_without_sources(self):
        assert load_config() == Config()


class TestLoadYamlConfig:
    def test_environment_section(self, config_file):
        section = load_yaml_config(config_file, "production")
        assert section == {"tag": "myapp.prod", "level": "warn"}

    def test_missing_section(self, config_file):
        assert load_yaml_config(config_file, "test") == {}

    def test_missing_file(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "nope.yml"), "development") == {}

    def test_no_path(self):
        assert load_yaml_config(None, "development") == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("development: [unclosed\n")
        with pytest.raises(ConfigError):
            load_yaml_config(str(path), "development")

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_yaml_config(str(path), "development")


class TestLoadConfig:
    def test_from_yaml(self, config_file):
        cfg = load_config(config_file)
        assert cfg.tag == "myapp"
        assert cfg.fluent_host == "collector.local"
        assert cfg.fluent_port == 24225
        assert cfg.level == "INFO"
        assert cfg.messages_type == "string"
        assert cfg.flush_immediately is True
        assert cfg.log_tags["path"] == {"accessor": "PATH_INFO"}

    def test_environment_argument(self, config_file):
        cfg = load_config(config_file, environment="production")
        assert cfg.tag == "myapp.prod"
        assert cfg.level == "WARN"

    def test_env_vars_override_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("FLUENT_CONFIG", config_file)
        monkeypatch.setenv("FLUENT_ENV", "production")
        monkeypatch.setenv("FLUENT_HOST", "env-host")
        monkeypatch.setenv("FLUENT_PORT", "5555")
        monkeypatch.setenv("FLUENT_FLUSH_IMMEDIATELY", "true")
        monkeypatch.setenv("FLUENT_SEVERITY_KEY", "severity")
        cfg = load_config()
        assert cfg.tag == "myapp.prod"
        assert cfg.fluent_host == "env-host"
        assert cfg.fluent_port == 5555
        assert cfg.flush_immediately is True
        assert cfg.severity_key == "severity"

    def test_cli_overrides_env(self, config_file, monkeypatch):
        monkeypatch.setenv("FLUENT_HOST", "env-host")
        monkeypatch.setenv("FLUENT_LOG_LEVEL", "error")
        cfg = load_config(argv=[
            "--config", config_file,
            "--fluent-host", "cli-host",
            "--fluent-port=7777",
            "--level", "fatal",
            "--messages-type", "list",
        ])
        assert cfg.tag == "myapp"
        assert cfg.fluent_host == "cli-host"
        assert cfg.fluent_port == 7777
        assert cfg.level == "FATAL"
        assert cfg.messages_type == "list"

    def test_unknown_level(self):
        with pytest.raises(UnknownSeverity):
            load_config(argv=["--level", "loud"])

    def test_bad_messages_type(self, monkeypatch):
        monkeypatch.setenv("FLUENT_MESSAGES_TYPE", "json")
        with pytest.raises(ConfigError):
            load_config()

    def test_non_numeric_port_env(self, monkeypatch):
        monkeypatch.setenv("FLUENT_PORT", "abc")
        with pytest.raises(ConfigError, match="fluent_port"):
            load_config()

    def test_non_numeric_port_yaml(self, tmp_path):
        path = tmp_path / "port.yml"
        path.write_text("development:\n  fluent_port: forward\n")
        with pytest.raises(ConfigError, match="fluent_port"):
            load_config(str(path))

    def test_port_out_of_range(self, monkeypatch):
        monkeypatch.setenv("FLUENT_PORT", "70000")
        with pytest.raises(ConfigError, match="out of range"):
            load_config()

    def test_numeric_yaml_port_string(self, tmp_path):
        path = tmp_path / "port.yml"
        path.write_text("development:\n  fluent_port: \"24226\"\n")
        assert load_config(str(path)).fluent_port == 24226


class TestParseRules:
    def test_rule_forms(self):
        rules = parse_rules({
            "service": {"constant": "web"},
            "path": {"accessor": "PATH_INFO"},
            "ip": {"computed": f"{__name__}:client_ip"},
            "region": "eu-west-1",
            "fn": client_ip,
            "ready": Constant(True),
        })
        assert rules["service"] == Constant("web")
        assert rules["path"] == Accessor("PATH_INFO")
        assert rules["ip"] == Computed(client_ip)
        assert rules["region"] == Constant("eu-west-1")
        assert rules["fn"] == Computed(client_ip)
        assert rules["ready"] == Constant(True)

    def test_empty(self):
        assert parse_rules(None) == {}

    def test_unknown_rule_type(self):
        with pytest.raises(ConfigError):
            parse_rules({"x": {"lookup": "y"}})

    def test_ambiguous_rule(self):
        with pytest.raises(ConfigError):
            parse_rules({"x": {"constant": 1, "accessor": "y"}})

    def test_unresolvable_computed(self):
        with pytest.raises(ConfigError):
            parse_rules({"x": {"computed": "no_such_module_here:func"}})
        with pytest.raises(ConfigError):
            parse_rules({"x": {"computed": "not-a-path"}})


class TestBuildLogger:
    def test_uses_forward_sender_by_default(self):
        log = build_logger(Config(fluent_host="127.0.0.1", fluent_port=1))
        assert isinstance(log, FluentLogger)
        assert isinstance(log.sink, ForwardSender)

    def test_applies_config(self, config_file, sink):
        log = build_logger(load_config(config_file), sink=sink)
        assert log.tag == "myapp"
        log.debug("dropped")
        with log.scope(context={"PATH_INFO": "/users"}):
            log.info("kept")
        tag, record = sink.posts[0]
        assert tag == "myapp"
        assert record["messages"] == "kept"
        assert record["service"] == "web"
        assert record["path"] == "/users"
        assert record["region"] == "eu-west-1"
        assert record["ip"] == "127.0.0.1"


class TestSampleConfig:
    SAMPLE = str(Path(__file__).resolve().parent.parent / "config" / "fluent-logger.yml")

    def test_every_environment_loads(self, sink):
        for environment in ("development", "test", "production"):
            cfg = load_config(self.SAMPLE, environment=environment)
            build_logger(cfg, sink=sink)

    def test_production_section(self):
        cfg = load_config(self.SAMPLE, environment="production")
        assert cfg.fluent_host == "fluentd.internal"
        assert cfg.messages_type == "string"
        assert cfg.severity_key == "severity"
