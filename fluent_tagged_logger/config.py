"""Configuration: frozen dataclass loaded from YAML, env vars and CLI args."""

import argparse
import importlib
import logging
import os
from dataclasses import dataclass, field

import yaml

from fluent_tagged_logger.context import Accessor, Computed, Constant, ExtractionRule
from fluent_tagged_logger.logger import FluentLogger
from fluent_tagged_logger.models import MESSAGES_TYPES
from fluent_tagged_logger.sender import ForwardSender
from fluent_tagged_logger.severity import rank_of

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "development"


class ConfigError(ValueError):
    """Raised for configuration values that cannot be used."""


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _parse_port(value) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"fluent_port must be an integer, got {value!r}") from e
    if not 0 < port < 65536:
        raise ConfigError(f"fluent_port out of range: {port}")
    return port


@dataclass(frozen=True)
class Config:
    tag: str = "app"
    fluent_host: str = "localhost"
    fluent_port: int = 24224
    level: str = "DEBUG"
    messages_type: str = "list"
    severity_key: str = "level"
    flush_immediately: bool = False
    log_tags: dict = field(default_factory=dict)


def load_yaml_config(path: str | None, environment: str) -> dict:
    """Return the *environment* section of a YAML file, or {} if there is none."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of environments")
    section = data.get(environment) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"section {environment!r} in {path} must be a mapping")
    logger.info("Loaded %s config from %s", environment, path)
    return section


def _resolve_callable(path: str):
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ConfigError(f"computed rule must look like 'module:function', got {path!r}")
    try:
        func = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"cannot resolve computed rule {path!r}: {e}") from e
    if not callable(func):
        raise ConfigError(f"computed rule {path!r} is not callable")
    return func


def parse_rules(raw: dict | None) -> dict[str, ExtractionRule]:
    """Turn the ``log_tags`` mapping into extraction rules.

    Each value is ``{constant: v}``, ``{accessor: name}``,
    ``{computed: "module:function"}`` (or a callable), or a bare scalar
    taken as a constant.
    """
    rules: dict[str, ExtractionRule] = {}
    for name, value in (raw or {}).items():
        if isinstance(value, (Constant, Accessor, Computed)):
            rules[name] = value
        elif isinstance(value, dict):
            if len(value) != 1:
                raise ConfigError(f"log_tags.{name} needs exactly one of constant, accessor, computed")
            kind, arg = next(iter(value.items()))
            if kind == "constant":
                rules[name] = Constant(arg)
            elif kind == "accessor":
                rules[name] = Accessor(str(arg))
            elif kind == "computed":
                rules[name] = Computed(arg if callable(arg) else _resolve_callable(str(arg)))
            else:
                raise ConfigError(f"log_tags.{name}: unknown rule type {kind!r}")
        elif callable(value):
            rules[name] = Computed(value)
        else:
            rules[name] = Constant(value)
    return rules


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config", type=str, default=None)
    parser.add_argument("--env", type=str, default=None)
    parser.add_argument("--tag", type=str, default=None)
    parser.add_argument("--fluent-host", type=str, default=None)
    parser.add_argument("--fluent-port", type=int, default=None)
    parser.add_argument("--level", type=str, default=None)
    parser.add_argument("--messages-type", type=str, default=None)
    parser.add_argument("--severity-key", type=str, default=None)
    parser.add_argument("--flush-immediately", action="store_true", default=None)
    return parser


def load_config(
    path: str | None = None,
    environment: str | None = None,
    argv: list[str] | None = None,
) -> Config:
    """Build Config from defaults <- YAML section <- env vars <- CLI args."""
    args = _build_parser().parse_args(argv or [])

    path = args.config or path or os.environ.get("FLUENT_CONFIG")
    environment = (
        args.env or environment or os.environ.get("FLUENT_ENV", DEFAULT_ENVIRONMENT)
    )
    section = load_yaml_config(path, environment)

    kwargs: dict = {
        "tag": str(section.get("tag", Config.tag)),
        "fluent_host": str(section.get("fluent_host", Config.fluent_host)),
        "fluent_port": section.get("fluent_port", Config.fluent_port),
        "level": str(section.get("level", Config.level)),
        "messages_type": str(section.get("messages_type", Config.messages_type)),
        "severity_key": str(section.get("severity_key", Config.severity_key)),
        "flush_immediately": section.get("flush_immediately", Config.flush_immediately),
        "log_tags": dict(section.get("log_tags") or {}),
    }

    env_overrides = {
        "tag": "FLUENT_TAG",
        "fluent_host": "FLUENT_HOST",
        "fluent_port": "FLUENT_PORT",
        "level": "FLUENT_LOG_LEVEL",
        "messages_type": "FLUENT_MESSAGES_TYPE",
        "severity_key": "FLUENT_SEVERITY_KEY",
        "flush_immediately": "FLUENT_FLUSH_IMMEDIATELY",
    }
    for key, var in env_overrides.items():
        if var in os.environ:
            kwargs[key] = os.environ[var]

    for key in env_overrides:
        value = getattr(args, key)
        if value is not None:
            kwargs[key] = value

    kwargs["fluent_port"] = _parse_port(kwargs["fluent_port"])
    if isinstance(kwargs["flush_immediately"], str):
        kwargs["flush_immediately"] = _parse_bool(kwargs["flush_immediately"])
    else:
        kwargs["flush_immediately"] = bool(kwargs["flush_immediately"])
    kwargs["level"] = kwargs["level"].upper()
    rank_of(kwargs["level"])  # raises UnknownSeverity
    if kwargs["messages_type"] not in MESSAGES_TYPES:
        raise ConfigError(
            f"messages_type must be one of {MESSAGES_TYPES}, got {kwargs['messages_type']!r}"
        )

    return Config(**kwargs)


def build_logger(config: Config, sink=None) -> FluentLogger:
    """Construct a FluentLogger for *config*, sending to a ForwardSender by default."""
    if sink is None:
        sink = ForwardSender(config.fluent_host, config.fluent_port)
    return FluentLogger(
        sink,
        tag=config.tag,
        level=config.level,
        messages_type=config.messages_type,
        severity_key=config.severity_key,
        flush_immediately=config.flush_immediately,
        log_tags=parse_rules(config.log_tags),
    )
