"""Configuration file loading: file discovery, environment sections, transport factory.

A config file is YAML (JSON is accepted too, being valid YAML):

    level: INFO
    timestamp: true
    transports:
      console: {type: console}
      app:
        type: log
        path: ./logs/app.log
        method: size
        maxSize: 10MB
        maxFiles: 5
        archive: {directory: ./logs/archive, compress: true, retentionDays: 30}
    defaultTransports: [console, app]
    production:
      level: WARN

The top-level key named by CTXLOG_ENV (here "production") is merged over
the root configuration.
"""

import copy
import logging
import os

import yaml

from ctxlog.config import (
    DEFAULT_MAX_SIZE,
    DEFAULT_RETENTION_DAYS,
    LoggerConfig,
    RotationConfig,
)
from ctxlog.dates import DateBucket
from ctxlog.errors import ConfigError
from ctxlog.levels import Exclude, Include, LevelFilter, LogLevel, parse_level
from ctxlog.rotating import RotatingFileTransport
from ctxlog.transports import ConsoleTransport, FileTransport, JSONTransport

logger = logging.getLogger(__name__)

ENV_VAR_NAME = "CTXLOG_ENV"
CONFIG_FILE_NAMES = ("ctxlog.config.yml", "ctxlog.config.yaml", "ctxlog.config.json")

# Keys that mark a top-level mapping as an environment section.
_CONFIG_KEYS = ("level", "timestamp", "colors", "transports", "defaultTransports")


def default_config() -> LoggerConfig:
    return LoggerConfig(
        transports={"console": ConsoleTransport("console")},
        default_transports=["console"],
    )


def load_env() -> str | None:
    value = os.environ.get(ENV_VAR_NAME, "").strip()
    return value or None


def find_config_file(start: str | None = None) -> str | None:
    """Walk from start (default: cwd) up to the filesystem root looking for a config file."""
    current = os.path.abspath(start or os.getcwd())
    while True:
        for name in CONFIG_FILE_NAMES:
            candidate = os.path.join(current, name)
            if os.path.isfile(candidate):
                return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override dict into base dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def extract_environment_config(raw: dict, environment: str | None) -> dict:
    """Merge the environment section (if any) over the root, dropping all environment sections."""
    if not environment:
        return raw
    if not isinstance(raw.get(environment), dict):
        logger.warning("Environment '%s' not found in config, using root configuration", environment)
        return raw

    root = {
        key: value
        for key, value in raw.items()
        if not (isinstance(value, dict) and any(k != key and k in value for k in _CONFIG_KEYS))
    }
    return _deep_merge(root, raw[environment])


def load_config(path: str | None = None, environment: str | None = None) -> LoggerConfig:
    """Load a LoggerConfig from path (or a discovered file), falling back to defaults.

    A missing file silently yields the defaults; an unreadable or invalid
    file yields the defaults with a warning.
    """
    path = path or find_config_file()
    if not path or not os.path.exists(path):
        return default_config()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        file_config = extract_environment_config(raw, environment or load_env())
        return build_config(file_config)
    except (OSError, yaml.YAMLError, ConfigError) as exc:
        logger.warning("Failed to load ctxlog config from %s: %s", path, exc)
        return default_config()


def build_config(file_config: dict) -> LoggerConfig:
    """Turn the parsed file mapping into a LoggerConfig with live transports."""
    defaults = default_config()

    raw_transports = file_config.get("transports")
    if raw_transports:
        transports = create_named_transports(raw_transports)
    else:
        transports = defaults.transports

    default_transports = file_config.get("defaultTransports")
    if default_transports is None:
        default_transports = list(transports)

    level = defaults.level
    if file_config.get("level") is not None:
        parsed = parse_level(file_config["level"])
        if parsed is None:
            logger.warning("Invalid log level %r, using default", file_config["level"])
        else:
            level = parsed

    config = LoggerConfig(
        level=level,
        timestamp=bool(file_config.get("timestamp", defaults.timestamp)),
        colors=file_config.get("colors", defaults.colors),
        include_level=bool(file_config.get("includeLevel", defaults.include_level)),
        include_name=bool(file_config.get("includeName", defaults.include_name)),
        transports=transports,
        default_transports=list(default_transports),
    )
    validate_config(config)
    return config


def create_named_transports(specs) -> dict:
    """Build transports from a name->spec mapping, or a legacy list named <type>_<index>."""
    if isinstance(specs, list):
        named = {}
        for index, spec in enumerate(specs):
            name = f"{spec.get('type')}_{index}"
            named[name] = create_transport(name, spec)
        return named
    if isinstance(specs, dict):
        return {name: create_transport(name, spec) for name, spec in specs.items()}
    raise ConfigError("transports must be a mapping of name to transport config, or a list")


def create_transport(name: str, spec: dict):
    if not isinstance(spec, dict):
        raise ConfigError(f"Transport '{name}' must be a mapping")

    level_filter = parse_level_filter(spec.get("levels"))
    colors = spec.get("colors")
    kind = spec.get("type")

    if kind == "console":
        return ConsoleTransport(name, level_filter, colors)
    if kind in ("file", "json"):
        if not spec.get("path"):
            raise ConfigError(f"{'File' if kind == 'file' else 'JSON'} transport '{name}' requires path")
        cls = FileTransport if kind == "file" else JSONTransport
        return cls(spec["path"], name, level_filter, colors)
    if kind == "log":
        return create_log_transport(name, spec, level_filter, colors)
    raise ConfigError(f"Unknown transport type for '{name}': {kind}")


def create_log_transport(name: str, spec: dict, level_filter: LevelFilter = None, colors=None):
    if not spec.get("path"):
        raise ConfigError(f"Log transport '{name}' requires path")
    if not spec.get("method"):
        raise ConfigError(f"Log transport '{name}' requires method (size or date)")

    archive = spec.get("archive") or {}
    config = RotationConfig.build(
        method=spec["method"],
        max_size=spec.get("maxSize", DEFAULT_MAX_SIZE),
        max_files=spec.get("maxFiles"),
        date_format=spec.get("dateFormat", DateBucket.DAY.value),
        archive_dir=archive.get("directory"),
        compress=archive.get("compress", True),
        retention_days=archive.get("retentionDays", DEFAULT_RETENTION_DAYS),
        transport_name=name,
    )
    return RotatingFileTransport(spec["path"], config, name, level_filter, colors)


def _parse_levels(values, which: str) -> list[LogLevel]:
    parsed = []
    for value in values:
        level = parse_level(value)
        if level is None:
            raise ConfigError(f"Invalid log level in {which} filter: {value}")
        parsed.append(level)
    return parsed


def parse_level_filter(spec: dict | None) -> LevelFilter:
    if not spec:
        return None
    if "include" in spec and "exclude" in spec:
        raise ConfigError("Level filter cannot have both include and exclude - use one or the other")
    if "include" in spec:
        return Include(_parse_levels(spec["include"], "include"))
    if "exclude" in spec:
        return Exclude(_parse_levels(spec["exclude"], "exclude"))
    return None


def validate_config(config: LoggerConfig) -> None:
    """Raise ConfigError when defaultTransports names a transport that does not exist."""
    if not config.transports:
        logger.warning("No transports configured, logs will not be output")
    missing = [name for name in config.default_transports if name not in config.transports]
    if missing:
        raise ConfigError(
            f"Default transports reference non-existent transports: {', '.join(missing)}"
        )


def resolve_transports(config: LoggerConfig, names: list[str]) -> list:
    resolved = []
    for name in names:
        transport = config.transports.get(name)
        if transport is None:
            raise ConfigError(f"Transport '{name}' not found in configuration")
        resolved.append(transport)
    return resolved
