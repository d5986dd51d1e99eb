"""Configuration values: frozen dataclasses built once and passed explicitly."""

import os
from dataclasses import dataclass, field
from enum import Enum

from ctxlog.dates import DateBucket
from ctxlog.errors import ConfigError, InvalidRotationMethodError
from ctxlog.levels import LogLevel
from ctxlog.sizes import parse_size

DEFAULT_MAX_SIZE = "10MB"
DEFAULT_MAX_FILES = 5
DEFAULT_RETENTION_DAYS = 30


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


class RotationMethod(str, Enum):
    SIZE = "size"
    DATE = "date"


def parse_rotation_method(value, transport_name: str | None = None) -> RotationMethod:
    if isinstance(value, RotationMethod):
        return value
    try:
        return RotationMethod(str(value).strip().lower())
    except ValueError:
        raise InvalidRotationMethodError(str(value), transport_name) from None


def parse_date_bucket(value) -> DateBucket:
    if isinstance(value, DateBucket):
        return value
    try:
        return DateBucket(value)
    except ValueError:
        choices = ", ".join(b.value for b in DateBucket)
        raise ConfigError(f"Invalid date format {value!r} (expected one of {choices})") from None


def default_archive_dir(transport_name: str | None) -> str:
    return os.path.join(os.getcwd(), "logs", transport_name or "archive")


@dataclass(frozen=True)
class RotationConfig:
    method: RotationMethod
    max_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    date_bucket: DateBucket = DateBucket.DAY
    max_files: int | None = None  # None: not set explicitly, DEFAULT_MAX_FILES applies
    archive_dir: str | None = None  # None: derived from the transport name
    compress: bool = True
    retention_days: int = DEFAULT_RETENTION_DAYS

    def __post_init__(self):
        if not isinstance(self.method, RotationMethod):
            raise InvalidRotationMethodError(str(self.method))
        if self.max_size_bytes <= 0:
            raise ConfigError(f"max_size_bytes must be positive, got {self.max_size_bytes}")
        if self.max_files is not None and self.max_files < 1:
            raise ConfigError(f"max_files must be at least 1, got {self.max_files}")
        if self.retention_days < 0:
            raise ConfigError(f"retention_days must not be negative, got {self.retention_days}")

    @property
    def effective_max_files(self) -> int:
        return self.max_files if self.max_files is not None else DEFAULT_MAX_FILES

    @classmethod
    def build(
        cls,
        method,
        max_size: str = DEFAULT_MAX_SIZE,
        max_files: int | None = None,
        date_format=DateBucket.DAY,
        archive_dir: str | None = None,
        compress: bool = True,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        transport_name: str | None = None,
    ) -> "RotationConfig":
        """Build from the human-facing option values ("size", "10MB", "YYYY-MM-DD")."""
        return cls(
            method=parse_rotation_method(method, transport_name),
            max_size_bytes=parse_size(max_size),
            date_bucket=parse_date_bucket(date_format),
            max_files=max_files,
            archive_dir=archive_dir,
            compress=compress,
            retention_days=retention_days,
        )


@dataclass(frozen=True)
class LoggerConfig:
    level: LogLevel = LogLevel.INFO
    timestamp: bool = False
    colors: bool | dict = True
    include_level: bool = True
    include_name: bool = True
    transports: dict = field(default_factory=dict)
    default_transports: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class LogOptions:
    """Per-call overrides. None means "use the logger configuration"."""
    timestamp: bool | None = None
    metadata: dict | None = None
    level: LogLevel | None = None
    colors: bool | None = None
    transports: list | None = None
    format: str | None = None
    include_level: bool | None = None
    include_name: bool | None = None


def load_rotation_config() -> RotationConfig:
    """Build a RotationConfig from environment variables with sensible defaults."""
    raw_max_files = os.environ.get("MAX_FILES")
    return RotationConfig.build(
        method=os.environ.get("ROTATION_METHOD", RotationMethod.SIZE.value),
        max_size=os.environ.get("MAX_SIZE", DEFAULT_MAX_SIZE),
        max_files=int(raw_max_files) if raw_max_files else None,
        date_format=os.environ.get("DATE_FORMAT", DateBucket.DAY.value),
        archive_dir=os.environ.get("ARCHIVE_DIR") or None,
        compress=_parse_bool(os.environ.get("COMPRESSION_ENABLED", "true")),
        retention_days=int(os.environ.get("RETENTION_DAYS", DEFAULT_RETENTION_DAYS)),
    )
