"""Log levels, severity thresholds and per-transport level filters."""

from dataclasses import dataclass
from enum import Enum


class LogLevel(str, Enum):
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"


# Most severe first.
SEVERITY_ORDER = (LogLevel.ERROR, LogLevel.WARN, LogLevel.INFO, LogLevel.DEBUG, LogLevel.TRACE)


def parse_level(value) -> LogLevel | None:
    """Return the LogLevel named by value (case-insensitive), or None if unknown."""
    if isinstance(value, LogLevel):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip().upper()
    if normalized == "WARNING":
        normalized = "WARN"
    try:
        return LogLevel(normalized)
    except ValueError:
        return None


def level_allows(message_level: LogLevel, threshold: LogLevel) -> bool:
    """True if message_level is at least as severe as the configured threshold."""
    return SEVERITY_ORDER.index(message_level) <= SEVERITY_ORDER.index(threshold)


@dataclass(frozen=True)
class Include:
    """Admit only the listed levels."""
    levels: frozenset

    def __post_init__(self):
        object.__setattr__(self, "levels", frozenset(self.levels))

    def admits(self, level: LogLevel) -> bool:
        return level in self.levels


@dataclass(frozen=True)
class Exclude:
    """Admit every level except the listed ones."""
    levels: frozenset

    def __post_init__(self):
        object.__setattr__(self, "levels", frozenset(self.levels))

    def admits(self, level: LogLevel) -> bool:
        return level not in self.levels


LevelFilter = Include | Exclude | None


def should_log(level_filter: LevelFilter, level: LogLevel) -> bool:
    if level_filter is None:
        return True
    return level_filter.admits(level)
