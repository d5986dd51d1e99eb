"""Output destinations: console, plain file and JSON-lines file.

A transport is anything with write(level, message, metadata=None). The
optional should_log(level), format_message(...) and name are used by the
Log façade when present.
"""

import json
import logging
import threading

from ctxlog import colors as ansi
from ctxlog.config import LogOptions
from ctxlog.dates import iso_timestamp, utc_now
from ctxlog.levels import LevelFilter, LogLevel, should_log
from ctxlog.permissions import ensure_directory_with_fallback, validate_file_path

logger = logging.getLogger(__name__)


def apply_custom_format(fmt: str, level: LogLevel, context: str, message: str, timestamp: str) -> str:
    return (
        fmt.replace("{timestamp}", timestamp.strip())
        .replace("{level}", LogLevel(level).value)
        .replace("{context}", context)
        .replace("{message}", message)
    )


def format_line(
    level: LogLevel,
    message: str,
    context: str,
    timestamp: str,
    use_colors,
    include_level: bool = True,
    include_name: bool = True,
) -> str:
    """Render "{timestamp}[LEVEL] [context] message"; use_colors may be a color mapping."""
    level = LogLevel(level)
    overrides = use_colors if isinstance(use_colors, dict) else None
    if use_colors:
        level_str = ansi.colorize_level(level, overrides)
        context_str = ansi.colorize_context(context)
        message_str = ansi.colorize_message(level, message, overrides)
    else:
        level_str, context_str, message_str = level.value, context, message

    level_part = f"[{level_str}] " if include_level else ""
    name_part = f"[{context_str}] " if include_name else ""
    return f"{timestamp}{level_part}{name_part}{message_str}"


class BaseTransport:
    default_colors = False

    def __init__(self, name: str | None = None, level_filter: LevelFilter = None, colors=None):
        self.name = name
        self.level_filter = level_filter
        self.colors = colors

    def should_log(self, level: LogLevel) -> bool:
        return should_log(self.level_filter, level)

    def format_message(
        self,
        level: LogLevel,
        raw_message: str,
        context: str,
        timestamp: str,
        options: LogOptions | None = None,
    ) -> str:
        options = options or LogOptions()
        if options.format:
            return apply_custom_format(options.format, level, context, raw_message, timestamp)

        use_colors = options.colors
        if use_colors is None:
            use_colors = self.colors if self.colors is not None else self.default_colors
        return format_line(
            level,
            raw_message,
            context,
            timestamp,
            use_colors,
            include_level=options.include_level is not False,
            include_name=options.include_name is not False,
        )

    def write(self, level: LogLevel, message: str, metadata: dict | None = None) -> None:
        raise NotImplementedError


class ConsoleTransport(BaseTransport):
    default_colors = True

    def write(self, level: LogLevel, message: str, metadata: dict | None = None) -> None:
        if not self.should_log(level):
            return
        print(message)


class FileTransport(BaseTransport):
    """Append-only text file, one timestamp-prefixed line per entry.

    The directory is created at construction, relocating to a fallback
    directory when the requested one is unusable. A failed append is
    reported on the error channel and the message is printed instead, so
    content is never silently dropped.
    """

    def __init__(
        self,
        path: str,
        name: str | None = None,
        level_filter: LevelFilter = None,
        colors=None,
        fallback_dirs: list[str] | None = None,
        time_func=None,
    ):
        super().__init__(name, level_filter, colors)
        self._time_func = time_func or utc_now
        self._lock = threading.Lock()
        self._path = self._prepare_path(path, fallback_dirs)

    def _prepare_path(self, path: str, fallback_dirs: list[str] | None) -> str:
        kind = type(self).__name__
        validate_file_path(path)
        result = ensure_directory_with_fallback(path, fallback_dirs)
        if not result.success:
            logger.warning("%s: %s", kind, result.error)
            return path
        if result.used_fallback:
            logger.warning(
                "%s: Using fallback directory. Original: %s, Fallback: %s",
                kind, result.original_path, result.final_path,
            )
        return result.final_path

    @property
    def path(self) -> str:
        return self._path

    def render(self, level: LogLevel, message: str, metadata: dict | None, now) -> str:
        return f"{iso_timestamp(now)} {message}\n"

    def write(self, level: LogLevel, message: str, metadata: dict | None = None) -> None:
        if not self.should_log(level):
            return
        entry = self.render(level, message, metadata, self._time_func())
        with self._lock:
            try:
                self._append(entry)
            except (OSError, ValueError) as exc:
                logger.error("Failed to write to log file %s: %s", self.path, exc)
                print(message)

    def _append(self, entry: str) -> None:
        with open(self.path, "a", encoding="utf-8", errors="replace") as f:
            f.write(entry)


class JSONTransport(FileTransport):
    """JSON-lines file: {"timestamp", "level", "message", "metadata"?} per line."""

    def render(self, level: LogLevel, message: str, metadata: dict | None, now) -> str:
        record = {
            "timestamp": iso_timestamp(now),
            "level": LogLevel(level).value,
            "message": message,
        }
        if metadata is not None:
            record["metadata"] = metadata
        return json.dumps(record, default=str) + "\n"
