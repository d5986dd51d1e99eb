"""Class-aware logger: formats each message with its class/instance context and fans it out."""

import dataclasses

from ctxlog import loader
from ctxlog.config import LoggerConfig, LogOptions
from ctxlog.dates import iso_timestamp, utc_now
from ctxlog.errors import ConfigError
from ctxlog.levels import LogLevel, level_allows
from ctxlog.transports import apply_custom_format, format_line


class Log:
    """Logger bound to a class name and, optionally, an instance id.

    The configuration is passed in explicitly; when it is not, it is loaded
    once from config_path (or a discovered config file) at construction.
    """

    def __init__(
        self,
        class_name: str,
        instance_id: str | None = None,
        config: LoggerConfig | None = None,
        config_path: str | None = None,
        default_transports: list[str] | None = None,
        time_func=None,
    ):
        self.class_name = class_name
        self.instance_id = instance_id
        self._config = config if config is not None else loader.load_config(config_path)
        self._default_transports = list(default_transports or self._config.default_transports)
        self._time_func = time_func or utc_now

    @property
    def context(self) -> str:
        if self.instance_id:
            return f"{self.class_name}:{self.instance_id}"
        return self.class_name

    def error(self, message: str, options: LogOptions | None = None) -> None:
        self._log(LogLevel.ERROR, message, options)

    def warn(self, message: str, options: LogOptions | None = None) -> None:
        self._log(LogLevel.WARN, message, options)

    def info(self, message: str, options: LogOptions | None = None) -> None:
        self._log(LogLevel.INFO, message, options)

    def debug(self, message: str, options: LogOptions | None = None) -> None:
        self._log(LogLevel.DEBUG, message, options)

    def trace(self, message: str, options: LogOptions | None = None) -> None:
        self._log(LogLevel.TRACE, message, options)

    def _log(self, level: LogLevel, message: str, options: LogOptions | None) -> None:
        options = options or LogOptions()
        threshold = options.level or self._config.level
        if not level_allows(level, threshold):
            return

        use_timestamp = options.timestamp if options.timestamp is not None else self._config.timestamp
        timestamp = f"{iso_timestamp(self._time_func())} " if use_timestamp else ""

        # Transports get the per-call options with the logger defaults filled in.
        transport_options = dataclasses.replace(
            options,
            include_level=self._pick(options.include_level, self._config.include_level),
            include_name=self._pick(options.include_name, self._config.include_name),
        )

        for transport in self._resolve_transports(options.transports):
            format_message = getattr(transport, "format_message", None)
            if format_message is not None:
                formatted = format_message(level, message, self.context, timestamp, transport_options)
            else:
                formatted = self._format(level, message, timestamp, transport_options)
            transport.write(level, formatted, options.metadata)

    @staticmethod
    def _pick(value, default):
        return default if value is None else value

    def _format(self, level: LogLevel, message: str, timestamp: str, options: LogOptions) -> str:
        if options.format:
            return apply_custom_format(options.format, level, self.context, message, timestamp)
        return format_line(
            level,
            message,
            self.context,
            timestamp,
            self._pick(options.colors, self._config.colors),
            include_level=options.include_level,
            include_name=options.include_name,
        )

    def _resolve_transports(self, transports: list | None) -> list:
        if transports is None:
            return loader.resolve_transports(self._config, self._default_transports)
        resolved = []
        for transport in transports:
            if isinstance(transport, str):
                found = self._config.transports.get(transport)
                if found is None:
                    raise ConfigError(f"Transport '{transport}' not found in configuration")
                resolved.append(found)
            else:
                resolved.append(transport)
        return resolved

    def get_config(self) -> LoggerConfig:
        return self._config

    def set_config(self, **changes) -> None:
        """Replace fields of this logger's configuration, e.g. set_config(level=LogLevel.DEBUG)."""
        self._config = dataclasses.replace(self._config, **changes)

    def set_default_transports(self, names: list[str]) -> None:
        self._default_transports = list(names)

    def get_transport_names(self) -> list[str]:
        return list(self._config.transports)
