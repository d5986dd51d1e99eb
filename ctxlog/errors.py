"""Exception types raised for misconfiguration.

Filesystem trouble (permissions, failed renames, failed appends) is never
raised to the caller; it is logged and degraded instead. Only problems with
the shape of the configuration end up here.
"""


class ConfigError(ValueError):
    """A transport or logger was configured with values that cannot work."""


class InvalidPathError(ConfigError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid file path {path!r}: {reason}")
        self.path = path


class InvalidSizeFormatError(ConfigError):
    def __init__(self, text: str):
        super().__init__(
            f'Invalid size format: {text!r}. Use format like "10MB", "1GB", etc.'
        )
        self.text = text


class InvalidRotationMethodError(ConfigError):
    def __init__(self, method: str, transport_name: str | None = None):
        where = f" for transport '{transport_name}'" if transport_name else ""
        super().__init__(f"Invalid rotation method {method!r}{where} (expected 'size' or 'date')")
        self.method = method
