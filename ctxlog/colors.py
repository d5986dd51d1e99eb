"""ANSI colorization for levels, context and error messages."""

from ctxlog.levels import LogLevel

ANSI_CODES = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "gray": "\033[90m",
}
RESET = "\033[0m"

LEVEL_COLORS = {
    LogLevel.ERROR: "red",
    LogLevel.WARN: "yellow",
    LogLevel.INFO: "blue",
    LogLevel.DEBUG: "green",
    LogLevel.TRACE: "gray",
}
CONTEXT_COLOR = "cyan"


def paint(text: str, color: str) -> str:
    code = ANSI_CODES.get(color)
    if code is None:
        return text
    return f"{code}{text}{RESET}"


def _level_color(level: LogLevel, overrides: dict | None) -> str:
    if overrides:
        custom = overrides.get(level.value) or overrides.get(level.value.lower())
        if custom:
            return custom
    return LEVEL_COLORS[level]


def colorize_level(level: LogLevel, overrides: dict | None = None) -> str:
    return paint(level.value, _level_color(level, overrides))


def colorize_context(context: str) -> str:
    return paint(context, CONTEXT_COLOR)


def colorize_message(level: LogLevel, message: str, overrides: dict | None = None) -> str:
    """Only ERROR messages are colored in full; everything else is left as-is."""
    if level is LogLevel.ERROR:
        return paint(message, _level_color(level, overrides))
    return message
