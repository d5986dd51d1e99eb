"""Tests for console, file and JSON transports and line formatting."""

import json
import logging
import os
from datetime import datetime, timezone

import pytest

from ctxlog.colors import RESET
from ctxlog.config import LogOptions
from ctxlog.errors import InvalidPathError
from ctxlog.levels import Exclude, Include, LogLevel
from ctxlog.transports import (
    ConsoleTransport,
    FileTransport,
    JSONTransport,
    apply_custom_format,
    format_line,
)

FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, 123000, tzinfo=timezone.utc)


def _lines(path):
    with open(path) as f:
        return f.read().splitlines()


class TestFormatLine:
    def test_plain(self):
        assert format_line(LogLevel.INFO, "hello", "UserService", "", False) == "[INFO] [UserService] hello"

    def test_timestamp_prefix(self):
        line = format_line(LogLevel.WARN, "hi", "Svc:42", "2025-01-15T12:00:00.000Z ", False)
        assert line == "2025-01-15T12:00:00.000Z [WARN] [Svc:42] hi"

    def test_omit_level_and_name(self):
        assert format_line(LogLevel.INFO, "bare", "Svc", "", False, include_level=False, include_name=False) == "bare"

    def test_colors(self):
        line = format_line(LogLevel.ERROR, "boom", "Svc", "", True)
        assert "\033[31mERROR" in line
        assert "\033[36mSvc" in line
        assert line.endswith(f"\033[31mboom{RESET}")

    def test_color_overrides(self):
        line = format_line(LogLevel.INFO, "msg", "Svc", "", {"INFO": "magenta"})
        assert "\033[35mINFO" in line

    def test_custom_format(self):
        out = apply_custom_format("{level}|{context}|{message}|{timestamp}", LogLevel.DEBUG, "Svc", "m", "ts ")
        assert out == "DEBUG|Svc|m|ts"


class TestBaseFormatting:
    def test_console_colors_by_default(self):
        assert "\033[" in ConsoleTransport("console").format_message(LogLevel.INFO, "m", "Svc", "")

    def test_file_plain_by_default(self, tmp_path):
        transport = FileTransport(str(tmp_path / "app.log"))
        assert transport.format_message(LogLevel.INFO, "m", "Svc", "") == "[INFO] [Svc] m"

    def test_transport_colors_setting(self, tmp_path):
        transport = FileTransport(str(tmp_path / "app.log"), colors=True)
        assert "\033[" in transport.format_message(LogLevel.INFO, "m", "Svc", "")

    def test_options_override_transport(self):
        transport = ConsoleTransport("console")
        options = LogOptions(colors=False, include_name=False)
        assert transport.format_message(LogLevel.INFO, "m", "Svc", "", options) == "[INFO] m"

    def test_options_format(self):
        options = LogOptions(format="{context}: {message}")
        assert ConsoleTransport().format_message(LogLevel.INFO, "m", "Svc", "", options) == "Svc: m"


class TestConsoleTransport:
    def test_prints(self, capsys):
        ConsoleTransport("console").write(LogLevel.INFO, "hello")
        assert capsys.readouterr().out == "hello\n"

    def test_exclude_filter(self, capsys):
        transport = ConsoleTransport("console", Exclude([LogLevel.DEBUG]))
        transport.write(LogLevel.DEBUG, "hidden")
        transport.write(LogLevel.INFO, "shown")
        assert capsys.readouterr().out == "shown\n"


class TestFileTransport:
    def test_appends_timestamped_lines(self, tmp_path):
        transport = FileTransport(str(tmp_path / "app.log"), time_func=lambda: FIXED_NOW)
        transport.write(LogLevel.INFO, "one")
        transport.write(LogLevel.INFO, "two")
        assert _lines(transport.path) == [
            "2025-01-15T12:00:00.123Z one",
            "2025-01-15T12:00:00.123Z two",
        ]

    def test_creates_directory(self, tmp_path):
        transport = FileTransport(str(tmp_path / "deep" / "er" / "app.log"))
        transport.write(LogLevel.INFO, "x")
        assert os.path.exists(tmp_path / "deep" / "er" / "app.log")

    def test_rejects_traversal(self):
        with pytest.raises(InvalidPathError):
            FileTransport("../app.log")

    def test_include_filter(self, tmp_path):
        transport = FileTransport(str(tmp_path / "app.log"), level_filter=Include([LogLevel.ERROR]))
        transport.write(LogLevel.INFO, "skip")
        assert not os.path.exists(transport.path)

    def test_fallback_directory(self, tmp_path, caplog):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        original = str(blocker / "logs" / "app.log")
        fallback = str(tmp_path / "fallback")

        with caplog.at_level(logging.WARNING, logger="ctxlog.transports"):
            transport = FileTransport(original, fallback_dirs=[fallback])

        assert transport.path == os.path.join(fallback, "app.log")
        assert "FileTransport: Using fallback directory" in caplog.text

    def test_write_failure_prints(self, tmp_path, caplog, capsys):
        transport = FileTransport(str(tmp_path / "app.log"))
        os.makedirs(transport.path)
        with caplog.at_level(logging.ERROR, logger="ctxlog.transports"):
            transport.write(LogLevel.ERROR, "fallback output")
        assert "Failed to write to log file" in caplog.text
        assert capsys.readouterr().out == "fallback output\n"

    def test_unencodable_text_is_replaced(self, tmp_path):
        transport = FileTransport(str(tmp_path / "app.log"), time_func=lambda: FIXED_NOW)
        transport.write(LogLevel.INFO, "lone \udc80 surrogate")
        assert _lines(transport.path) == ["2025-01-15T12:00:00.123Z lone ? surrogate"]

    def test_json_escapes_unencodable_text(self, tmp_path):
        transport = JSONTransport(str(tmp_path / "app.jsonl"))
        transport.write(LogLevel.INFO, "lone \udc80 surrogate")
        assert json.loads(_lines(transport.path)[0])["message"] == "lone \udc80 surrogate"


class TestJSONTransport:
    def test_record_shape(self, tmp_path):
        transport = JSONTransport(str(tmp_path / "app.jsonl"), time_func=lambda: FIXED_NOW)
        transport.write(LogLevel.WARN, "careful", {"user": "alice", "when": FIXED_NOW})

        record = json.loads(_lines(transport.path)[0])
        assert record == {
            "timestamp": "2025-01-15T12:00:00.123Z",
            "level": "WARN",
            "message": "careful",
            "metadata": {"user": "alice", "when": str(FIXED_NOW)},
        }

    def test_metadata_omitted_when_absent(self, tmp_path):
        transport = JSONTransport(str(tmp_path / "app.jsonl"))
        transport.write(LogLevel.INFO, "plain")
        assert "metadata" not in json.loads(_lines(transport.path)[0])
