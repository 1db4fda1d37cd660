"""Tests for cpi.utils module."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from cpi.exceptions import ConfigError
from cpi.utils import get_env, get_env_bool, log, parse_int_env, run


class TestLog:
    def test_info_level_goes_to_stderr(self, capsys):
        log("INFO", "test message")
        captured = capsys.readouterr()
        assert "[INFO]" in captured.err
        assert "test message" in captured.err
        assert captured.out == ""

    def test_debug_suppressed_by_default(self, capsys):
        log("DEBUG", "should not appear")
        captured = capsys.readouterr()
        assert captured.err == ""


class TestGetEnv:
    def test_returns_value(self, monkeypatch):
        monkeypatch.setenv("TEST_VAR", "hello")
        assert get_env("TEST_VAR") == "hello"

    def test_returns_default(self, monkeypatch):
        monkeypatch.delenv("TEST_VAR", raising=False)
        assert get_env("TEST_VAR", "fallback") == "fallback"


class TestGetEnvBool:
    @pytest.mark.parametrize("value", ["1", "true", "yes", "on", "TRUE", "Yes"])
    def test_truthy_values(self, monkeypatch, value):
        monkeypatch.setenv("TEST_BOOL", value)
        assert get_env_bool("TEST_BOOL") is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "off", "random"])
    def test_falsy_values(self, monkeypatch, value):
        monkeypatch.setenv("TEST_BOOL", value)
        assert get_env_bool("TEST_BOOL") is False

    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("TEST_BOOL", raising=False)
        assert get_env_bool("TEST_BOOL", True) is True


class TestParseIntEnv:
    def test_valid_value(self, monkeypatch):
        monkeypatch.setenv("MY_INT", "42")
        assert parse_int_env("MY_INT", "10") == 42

    def test_non_integer_raises(self, monkeypatch):
        monkeypatch.setenv("MY_INT", "abc")
        with pytest.raises(ConfigError, match="must be an integer"):
            parse_int_env("MY_INT", "10")

    def test_below_min_raises(self, monkeypatch):
        monkeypatch.setenv("MY_INT", "0")
        with pytest.raises(ConfigError, match="must be >= 1"):
            parse_int_env("MY_INT", "10", min_val=1)

    def test_above_max_raises(self, monkeypatch):
        monkeypatch.setenv("MY_INT", "70000")
        with pytest.raises(ConfigError, match="must be <= 65535"):
            parse_int_env("MY_INT", "10", max_val=65535)


class TestMisc:
    def test_run_uses_text_mode(self):
        with patch("cpi.utils.subprocess.run") as mock_run:
            run(["genisoimage", "-version"], capture_output=True)
        mock_run.assert_called_once_with(["genisoimage", "-version"], check=True, text=True, capture_output=True)
