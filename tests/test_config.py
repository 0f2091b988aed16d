"""Tests for YAML configuration and logging helpers."""

import logging

import pytest

import constants
from common.logging_utils import configure_logging, extra_context, safe_url, Timer
from constants import Constants, apply_config, _load_yaml_config


@pytest.fixture
def restore_constants():
    saved = {name: getattr(Constants, name) for name in (
        "REQUEST_TIMEOUT", "RESOLVER_MAX_WORKERS", "RESOLVER_MAX_ATTEMPTS",
        "DEFAULT_NUGET_SOURCE", "ORACLE_CACHE_TTL_SEC", "NUGET_CACHE_DIR", "GITHUB_API_BASE",
    )}
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)


class TestConfig:
    """Test configuration overrides."""

    def test_apply_config(self, restore_constants):
        apply_config({
            "http": {"timeout": "5"},
            "resolver": {"max_workers": 2, "max_attempts": 10},
            "sources": {"default": "http://mirror.example/api/v2"},
            "cache": {"dir": "/var/cache/nuresolve"},
            "unknown": {"key": 1},
        })
        assert Constants.REQUEST_TIMEOUT == 5
        assert Constants.RESOLVER_MAX_WORKERS == 2
        assert Constants.RESOLVER_MAX_ATTEMPTS == 10
        assert Constants.DEFAULT_NUGET_SOURCE == "http://mirror.example/api/v2"
        assert Constants.NUGET_CACHE_DIR == "/var/cache/nuresolve"

    def test_invalid_values_are_ignored(self, restore_constants):
        apply_config({"http": {"timeout": "soon"}, "cache": {"ttl_sec": 5}})
        assert Constants.REQUEST_TIMEOUT == 30
        assert Constants.ORACLE_CACHE_TTL_SEC == 5

    def test_load_yaml_file(self, tmp_path, restore_constants):
        path = tmp_path / "nuresolve.yml"
        path.write_text("github:\n  api_base: https://github.example/api/v3\n", encoding="utf-8")
        assert _load_yaml_config(str(path)) == str(path)
        assert Constants.GITHUB_API_BASE == "https://github.example/api/v3"

    def test_env_path(self, tmp_path, monkeypatch, restore_constants):
        path = tmp_path / "custom.yml"
        path.write_text("resolver:\n  max_workers: 3\n", encoding="utf-8")
        monkeypatch.setenv(Constants.ENV_CONFIG, str(path))
        assert _load_yaml_config() == str(path)
        assert Constants.RESOLVER_MAX_WORKERS == 3

    def test_no_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
        monkeypatch.chdir(tmp_path)
        assert _load_yaml_config() is None

    def test_malformed_yaml(self, tmp_path, caplog):
        path = tmp_path / "bad.yml"
        path.write_text("resolver: [unclosed\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger=constants.__name__):
            assert _load_yaml_config(str(path)) is None
        assert "Failed to parse config file" in caplog.text

    def test_missing_file(self, tmp_path):
        assert _load_yaml_config(str(tmp_path / "absent.yml")) is None


class TestLoggingUtils:
    """Test logging helpers."""

    def test_safe_url_strips_credentials_and_query(self):
        assert safe_url("https://user:pw@host.example:8443/api/v2?token=x#frag") == "https://host.example:8443/api/v2"
        assert safe_url("./packages") == "./packages"

    def test_extra_context_drops_none(self):
        assert extra_context(event="x", outcome=None) == {"event": "x"}

    def test_configure_logging_is_idempotent(self):
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging("WARNING")
            handlers = len(root.handlers)
            configure_logging("DEBUG")
            assert len(root.handlers) == handlers
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)

    def test_timer(self):
        with Timer() as timer:
            pass
        assert timer.duration_ms() >= 0
