"""Tests for settings loading and logging setup."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from t411.config.settings import Settings
from t411.logging_config import setup_logging


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("T411_API_URL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.api_url == "https://api.t411.me"
    assert settings.max_workers == 8
    assert settings.task_timeout is None
    assert settings.session_ttl_seconds is None


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("T411_API_URL", "https://api.example.test")
    monkeypatch.setenv("T411_MAX_WORKERS", "3")
    monkeypatch.setenv("t411_username", "user")

    settings = Settings(_env_file=None)
    assert settings.api_url == "https://api.example.test"
    assert settings.max_workers == 3
    assert settings.username == "user"


def test_settings_reject_invalid_pool_size(monkeypatch):
    monkeypatch.setenv("T411_MAX_WORKERS", "0")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_setup_logging_accepts_level_names():
    root = logging.getLogger()
    previous_level, previous_handlers = root.level, root.handlers[:]
    try:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.INFO
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)
        logging.getLogger("urllib3").setLevel(logging.NOTSET)


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("chatty")
