"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from t411.api.client import ApiClient

from .fakes import FakeHttpSession, FakeT411


@pytest.fixture
def api():
    return FakeT411()


@pytest.fixture
def http(api):
    return FakeHttpSession(api)


@pytest.fixture
def client(http):
    with ApiClient(base_url="https://api.example.test", http=http, max_workers=4) as api_client:
        yield api_client
