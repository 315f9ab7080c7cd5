"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest

from request_utils.context import RequestContext, build_server_vars


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    for key in list(os.environ):
        if key.startswith("REQUEST_UTILS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("WP_CLI", raising=False)
    monkeypatch.setenv("REQUEST_UTILS_LOG_JSON", "false")
    monkeypatch.setenv("REQUEST_UTILS_LOG_LEVEL", "debug")

    # Reset cached settings and header policy
    import request_utils.config.loader as loader
    loader._settings = None
    loader._header_policy = None
    yield
    loader._settings = None
    loader._header_policy = None


@pytest.fixture
def make_context():
    """Factory for contexts whose headers are laid out like a server environment."""

    def _make(headers: dict[str, str] | None = None, enumerate_headers: bool = True, **fields) -> RequestContext:
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        fields.setdefault("server", build_server_vars(headers, method=fields.get("method", "GET")))
        fields.setdefault("headers", headers if enumerate_headers else None)
        return RequestContext(**fields)

    return _make
