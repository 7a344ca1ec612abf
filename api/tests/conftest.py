"""Pytest configuration and shared fixtures.

This module provides:
- A clean environment (no stray redirect rules) before ``main`` is imported
- An app factory fixture building the app from an explicit rule mapping
- Settings cache isolation
"""

# Drop redirect variables BEFORE any import that builds the module-level app
import os

for _key in [k for k in os.environ if k.startswith("SR_REDIR_")]:
    del os.environ[_key]

from collections.abc import Callable, Mapping

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.config import clear_settings_cache

# Configuration from the README example
EXAMPLE_CONFIG: dict[str, str] = {
    "SR_REDIR_test": "/hi,/test,/",
    "SR_REDIR_test__TARGET": "https://g.co",
    "SR_REDIR_test__CODE": "307",
    "SR_REDIR_test__JS_ONLY": "false",
    "SR_REDIR_test__PRESERVE_PARAMS": "true",
}


@pytest.fixture(autouse=True)
def _clear_settings():
    """Clear the settings lru_cache between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def example_config() -> dict[str, str]:
    return dict(EXAMPLE_CONFIG)


@pytest.fixture
def make_app() -> Callable[[Mapping[str, str]], FastAPI]:
    """Build a fresh app around the given rule configuration."""
    from main import create_app

    def _make(config: Mapping[str, str]) -> FastAPI:
        return create_app(config)

    return _make


@pytest.fixture
def make_client(make_app) -> Callable[[Mapping[str, str]], TestClient]:
    """Build a TestClient that does not follow redirects."""

    def _make(config: Mapping[str, str]) -> TestClient:
        return TestClient(
            make_app(config), raise_server_exceptions=False, follow_redirects=False
        )

    return _make
