from __future__ import annotations

import pytest

from easyauth import SessionEndpointConfig, resolve_endpoint


def test_absolute_locator_passes_through() -> None:
    config = SessionEndpointConfig(endpoint_locator="https://x/y")
    assert resolve_endpoint(config, "https", "host") == "https://x/y"


def test_absolute_locator_may_live_off_host() -> None:
    config = SessionEndpointConfig(endpoint_locator="https://store.blob.core.windows.net/auth/me.json?sig=abc")
    assert resolve_endpoint(config, "http", "app.example.com") == config.endpoint_locator


def test_relative_locator_is_joined_to_request_host() -> None:
    config = SessionEndpointConfig(endpoint_locator=".auth/me.json")
    assert resolve_endpoint(config, "https", "example.com") == "https://example.com/.auth/me.json"


def test_relative_locator_keeps_port() -> None:
    config = SessionEndpointConfig(endpoint_locator=".auth/me")
    assert resolve_endpoint(config, "http", "localhost:5000") == "http://localhost:5000/.auth/me"


def test_resolution_is_plain_concatenation() -> None:
    config = SessionEndpointConfig(endpoint_locator="not a path?")
    assert resolve_endpoint(config, "https", "example.com") == "https://example.com/not a path?"


def test_empty_locator_is_rejected() -> None:
    with pytest.raises(ValueError):
        SessionEndpointConfig(endpoint_locator="")
