"""Pytest fixtures."""

import os
from typing import Callable
from unittest.mock import MagicMock, patch

import pytest
from utils import RecordingDelivery

from cloud_functions_diagnostics import Client, ClientConfiguration, CloudFunctionsPlugin


@pytest.fixture(autouse=True, scope="session")
def mock_env():
    """Clear environment variables to avoid poluting configs from runtime env."""
    with patch.dict(os.environ, clear=True):
        yield


@pytest.fixture
def cloud_event() -> dict:
    """A CloudEvent as it is received by an event handler."""
    return {
        "id": "4df34f10-6ede-468d-9515-4ddd5ee26d56",
        "time": "2024-10-14T10:13:10.178Z",
        "type": "com.github.pull.create",
        "source": "/cloudevents/spec/pull",
        "specversion": "1.0",
        "datacontenttype": "application/json",
        "data": {"key": "value"},
    }


@pytest.fixture
def delivery() -> RecordingDelivery:
    """Delivery that records payloads instead of sending them."""
    return RecordingDelivery()


@pytest.fixture
def logger() -> MagicMock:
    """Logger sink of the client."""
    return MagicMock()


@pytest.fixture
def client_factory(delivery: RecordingDelivery, logger: MagicMock) -> Callable[..., Client]:
    """
    Build clients with the plugin loaded.

    Usage:
        def test_something(client_factory):
            client = client_factory(auto_detect_errors=False)
    """

    def build(plugins=(CloudFunctionsPlugin,), **config) -> Client:
        return Client(
            ClientConfiguration(api_key="AN_API_KEY", **config),
            plugins=plugins,
            delivery=delivery,
            logger=logger,
        )

    return build


@pytest.fixture
def client(client_factory) -> Client:
    """Client with the default configuration."""
    return client_factory()
