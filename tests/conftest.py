"""
Pytest configuration and shared fixtures for AgenticHub tests.

This module provides common test fixtures, configuration, and utilities
used across all AgenticHub test modules.
"""

import json
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from agentichub.config.loader import ConfigLoader
from agentichub.http import create_http_client
from agentichub.registry.models import ServerRecord

# Configure pytest-asyncio - auto mode is configured in pyproject.toml

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def config_loader() -> ConfigLoader:
    """Create a configuration loader instance."""
    return ConfigLoader()


@pytest.fixture
def default_config(config_loader: ConfigLoader) -> dict[str, Any]:
    """Get default configuration for tests."""
    return config_loader.load_defaults()


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


@pytest.fixture
def mock_http() -> Callable[[Handler], tuple[httpx.AsyncClient, RecordingTransport]]:
    """Factory for an AsyncClient backed by a recording mock transport."""

    def factory(handler: Handler) -> tuple[httpx.AsyncClient, RecordingTransport]:
        transport = RecordingTransport(handler)
        return create_http_client(transport=transport), transport

    return factory


def server_payload(
    name: str,
    repo: str | None = None,
    version: str | None = "1.0.0",
    packages: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Registry wire payload for one server listing."""
    payload: dict[str, Any] = {"name": name, "version": version, **extra}
    if repo is not None:
        payload["repository"] = {"url": repo, "source": "github"}
    if packages is not None:
        payload["packages"] = packages
    return payload


def make_server(
    name: str,
    repo: str | None = None,
    version: str | None = "1.0.0",
    packages: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> ServerRecord:
    return ServerRecord.model_validate(
        server_payload(name, repo, version, packages, **extra)
    )


def write_json(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


# Test markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "network: mark test as needing network access")
