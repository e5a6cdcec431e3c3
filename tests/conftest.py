"""Test configuration and fixtures."""

import os
import socket

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from oci_registry_client import AuthHandler, RegistryClient
from tests.fake_registry import FakeRegistry


def is_port_open(host, port):
    """Check if a port is open."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(1)
            return sock.connect_ex((host, port)) == 0
    except OSError:
        return False


@pytest.fixture
def fake_registry():
    """Unauthenticated in-process registry; tests may reconfigure it before use."""
    return FakeRegistry()


@pytest_asyncio.fixture
async def registry_server(fake_registry):
    """Serve the fake registry on a random local port."""
    async with TestServer(fake_registry.app) as server:
        yield f"{server.host}:{server.port}"


@pytest.fixture
def auth_handler():
    """Credentials matching the fake registry's defaults."""
    return AuthHandler(username="user", password="secret")


@pytest_asyncio.fixture
async def client(registry_server, auth_handler):
    """Registry client talking plain HTTP to the fake registry."""
    async with RegistryClient(
        registry_server, insecure=True, auth=auth_handler, timeout=10
    ) as client:
        yield client


@pytest.fixture
def registry_port():
    """Get registry port for integration testing."""
    return int(os.getenv("REGISTRY_PORT", "5000"))


@pytest_asyncio.fixture
async def registry_client(registry_port):
    """Client for a real registry:2 container, skipped if none is listening."""
    if not is_port_open("localhost", registry_port):
        pytest.skip(f"Registry not available at localhost:{registry_port}")
    async with RegistryClient(f"localhost:{registry_port}", insecure=True) as client:
        yield client


# Pytest configuration
def pytest_configure(config):
    """Configure pytest markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring registry"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless a registry is declared available."""
    skip_integration = pytest.mark.skip(reason="Registry not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("REGISTRY_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
