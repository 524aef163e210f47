"""Shared fixtures wiring the in-memory Redis double into a registry."""

from __future__ import annotations

import pytest

from redisdesk.connections import ConnectionRegistry
from redisdesk.models import ConnectionConfig

from .fakes import FakeHandle, FakeServer


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def handle_factory(server: FakeServer):  # type: ignore[no-untyped-def]
    def _factory(url: str) -> FakeHandle:
        handle = FakeHandle(server, url)
        server.handles.append(handle)
        return handle

    return _factory


@pytest.fixture
def registry(handle_factory) -> ConnectionRegistry:  # type: ignore[no-untyped-def]
    return ConnectionRegistry(handle_factory)


@pytest.fixture
def connected(registry: ConnectionRegistry) -> str:
    registry.connect(ConnectionConfig(id="local", name="Local"))
    return "local"
