"""Connect and disconnect commands."""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import ValidationError

from redisdesk.connections import ConnectionRegistry
from redisdesk.errors import ValidationFailedError
from redisdesk.models import ConnectionConfig

from .base import CommandResponse, command


def _coerce_config(config: ConnectionConfig | Mapping[str, Any]) -> ConnectionConfig:
    if isinstance(config, ConnectionConfig):
        return config
    try:
        return ConnectionConfig.model_validate(config)
    except ValidationError as exc:
        raise ValidationFailedError(f"Invalid connection config: {exc}") from exc


@command("connect_redis", "Open a connection and register it under its id.")
def connect_redis(registry: ConnectionRegistry, config: ConnectionConfig | Mapping[str, Any]) -> CommandResponse:
    resolved = _coerce_config(config)
    registry.connect(resolved)
    return CommandResponse.done(f"Connected to {resolved.name}")


@command("disconnect_redis", "Drop a registered connection.")
def disconnect_redis(registry: ConnectionRegistry, connection_id: str) -> CommandResponse:
    registry.disconnect(connection_id)
    return CommandResponse.done("Disconnected")


__all__ = ["connect_redis", "disconnect_redis"]
