"""Saved connection profiles persisted in the config file."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import ValidationError

from redisdesk.config import ProfileStore, SavedConnection
from redisdesk.errors import NotFoundError, ValidationFailedError

from .base import CommandRegistry, CommandResponse, command

LOG = logging.getLogger(__name__)

PROFILE_COMMANDS = CommandRegistry()


@command("list_saved_connections", "Saved connection profiles.", registry=PROFILE_COMMANDS)
def list_saved_connections(store: ProfileStore) -> CommandResponse:
    return CommandResponse.ok([profile.model_dump() for profile in store.list()])


@command("save_connection", "Add or replace a saved connection profile.", registry=PROFILE_COMMANDS)
def save_connection(store: ProfileStore, connection: SavedConnection | Mapping[str, Any]) -> CommandResponse:
    if not isinstance(connection, SavedConnection):
        try:
            connection = SavedConnection.model_validate(connection)
        except ValidationError as exc:
            raise ValidationFailedError(f"Invalid connection profile: {exc}") from exc
    try:
        store.save(connection)
    except OSError as exc:
        LOG.error("Failed to write config", extra={"error": str(exc)})
        raise ValidationFailedError(f"Failed to write config: {exc}") from exc
    return CommandResponse.done(f"Saved connection {connection.name}")


@command("delete_saved_connection", "Remove a saved connection profile.", registry=PROFILE_COMMANDS)
def delete_saved_connection(store: ProfileStore, connection_id: str) -> CommandResponse:
    try:
        removed = store.delete(connection_id)
    except OSError as exc:
        LOG.error("Failed to write config", extra={"error": str(exc)})
        raise ValidationFailedError(f"Failed to write config: {exc}") from exc
    if not removed:
        raise NotFoundError(f"Saved connection '{connection_id}' does not exist")
    return CommandResponse.done(f"Removed saved connection {connection_id}")


__all__ = [
    "PROFILE_COMMANDS",
    "delete_saved_connection",
    "list_saved_connections",
    "save_connection",
]
