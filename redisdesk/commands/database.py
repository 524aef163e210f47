"""Database commands: counts per logical database and db selection."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from redisdesk.connections import ConnectionRegistry
from redisdesk.errors import NotConnectedError, RedisDeskError, ValidationFailedError
from redisdesk.models import DbKeyCount

from .base import CommandResponse, command, redis_errors

LOG = logging.getLogger(__name__)

DEFAULT_DB_COUNT = 16


def parse_db_count(config: Any) -> int:
    """Read ``databases`` from a CONFIG GET reply, defaulting to 16."""

    raw = config.get("databases") if isinstance(config, Mapping) else None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return DEFAULT_DB_COUNT


def _check_index(db_index: int) -> None:
    if db_index < 0:
        raise ValidationFailedError(f"Invalid database index: {db_index}")


@command("get_db_count", "Number of logical databases the server exposes.")
def get_db_count(registry: ConnectionRegistry, connection_id: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to get database count"):
        config = client.config_get("databases")
    return CommandResponse.ok(parse_db_count(config))


@command("get_db_key_count", "Number of keys in one database.")
def get_db_key_count(registry: ConnectionRegistry, connection_id: str, db_index: int) -> CommandResponse:
    _check_index(db_index)
    with registry.session(connection_id, db=db_index) as client, redis_errors("Failed to count keys"):
        return CommandResponse.ok(int(client.dbsize()))


@command("get_all_db_key_counts", "Key counts for databases 0..db_count-1.")
def get_all_db_key_counts(registry: ConnectionRegistry, connection_id: str, db_count: int) -> CommandResponse:
    if db_count < 0:
        raise ValidationFailedError(f"Invalid database count: {db_count}")
    if connection_id not in registry:
        raise NotConnectedError(connection_id)
    counts: list[DbKeyCount] = []
    for db_index in range(db_count):
        try:
            with registry.session(connection_id, db=db_index) as client, redis_errors("DBSIZE failed"):
                count = int(client.dbsize())
        except RedisDeskError as exc:
            # Unreadable databases are reported as empty.
            LOG.warning("Failed to count keys", extra={"db": db_index, "error": exc.message})
            count = 0
        counts.append(DbKeyCount(db_index=db_index, key_count=count))
    return CommandResponse.ok(counts)


@command("select_db", "Switch the database a connection operates on.")
def select_database(registry: ConnectionRegistry, connection_id: str, db_index: int) -> CommandResponse:
    _check_index(db_index)
    with registry.session(connection_id, db=db_index) as client, redis_errors("Failed to select database"):
        client.ping()
    registry.update_current_db(connection_id, db_index)
    return CommandResponse.done(f"Switched to database {db_index}")


__all__ = [
    "DEFAULT_DB_COUNT",
    "get_all_db_key_counts",
    "get_db_count",
    "get_db_key_count",
    "parse_db_count",
    "select_database",
]
