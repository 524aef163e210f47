"""Import/export of keys as ``KeyDetail`` records."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import redis
from pydantic import ValidationError

from redisdesk.connections import ConnectionRegistry
from redisdesk.errors import RedisCommandError, RedisDeskError, ValidationFailedError
from redisdesk.keyspace import read_key_detail, write_value
from redisdesk.models import KeyDetail

from .base import CommandResponse, command, redis_errors
from .keys import DEFAULT_SCAN_COUNT

LOG = logging.getLogger(__name__)


def coerce_key_detail(payload: KeyDetail | Mapping[str, Any]) -> KeyDetail:
    if isinstance(payload, KeyDetail):
        return payload
    try:
        return KeyDetail.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailedError(f"Invalid key detail: {exc}") from exc


def import_one(client: redis.Redis, detail: KeyDetail, *, overwrite: bool) -> None:
    """Write one record; an existing key is only replaced when ``overwrite`` is set."""

    with redis_errors("Failed to check key"):
        exists = client.exists(detail.key)
    if exists and not overwrite:
        raise ValidationFailedError(f"Key {detail.key} already exists, skipped")
    write_value(client, detail.key, detail.key_type, detail.value, detail.ttl)


@command("export_key", "Export one key as a key detail record.")
def export_key(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client:
        return CommandResponse.ok(read_key_detail(client, key))


@command("export_keys", "Export every key matching a pattern.")
def export_keys(
    registry: ConnectionRegistry,
    connection_id: str,
    pattern: str = "*",
    scan_count: int = DEFAULT_SCAN_COUNT,
) -> CommandResponse:
    exported: list[KeyDetail] = []
    failures: list[str] = []
    with registry.session(connection_id) as client:
        with redis_errors("Failed to list keys"):
            names = sorted(set(client.scan_iter(match=pattern, count=scan_count)))
        for name in names:
            try:
                exported.append(read_key_detail(client, name))
            except RedisDeskError as exc:
                LOG.warning("Skipping key during export", extra={"key": name, "error": exc.message})
                failures.append(f"{name}: {exc.message}")
    if not failures:
        return CommandResponse.ok(exported, f"Exported {len(exported)} key(s)")
    message = f"Exported {len(exported)}, failed {len(failures)}\nErrors:\n" + "\n".join(failures)
    return CommandResponse.failure(message, kind=RedisCommandError.kind, data=exported)


@command("import_key", "Import one key detail record.")
def import_key(
    registry: ConnectionRegistry,
    connection_id: str,
    key_detail: KeyDetail | Mapping[str, Any],
    overwrite: bool = False,
) -> CommandResponse:
    detail = coerce_key_detail(key_detail)
    with registry.session(connection_id) as client:
        import_one(client, detail, overwrite=overwrite)
    return CommandResponse.done(f"Imported key {detail.key}")


@command("import_keys", "Import several key detail records, reporting every failure.")
def import_keys(
    registry: ConnectionRegistry,
    connection_id: str,
    keys: list[Any],
    overwrite: bool = False,
) -> CommandResponse:
    imported = 0
    errors: list[str] = []
    with registry.session(connection_id) as client:
        for payload in keys:
            name = _record_name(payload)
            try:
                import_one(client, coerce_key_detail(payload), overwrite=overwrite)
            except RedisDeskError as exc:
                LOG.warning("Key import failed", extra={"key": name, "error": exc.message})
                errors.append(f"{name}: {exc.message}")
                continue
            imported += 1
    if not errors:
        return CommandResponse.done(f"Imported all {imported} key(s)")
    message = f"Imported {imported}, failed {len(errors)}\nErrors:\n" + "\n".join(errors)
    return CommandResponse.failure(message, kind=ValidationFailedError.kind)


def _record_name(payload: Any) -> str:
    if isinstance(payload, KeyDetail):
        return payload.key
    if isinstance(payload, Mapping):
        return str(payload.get("key", "?"))
    return "?"


__all__ = [
    "coerce_key_detail",
    "export_key",
    "export_keys",
    "import_key",
    "import_keys",
    "import_one",
]
