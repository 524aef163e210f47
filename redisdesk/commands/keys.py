"""Key commands: typed CRUD, metadata and per-type element edits."""

from __future__ import annotations

from typing import Any

from redisdesk.connections import ConnectionRegistry
from redisdesk.errors import NotFoundError, ValidationFailedError
from redisdesk.keyspace import key_size, read_key_detail, write_value
from redisdesk.models import KeyInfo, KeysListData

from .base import CommandResponse, command, redis_errors

DEFAULT_SCAN_COUNT = 500


@command("set_key", "Create or replace a key of the given type.")
def set_key(
    registry: ConnectionRegistry,
    connection_id: str,
    key: str,
    key_type: str,
    value: Any,
    ttl: int = 0,
) -> CommandResponse:
    with registry.session(connection_id) as client:
        write_value(client, key, key_type, value, ttl)
    return CommandResponse.done(f"Created {key_type} key {key}")


@command("get_key", "Read a string value.")
def get_key(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to get key"):
        value = client.get(key)
    if value is None:
        return CommandResponse.ok("", f"Key {key} has no value")
    return CommandResponse.ok(value, f"Fetched {key}")


@command("get_keys", "List keys matching a pattern together with their types.")
def get_keys(
    registry: ConnectionRegistry,
    connection_id: str,
    pattern: str = "*",
    scan_count: int = DEFAULT_SCAN_COUNT,
) -> CommandResponse:
    found: list[KeyInfo] = []
    seen: set[str] = set()
    with registry.session(connection_id) as client:
        cursor = 0
        while True:
            with redis_errors("SCAN failed"):
                cursor, batch = client.scan(cursor=cursor, match=pattern, count=scan_count)
            fresh = [name for name in batch if name not in seen]
            if fresh:
                with redis_errors("Failed to read key types"):
                    with client.pipeline(transaction=False) as pipe:
                        for name in fresh:
                            pipe.type(name)
                        types = pipe.execute()
                seen.update(fresh)
                found.extend(KeyInfo(key=name, key_type=key_type) for name, key_type in zip(fresh, types))
            if int(cursor) == 0:
                break
    return CommandResponse.ok(KeysListData(keys=tuple(found), total=len(found)))


@command("get_key_detail", "Read a key's type, TTL, size and value.")
def get_key_detail(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client:
        detail = read_key_detail(client, key, shape="objects")
    return CommandResponse.ok(detail)


@command("get_key_type", "Read a key's Redis type.")
def get_key_type(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to get key type"):
        return CommandResponse.ok(client.type(key))


@command("get_key_ttl", "Read a key's remaining time to live.")
def get_key_ttl(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to get key TTL"):
        return CommandResponse.ok(client.ttl(key))


@command("set_key_ttl", "Set a TTL in seconds, or remove it when ttl <= 0.")
def set_key_ttl(registry: ConnectionRegistry, connection_id: str, key: str, ttl: int) -> CommandResponse:
    with registry.session(connection_id) as client:
        if ttl > 0:
            with redis_errors("Failed to set TTL"):
                changed = client.expire(key, ttl)
            if not changed:
                raise NotFoundError(f"Key '{key}' does not exist")
            return CommandResponse.done(f"TTL of {key} set to {ttl}s")
        with redis_errors("Failed to remove TTL"):
            changed = client.persist(key)
        if not changed:
            raise NotFoundError(f"Key '{key}' has no TTL or does not exist")
    return CommandResponse.done(f"TTL of {key} removed")


@command("get_key_size", "Approximate a key's size in bytes.")
def get_key_size(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client:
        return CommandResponse.ok(key_size(client, key))


@command("delete_key", "Delete a key.")
def delete_key(registry: ConnectionRegistry, connection_id: str, key: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to delete key"):
        removed = client.delete(key)
    if not removed:
        raise NotFoundError(f"Key '{key}' does not exist")
    return CommandResponse.done(f"Deleted {key}")


@command("rename_key", "Rename a key.")
def rename_key(registry: ConnectionRegistry, connection_id: str, old_key: str, new_key: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Rename failed"):
        client.rename(old_key, new_key)
    return CommandResponse.done(f"Renamed {old_key} to {new_key}")


@command("update_hash_field", "Set one hash field.")
def update_hash_field(
    registry: ConnectionRegistry,
    connection_id: str,
    key: str,
    field: str,
    value: str,
) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Update failed"):
        client.hset(key, field, value)
    return CommandResponse.done(f"Updated field {field} of {key}")


@command("delete_hash_field", "Remove one hash field.")
def delete_hash_field(registry: ConnectionRegistry, connection_id: str, key: str, field: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Delete failed"):
        removed = client.hdel(key, field)
    if not removed:
        raise NotFoundError(f"Field '{field}' does not exist")
    return CommandResponse.done(f"Deleted field {field} of {key}")


@command("update_list_item", "Overwrite a list element by index (negative counts from the end).")
def update_list_item(
    registry: ConnectionRegistry,
    connection_id: str,
    key: str,
    index: int,
    value: str,
) -> CommandResponse:
    with registry.session(connection_id) as client:
        with redis_errors("Failed to read list length"):
            length = client.llen(key)
        if index >= length or index < -length:
            raise ValidationFailedError(f"Index {index} is out of range for a list of length {length}")
        position = length + index if index < 0 else index
        with redis_errors("Update failed"):
            client.lset(key, position, value)
    return CommandResponse.done(f"Updated index {index} of {key}")


@command("delete_list_item", "Remove list elements equal to value (LREM semantics for count).")
def delete_list_item(
    registry: ConnectionRegistry,
    connection_id: str,
    key: str,
    value: str,
    count: int = 0,
) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Delete failed"):
        removed = client.lrem(key, count, value)
    if not removed:
        raise NotFoundError("No matching element")
    return CommandResponse.done(f"Removed {removed} element(s)")


@command("append_list_item", "Append an element to the end of a list.")
def append_list_item(registry: ConnectionRegistry, connection_id: str, key: str, value: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Append failed"):
        length = client.rpush(key, value)
    return CommandResponse.done(f"Appended to {key}, new length: {length}")


@command("add_set_item", "Add a member to a set.")
def add_set_item(registry: ConnectionRegistry, connection_id: str, key: str, value: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Add failed"):
        added = client.sadd(key, value)
    if not added:
        raise ValidationFailedError("Member already exists")
    return CommandResponse.done(f"Added member to {key}")


@command("delete_set_item", "Remove a member from a set.")
def delete_set_item(registry: ConnectionRegistry, connection_id: str, key: str, value: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Delete failed"):
        removed = client.srem(key, value)
    if not removed:
        raise NotFoundError("Member does not exist")
    return CommandResponse.done(f"Removed member from {key}")


@command("add_zset_item", "Add a member with a score to a sorted set.")
def add_zset_item(
    registry: ConnectionRegistry,
    connection_id: str,
    key: str,
    score: float,
    value: str,
) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Add failed"):
        added = client.zadd(key, {value: score}, nx=True)
    if not added:
        raise ValidationFailedError("Member already exists")
    return CommandResponse.done(f"Added member to {key}")


@command("delete_zset_item", "Remove a member from a sorted set.")
def delete_zset_item(registry: ConnectionRegistry, connection_id: str, key: str, value: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Delete failed"):
        removed = client.zrem(key, value)
    if not removed:
        raise NotFoundError("Member does not exist")
    return CommandResponse.done(f"Removed member from {key}")


__all__ = [
    "DEFAULT_SCAN_COUNT",
    "add_set_item",
    "add_zset_item",
    "append_list_item",
    "delete_hash_field",
    "delete_key",
    "delete_list_item",
    "delete_set_item",
    "delete_zset_item",
    "get_key",
    "get_key_detail",
    "get_key_size",
    "get_key_ttl",
    "get_key_type",
    "get_keys",
    "rename_key",
    "set_key",
    "set_key_ttl",
    "update_hash_field",
    "update_list_item",
]
