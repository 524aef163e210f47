"""Typed value reading/writing shared by the key and transfer commands."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Mapping

import redis

from .errors import NotFoundError, RedisCommandError, ValidationFailedError, redis_errors
from .models import KEY_TYPES, KeyDetail

ValueShape = Literal["pairs", "objects"]


def read_value(client: redis.Redis, key: str, key_type: str, *, shape: ValueShape = "pairs") -> Any:
    """Read a key's value as JSON-ready data.

    ``pairs`` renders hash/zset entries as two-element lists (the export format);
    ``objects`` renders them as ``{field, value}`` / ``{value, score}`` dicts.
    Types outside ``KEY_TYPES`` read as ``None``.
    """

    with redis_errors(f"Failed to read {key_type} value"):
        if key_type == "string":
            return client.get(key) or ""
        if key_type == "hash":
            entries = client.hgetall(key)
            if shape == "objects":
                return [{"field": field, "value": value} for field, value in entries.items()]
            return [[field, value] for field, value in entries.items()]
        if key_type == "list":
            return list(client.lrange(key, 0, -1))
        if key_type == "set":
            return sorted(client.smembers(key))
        if key_type == "zset":
            members = client.zrange(key, 0, -1, withscores=True)
            if shape == "objects":
                return [{"value": member, "score": score} for member, score in members]
            return [[member, score] for member, score in members]
    return None


def write_value(client: redis.Redis, key: str, key_type: str, value: Any, ttl: int) -> None:
    """Replace ``key`` with ``value`` of ``key_type``; ``ttl > 0`` adds an expiry."""

    if key_type not in KEY_TYPES:
        raise ValidationFailedError(f"Unsupported key type: {key_type}")
    expire = ttl if ttl > 0 else None
    if key_type == "string":
        text = parse_string_value(value)
    elif key_type == "hash":
        fields = dict(parse_hash_items(value))
    elif key_type == "zset":
        scores = dict(parse_zset_items(value))
    else:
        members = parse_member_items(value, key_type)
    with redis_errors(f"Failed to write {key_type} key '{key}'"):
        with client.pipeline() as pipe:
            pipe.delete(key)
            if key_type == "string":
                pipe.set(key, text, ex=expire)
            elif key_type == "hash":
                pipe.hset(key, mapping=fields)
            elif key_type == "list":
                pipe.rpush(key, *members)
            elif key_type == "set":
                pipe.sadd(key, *members)
            else:
                pipe.zadd(key, scores)
            if expire is not None and key_type != "string":
                pipe.expire(key, expire)
            pipe.execute()


def parse_string_value(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationFailedError("String value must be a string")
    return value


def parse_member_items(value: Any, key_type: str = "list") -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise ValidationFailedError(f"{key_type.capitalize()} value must be an array of strings")
    items = [_scalar(item, f"{key_type} item") for item in value]
    if not items:
        raise ValidationFailedError(f"{key_type.capitalize()} value must not be empty")
    return items


def parse_hash_items(value: Any) -> list[tuple[str, str]]:
    """Accept ``{field: value}``, ``[[field, value]]`` or ``[{field, value}]``."""

    if isinstance(value, Mapping):
        pairs = list(value.items())
    elif isinstance(value, (list, tuple)):
        pairs = [_pair(item, "field", "value") for item in value]
    else:
        raise ValidationFailedError("Hash value must be an object or an array of field/value pairs")
    items = [(_scalar(field, "hash field"), _scalar(item, "hash value")) for field, item in pairs]
    if not items:
        raise ValidationFailedError("Hash value must not be empty")
    return items


def parse_zset_items(value: Any) -> list[tuple[str, float]]:
    """Accept ``{member: score}``, ``[[member, score]]`` or ``[{value, score}]``."""

    if isinstance(value, Mapping):
        pairs = list(value.items())
    elif isinstance(value, (list, tuple)):
        pairs = [_pair(item, "value", "score") for item in value]
    else:
        raise ValidationFailedError("Sorted set value must be an array of value/score pairs")
    items = [(_scalar(member, "sorted set member"), _score(score)) for member, score in pairs]
    if not items:
        raise ValidationFailedError("Sorted set value must not be empty")
    return items


def key_size(client: redis.Redis, key: str) -> int:
    """Approximate size in bytes: MEMORY USAGE, else DEBUG OBJECT serializedlength."""

    try:
        size = client.memory_usage(key)
    except redis.ResponseError:
        size = None
    if size is not None:
        return int(size)
    with redis_errors("Failed to get key size"):
        output = client.execute_command("DEBUG", "OBJECT", key)
    length = parse_serialized_length(output)
    if length is None:
        raise RedisCommandError("Could not parse key size")
    return length


def parse_serialized_length(output: Any) -> int | None:
    """Pull ``serializedlength`` out of a DEBUG OBJECT reply (text or parsed)."""

    if isinstance(output, Mapping):
        raw = output.get("serializedlength")
        return int(raw) if raw is not None else None
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    for part in str(output).split():
        if part.startswith("serializedlength:"):
            try:
                return int(part.split(":", 1)[1])
            except ValueError:
                return None
    return None


def last_save_time(client: redis.Redis) -> str:
    """ISO-8601 timestamp of the last save, standing in for a creation time."""

    try:
        saved = client.lastsave()
    except redis.RedisError:
        saved = None
    if isinstance(saved, datetime):
        return saved.astimezone(timezone.utc).isoformat()
    if isinstance(saved, (int, float)):
        return datetime.fromtimestamp(saved, tz=timezone.utc).isoformat()
    return datetime.now(tz=timezone.utc).isoformat()


def read_key_detail(client: redis.Redis, key: str, *, shape: ValueShape = "pairs") -> KeyDetail:
    with redis_errors("Failed to check key"):
        exists = client.exists(key)
    if not exists:
        raise NotFoundError(f"Key '{key}' does not exist")
    with redis_errors("Failed to read key metadata"):
        key_type = client.type(key)
        ttl = client.ttl(key)
    return KeyDetail(
        key=key,
        key_type=key_type,
        ttl=ttl,
        size=key_size(client, key),
        create_time=last_save_time(client),
        value=read_value(client, key, key_type, shape=shape),
    )


def _pair(item: Any, first: str, second: str) -> tuple[Any, Any]:
    if isinstance(item, Mapping):
        if first in item and second in item:
            return item[first], item[second]
    elif isinstance(item, (list, tuple)) and len(item) == 2:
        return item[0], item[1]
    raise ValidationFailedError(f"Expected a {first}/{second} pair, got {item!r}")


def _scalar(value: Any, what: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValidationFailedError(f"Invalid {what}: {value!r}")


def _score(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationFailedError(f"Invalid score: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailedError(f"Invalid score: {value!r}") from exc


__all__ = [
    "ValueShape",
    "key_size",
    "last_save_time",
    "parse_hash_items",
    "parse_member_items",
    "parse_serialized_length",
    "parse_string_value",
    "parse_zset_items",
    "read_key_detail",
    "read_value",
    "write_value",
]
