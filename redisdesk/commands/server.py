"""Server metrics command built on INFO."""

from __future__ import annotations

import re
from typing import Any, Mapping

from redisdesk.connections import ConnectionRegistry
from redisdesk.models import RedisServerInfo

from .base import CommandResponse, command, redis_errors

_DB_SECTION = re.compile(r"^db\d+$")


def build_server_info(info: Mapping[str, Any]) -> RedisServerInfo:
    """Flatten a parsed INFO reply into ``RedisServerInfo``."""

    return RedisServerInfo(
        memory_usage=_int(info, "used_memory"),
        maxmemory=_int(info, "maxmemory"),
        connections=_int(info, "connected_clients"),
        hit_rate=hit_rate(info),
        uptime=_int(info, "uptime_in_seconds"),
        total_keys=total_keys(info),
        ops_per_sec=_int(info, "instantaneous_ops_per_sec"),
        used_cpu=_float(info, "used_cpu_sys"),
        role=_str(info, "role"),
        version=_str(info, "redis_version"),
        persistence=persistence_mode(info),
        clients_blocked=_int(info, "blocked_clients"),
        keys_evicted=_int(info, "evicted_keys"),
        keys_expired=_int(info, "expired_keys"),
        replication_status=replication_status(info),
        mem_fragmentation_ratio=_float(info, "mem_fragmentation_ratio"),
        aof_size=_int(info, "aof_current_size"),
        rdb_last_save=_int(info, "rdb_last_save_time"),
        connected_slaves=_int(info, "connected_slaves"),
    )


def hit_rate(info: Mapping[str, Any]) -> float:
    """Keyspace hit percentage rounded half away from zero; 0 without traffic."""

    hits = _int(info, "keyspace_hits")
    misses = _int(info, "keyspace_misses")
    total = hits + misses
    if total <= 0:
        return 0.0
    return float((hits * 200 + total) // (2 * total))


def total_keys(info: Mapping[str, Any]) -> int:
    total = 0
    for name, section in info.items():
        if not _DB_SECTION.match(str(name)):
            continue
        if isinstance(section, Mapping):
            total += _int(section, "keys")
        elif isinstance(section, str):
            # Unparsed form: "keys=12,expires=0,avg_ttl=0"
            fields = dict(part.split("=", 1) for part in section.split(",") if "=" in part)
            total += _int(fields, "keys")
    return total


def persistence_mode(info: Mapping[str, Any]) -> str:
    rdb = _int(info, "rdb_bgsave_in_progress") == 1
    aof = _int(info, "aof_enabled") == 1
    if rdb and aof:
        return "RDB+AOF"
    if rdb:
        return "RDB"
    if aof:
        return "AOF"
    return "None"


def replication_status(info: Mapping[str, Any]) -> str:
    role = _str(info, "role", default="")
    if role == "master":
        return "master"
    if role in {"slave", "replica"}:
        if _str(info, "master_link_status", default="") == "up":
            return "replica (connected)"
        return "replica (disconnected)"
    return "unknown"


@command("get_redis_server_info", "Server metrics parsed from INFO.")
def get_redis_server_info(registry: ConnectionRegistry, connection_id: str) -> CommandResponse:
    with registry.session(connection_id) as client, redis_errors("Failed to read server info"):
        info = client.info()
    return CommandResponse.ok(build_server_info(info))


def _int(info: Mapping[str, Any], name: str) -> int:
    try:
        return int(float(info.get(name, 0)))
    except (TypeError, ValueError):
        return 0


def _float(info: Mapping[str, Any], name: str) -> float:
    try:
        return float(info.get(name, 0.0))
    except (TypeError, ValueError):
        return 0.0


def _str(info: Mapping[str, Any], name: str, *, default: str = "unknown") -> str:
    value = info.get(name)
    if value is None:
        return default
    return str(value).strip()


__all__ = [
    "build_server_info",
    "get_redis_server_info",
    "hit_rate",
    "persistence_mode",
    "replication_status",
    "total_keys",
]
