"""Shared models passed between the registry, command handlers and callers."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

KEY_TYPES = ("string", "hash", "list", "set", "zset")


class ConnectionConfig(BaseModel):
    """Caller supplied description of one logical Redis connection."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    host: str = "127.0.0.1"
    port: int = Field(default=6379, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    db: int | None = Field(default=None, ge=0)

    @property
    def database(self) -> int:
        """Database index to select after connecting."""

        return self.db or 0


class KeyDetail(BaseModel):
    """Export/import unit: a key with its metadata and type-tagged value."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    key_type: str = Field(alias="type")
    ttl: int = -1
    size: int = 0
    create_time: str = ""
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True, slots=True)
class KeyInfo:
    """Key name plus its Redis type."""

    key: str
    key_type: str

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "type": self.key_type}


@dataclass(frozen=True, slots=True)
class KeysListData:
    """Result of a pattern scan."""

    keys: tuple[KeyInfo, ...]
    total: int

    def to_dict(self) -> dict[str, Any]:
        return {"keys": [info.to_dict() for info in self.keys], "total": self.total}


@dataclass(frozen=True, slots=True)
class DbKeyCount:
    db_index: int
    key_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class RedisServerInfo:
    """Flat server metrics built from an INFO reply."""

    memory_usage: int
    maxmemory: int
    connections: int
    hit_rate: float
    uptime: int
    total_keys: int
    ops_per_sec: int
    used_cpu: float
    role: str
    version: str
    persistence: str
    clients_blocked: int
    keys_evicted: int
    keys_expired: int
    replication_status: str
    mem_fragmentation_ratio: float
    aof_size: int
    rdb_last_save: int
    connected_slaves: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "ConnectionConfig",
    "DbKeyCount",
    "KEY_TYPES",
    "KeyDetail",
    "KeyInfo",
    "KeysListData",
    "RedisServerInfo",
]
