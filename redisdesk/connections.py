"""Connection registry mapping caller-chosen ids to live Redis clients."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol, runtime_checkable
from urllib.parse import quote

import redis

from .errors import (
    ConnectError,
    ConnectionAcquisitionError,
    NotConnectedError,
    NotFoundError,
    RedisDeskError,
    redis_errors,
)
from .models import ConnectionConfig

LOG = logging.getLogger(__name__)


@runtime_checkable
class ConnectionHandle(Protocol):
    """Produces protocol connections bound to one Redis address."""

    url: str

    def get_connection(self, db: int = 0) -> redis.Redis:
        """Return a client that owns one freshly acquired connection on ``db``."""

    def release(self) -> None:
        """Drop every socket held by the handle."""


HandleFactory = Callable[[str], ConnectionHandle]


class RedisConnectionHandle:
    """Connection handle backed by one redis-py connection pool per database.

    Pooled connections issue SELECT when they connect, so every client (and
    every pipeline it opens) drawn from ``pool(db)`` talks to ``db``.
    Extra keyword arguments go to ``ConnectionPool.from_url``.
    """

    def __init__(self, url: str, *, socket_timeout: float | None = 5.0, **pool_options: Any) -> None:
        self.url = url
        try:
            base = redis.ConnectionPool.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
                **pool_options,
            )
        except ValueError as exc:
            raise ConnectError(f"Invalid Redis address: {exc}") from exc
        self._connection_class = base.connection_class
        self._connection_kwargs = dict(base.connection_kwargs)
        self._lock = threading.Lock()
        self._pools: dict[int, redis.ConnectionPool] = {int(self._connection_kwargs.get("db") or 0): base}

    def pool(self, db: int) -> redis.ConnectionPool:
        with self._lock:
            pool = self._pools.get(db)
            if pool is None:
                pool = redis.ConnectionPool(
                    connection_class=self._connection_class,
                    **{**self._connection_kwargs, "db": db},
                )
                self._pools[db] = pool
            return pool

    def get_connection(self, db: int = 0) -> redis.Redis:
        try:
            return redis.Redis(connection_pool=self.pool(db), single_connection_client=True)
        except redis.RedisError as exc:
            raise ConnectionAcquisitionError(f"Failed to get connection to database {db}: {exc}") from exc

    def release(self) -> None:
        with self._lock:
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.disconnect()


@dataclass(slots=True)
class ConnectionEntry:
    """Registry record: the handle plus the database it is assumed to be on."""

    handle: ConnectionHandle
    current_db: int
    name: str = ""


def build_redis_url(config: ConnectionConfig) -> str:
    """Build a ``redis://`` address, preferring user+password, then password only."""

    address = f"{config.host}:{config.port}/{config.database}"
    if config.username and config.password:
        return f"redis://{quote(config.username, safe='')}:{quote(config.password, safe='')}@{address}"
    if config.password:
        return f"redis://:{quote(config.password, safe='')}@{address}"
    return f"redis://{address}"


class ConnectionRegistry:
    """Process-wide table of live connections guarded by a single lock.

    ``session`` draws each protocol connection from the handle for the tracked
    database, so pipelines opened on it stay on that database too.
    """

    def __init__(
        self,
        handle_factory: HandleFactory | None = None,
        *,
        socket_timeout: float | None = 5.0,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, ConnectionEntry] = {}
        self._socket_timeout = socket_timeout
        self._handle_factory = handle_factory or self._default_handle

    def connect(self, config: ConnectionConfig) -> ConnectionEntry:
        """Check ``config.db`` answers PING and register the connection."""

        url = build_redis_url(config)
        db = config.database
        handle = self._handle_factory(url)
        try:
            with handle.get_connection(db) as client, redis_errors("Ping failed"):
                client.ping()
        except RedisDeskError as exc:
            handle.release()
            raise ConnectError(f"Failed to connect to '{config.name}': {exc.message}") from exc
        entry = ConnectionEntry(handle=handle, current_db=db, name=config.name)
        with self._lock:
            previous = self._entries.get(config.id)
            self._entries[config.id] = entry
        if previous is not None:
            previous.handle.release()
        LOG.info("Connected", extra={"connection_id": config.id, "host": config.host, "db": db})
        return entry

    def disconnect(self, connection_id: str) -> None:
        with self._lock:
            entry = self._entries.pop(connection_id, None)
        if entry is None:
            raise NotFoundError(f"Connection '{connection_id}' does not exist")
        entry.handle.release()
        LOG.info("Disconnected", extra={"connection_id": connection_id})

    def lookup(self, connection_id: str) -> ConnectionEntry | None:
        with self._lock:
            return self._entries.get(connection_id)

    def update_current_db(self, connection_id: str, db: int) -> None:
        with self._lock:
            entry = self._entries.get(connection_id)
            if entry is None:
                raise NotFoundError(f"Connection '{connection_id}' does not exist")
            entry.current_db = db

    def current_db(self, connection_id: str) -> int:
        entry = self.lookup(connection_id)
        if entry is None:
            raise NotConnectedError(connection_id)
        return entry.current_db

    def ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._entries)

    def close_all(self) -> None:
        """Release every registered handle (shutdown helper)."""

        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.handle.release()

    @contextmanager
    def session(self, connection_id: str, *, db: int | None = None) -> Iterator[redis.Redis]:
        """Yield a protocol connection bound to the tracked database.

        ``db`` overrides the tracked index for this one connection without
        changing what the registry records.
        """

        with self._lock:
            entry = self._entries.get(connection_id)
            if entry is None:
                raise NotConnectedError(connection_id)
            handle = entry.handle
            target = entry.current_db if db is None else db
        client = handle.get_connection(target)
        try:
            yield client
        finally:
            client.close()

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _default_handle(self, url: str) -> ConnectionHandle:
        return RedisConnectionHandle(url, socket_timeout=self._socket_timeout)


__all__ = [
    "ConnectionEntry",
    "ConnectionHandle",
    "ConnectionRegistry",
    "HandleFactory",
    "RedisConnectionHandle",
    "build_redis_url",
]
