"""Tagged errors raised by the registry and command handlers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import redis


class RedisDeskError(RuntimeError):
    """Base error; ``kind`` tags the failure for callers that branch on it."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConnectError(RedisDeskError):
    """Raised when a connection cannot be established or its db selected."""

    kind = "connect_failed"


class NotConnectedError(RedisDeskError):
    """Raised when a command targets a connection id that is not registered."""

    kind = "not_connected"

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Connection '{connection_id}' is not connected")
        self.connection_id = connection_id


class ConnectionAcquisitionError(RedisDeskError):
    """Raised when a handle cannot produce a protocol connection."""

    kind = "connection_failed"


class RedisCommandError(RedisDeskError):
    """Raised when Redis rejects a command or the reply has the wrong shape."""

    kind = "command_failed"


class ValidationFailedError(RedisDeskError):
    """Raised for bad arguments: out-of-range index, unknown type, bad payload."""

    kind = "validation_failed"


class NotFoundError(RedisDeskError):
    """Raised when the target of a delete-style operation does not exist."""

    kind = "not_found"


@contextmanager
def redis_errors(action: str) -> Iterator[None]:
    """Re-raise redis-py errors as ``RedisCommandError`` prefixed with ``action``."""

    try:
        yield
    except redis.RedisError as exc:
        raise RedisCommandError(f"{action}: {exc}") from exc


__all__ = [
    "ConnectError",
    "ConnectionAcquisitionError",
    "NotConnectedError",
    "NotFoundError",
    "RedisCommandError",
    "RedisDeskError",
    "ValidationFailedError",
    "redis_errors",
]
