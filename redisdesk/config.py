"""App configuration loading helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field, ValidationError

LOG = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "redisdesk" / "config.toml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class SavedConnection(BaseModel):
    """Connection profile stored in config.toml."""

    id: str = Field(min_length=1)
    name: str
    host: str = "127.0.0.1"
    port: int = Field(default=6379, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    db: int | None = Field(default=None, ge=0)
    separator: str = ":"


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    log_level: str = "WARNING"
    scan_count: int = Field(default=500, ge=1)
    socket_timeout: float | None = 5.0
    connections: list[SavedConnection] = Field(default_factory=list)

    def connection_by_id(self, connection_id: str) -> SavedConnection | None:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def with_connection(self, connection: SavedConnection) -> AppConfig:
        """Return a copy with the profile added, replacing one with the same id."""

        connections = [entry for entry in self.connections if entry.id != connection.id]
        connections.append(connection)
        return self.model_copy(update={"connections": connections})

    def without_connection(self, connection_id: str) -> AppConfig:
        connections = [entry for entry in self.connections if entry.id != connection_id]
        return self.model_copy(update={"connections": connections})


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        LOG.warning("Ignoring unreadable config file", extra={"path": str(path or CONFIG_FILE)})
        return AppConfig()
    try:
        return AppConfig(**data)
    except ValidationError:
        LOG.warning("Ignoring invalid config values", extra={"path": str(path or CONFIG_FILE)})
        return AppConfig(connections=data.get("connections", []))


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"log_level = {_quote(config.log_level)}",
        f"scan_count = {config.scan_count}",
    ]
    if config.socket_timeout is not None:
        lines.append(f"socket_timeout = {config.socket_timeout}")
    for connection in config.connections:
        lines.append("")
        lines.append("[[connections]]")
        lines.append(f"id = {_quote(connection.id)}")
        lines.append(f"name = {_quote(connection.name)}")
        lines.append(f"host = {_quote(connection.host)}")
        lines.append(f"port = {connection.port}")
        if connection.username:
            lines.append(f"username = {_quote(connection.username)}")
        if connection.password:
            lines.append(f"password = {_quote(connection.password)}")
        if connection.db is not None:
            lines.append(f"db = {connection.db}")
        lines.append(f"separator = {_quote(connection.separator)}")
    target.write_text("\n".join(lines) + "\n")


class ProfileStore:
    """Saved connection profiles backed by the config file."""

    def __init__(self, config: AppConfig, *, path: Path | None = None) -> None:
        self._config = config
        self._path = path

    @property
    def config(self) -> AppConfig:
        return self._config

    def list(self) -> tuple[SavedConnection, ...]:
        return tuple(self._config.connections)

    def save(self, connection: SavedConnection) -> None:
        self._config = self._config.with_connection(connection)
        save_config(self._config, self._path)

    def delete(self, connection_id: str) -> bool:
        if self._config.connection_by_id(connection_id) is None:
            return False
        self._config = self._config.without_connection(connection_id)
        save_config(self._config, self._path)
        return True


def _quote(value: str) -> str:
    return json.dumps(value)


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    log_level = raw.get("log_level")
    if isinstance(log_level, str) and log_level.upper() in LOG_LEVELS:
        data["log_level"] = log_level.upper()
    scan_count = raw.get("scan_count")
    if isinstance(scan_count, int) and not isinstance(scan_count, bool) and scan_count > 0:
        data["scan_count"] = scan_count
    socket_timeout = raw.get("socket_timeout")
    if isinstance(socket_timeout, (int, float)) and not isinstance(socket_timeout, bool):
        data["socket_timeout"] = float(socket_timeout)
    connections = raw.get("connections")
    if isinstance(connections, list):
        parsed: list[SavedConnection] = []
        for entry in connections:
            if not isinstance(entry, dict):
                continue
            try:
                parsed.append(SavedConnection(**entry))
            except ValidationError:
                LOG.warning("Skipping invalid saved connection", extra={"entry_id": entry.get("id")})
        data["connections"] = parsed
    return data


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "ProfileStore",
    "SavedConnection",
    "load_config",
    "save_config",
]
