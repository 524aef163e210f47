"""Command handlers exposed to front ends; importing this package registers them."""

from .base import COMMANDS, CommandRegistry, CommandResponse, CommandSpec, command, to_payload
from . import connection, database, keys, server, transfer  # noqa: F401  (registration side effects)
from .profiles import PROFILE_COMMANDS

__all__ = [
    "COMMANDS",
    "CommandRegistry",
    "CommandResponse",
    "CommandSpec",
    "PROFILE_COMMANDS",
    "command",
    "to_payload",
]
