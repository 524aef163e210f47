"""Response envelope and the registry that exposes handlers as named commands."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import redis
from pydantic import ConfigDict, ValidationError, validate_call

from redisdesk.errors import RedisCommandError, RedisDeskError, ValidationFailedError, redis_errors

LOG = logging.getLogger(__name__)

DEFAULT_MESSAGE = "OK"


@dataclass(frozen=True, slots=True)
class CommandResponse:
    """Uniform envelope returned by every command."""

    success: bool
    message: str
    data: Any = None
    kind: str | None = None

    @classmethod
    def ok(cls, data: Any, message: str = DEFAULT_MESSAGE) -> CommandResponse:
        return cls(success=True, message=message, data=data)

    @classmethod
    def done(cls, message: str = DEFAULT_MESSAGE) -> CommandResponse:
        """Success without a payload."""

        return cls(success=True, message=message)

    @classmethod
    def failure(cls, message: str, *, kind: str | None = None, data: Any = None) -> CommandResponse:
        """Failed outcome; batch commands may still attach what they produced."""

        return cls(success=False, message=message, data=data, kind=kind)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = to_payload(self.data)
        return payload


def to_payload(value: Any) -> Any:
    """Convert models (and containers of them) into JSON-ready values."""

    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    if isinstance(value, dict):
        return {key: to_payload(item) for key, item in value.items()}
    return value


Handler = Callable[..., CommandResponse]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """A named command and the handler behind it."""

    name: str
    description: str
    handler: Handler


class CommandRegistry:
    """Collects the commands a front end may invoke."""

    def __init__(self) -> None:
        self._commands: dict[str, CommandSpec] = {}

    def register(self, spec: CommandSpec) -> None:
        if spec.name in self._commands:
            raise ValueError(f"Command '{spec.name}' is already registered")
        self._commands[spec.name] = spec

    def register_many(self, specs: Iterable[CommandSpec]) -> None:
        for spec in specs:
            self.register(spec)

    def list_commands(self) -> list[CommandSpec]:
        return sorted(self._commands.values(), key=lambda spec: spec.name)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def execute(self, name: str, *args: Any, **kwargs: Any) -> CommandResponse:
        """Run a registered command by name; unknown names raise ``KeyError``."""

        spec = self._commands[name]
        return spec.handler(*args, **kwargs)


COMMANDS = CommandRegistry()


ARGUMENT_CONFIG = ConfigDict(arbitrary_types_allowed=True, coerce_numbers_to_str=True)


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def command(name: str, description: str, *, registry: CommandRegistry | None = None) -> Callable[[Handler], Handler]:
    """Register a handler and turn raised errors into failure envelopes.

    Arguments are validated against the handler's annotations first, so a
    wrongly typed or missing argument comes back as ``validation_failed``.
    """

    target = registry if registry is not None else COMMANDS

    def _decorate(func: Handler) -> Handler:
        validated = validate_call(config=ARGUMENT_CONFIG)(func)

        @functools.wraps(func)
        def _wrapper(*args: Any, **kwargs: Any) -> CommandResponse:
            try:
                return validated(*args, **kwargs)
            except ValidationError as exc:
                message = f"Invalid arguments for '{name}': {describe_validation_error(exc)}"
                LOG.warning("Command rejected", extra={"command": name, "error": message})
                return CommandResponse.failure(message, kind=ValidationFailedError.kind)
            except RedisDeskError as exc:
                LOG.warning(
                    "Command failed",
                    extra={"command": name, "kind": exc.kind, "error": exc.message},
                )
                return CommandResponse.failure(exc.message, kind=exc.kind)
            except redis.RedisError as exc:
                LOG.warning("Command failed", extra={"command": name, "error": str(exc)})
                return CommandResponse.failure(f"Redis error: {exc}", kind=RedisCommandError.kind)

        target.register(CommandSpec(name=name, description=description, handler=_wrapper))
        return _wrapper

    return _decorate


__all__ = [
    "COMMANDS",
    "CommandRegistry",
    "CommandResponse",
    "CommandSpec",
    "Handler",
    "command",
    "redis_errors",
    "to_payload",
]
