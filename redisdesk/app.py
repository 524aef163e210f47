"""Stdio entry point: a JSON-lines bridge between a front end and the commands."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Mapping, TextIO

from .commands import COMMANDS, PROFILE_COMMANDS, CommandRegistry, CommandResponse
from .config import LOG_LEVELS, AppConfig, ProfileStore, load_config
from .connections import ConnectionRegistry, HandleFactory
from .errors import RedisDeskError, ValidationFailedError

LOG = logging.getLogger(__name__)

SCAN_COMMANDS = frozenset({"get_keys", "export_keys"})


class RedisDeskApp:
    """Owns the connection registry and dispatches named commands against it."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        config_path: Path | None = None,
        handle_factory: HandleFactory | None = None,
        commands: CommandRegistry = COMMANDS,
        profile_commands: CommandRegistry = PROFILE_COMMANDS,
    ) -> None:
        self.config = config if config is not None else load_config(config_path)
        self.registry = ConnectionRegistry(handle_factory, socket_timeout=self.config.socket_timeout)
        self.profiles = ProfileStore(self.config, path=config_path)
        self._commands = commands
        self._profile_commands = profile_commands

    def command_names(self) -> list[str]:
        names = [spec.name for spec in self._commands.list_commands()]
        names.extend(spec.name for spec in self._profile_commands.list_commands())
        return sorted(names)

    def invoke(self, name: str, args: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run one command and return its envelope as a plain dict."""

        arguments = dict(args or {})
        if name in self._commands:
            registry, target = self._commands, self.registry
            if name in SCAN_COMMANDS:
                arguments.setdefault("scan_count", self.config.scan_count)
        elif name in self._profile_commands:
            registry, target = self._profile_commands, self.profiles
        else:
            LOG.warning("Unknown command", extra={"command": name})
            return CommandResponse.failure(f"Unknown command: {name}", kind=ValidationFailedError.kind).to_dict()
        LOG.debug("Invoking command", extra={"command": name})
        return registry.execute(name, target, **arguments).to_dict()

    def handle_line(self, line: str) -> dict[str, Any]:
        """Decode one ``{"command": ..., "args": {...}}`` request."""

        try:
            request = json.loads(line)
        except json.JSONDecodeError as exc:
            return CommandResponse.failure(f"Malformed request: {exc}", kind=ValidationFailedError.kind).to_dict()
        if not isinstance(request, dict) or not isinstance(request.get("command"), str):
            return CommandResponse.failure(
                "Request must be an object with a 'command' string",
                kind=ValidationFailedError.kind,
            ).to_dict()
        args = request.get("args") or {}
        if not isinstance(args, dict):
            return CommandResponse.failure("'args' must be an object", kind=ValidationFailedError.kind).to_dict()
        return self.invoke(request["command"], args)

    def serve(self, stdin: TextIO, stdout: TextIO) -> None:
        """Answer requests line by line until EOF, then close every connection."""

        try:
            for line in stdin:
                if not line.strip():
                    continue
                stdout.write(self._answer(line) + "\n")
                stdout.flush()
        finally:
            self.close()

    def _answer(self, line: str) -> str:
        """Encode the reply to one line; a crashing handler still gets a failure line."""

        try:
            return json.dumps(self.handle_line(line))
        except Exception as exc:
            LOG.exception("Unhandled error while answering a request")
            failure = CommandResponse.failure(f"Internal error: {exc}", kind=RedisDeskError.kind)
            return json.dumps(failure.to_dict())

    def close(self) -> None:
        self.registry.close_all()


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="redisdesk", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Path to config.toml")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None, help="Override the configured log level")
    parser.add_argument("--list", action="store_true", help="Print the available commands and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config(args.config)
    logging.basicConfig(
        level=args.log_level or config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = RedisDeskApp(config, config_path=args.config)
    if args.list:
        for name in app.command_names():
            print(name)
        return 0
    LOG.info("Serving commands on stdio")
    try:
        app.serve(sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
