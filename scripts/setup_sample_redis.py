"""Utility that launches a sample Redis Docker container for redisdesk."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from redisdesk.config import CONFIG_FILE, SavedConnection, load_config, save_config

DEFAULT_CONTAINER = "redisdesk-sample"
DEFAULT_PORT = 6380
DEFAULT_PASSWORD = "redisdesk"
DOCKER_IMAGE = "redis:7-alpine"
PROFILE_ID = "docker-sample"

SEED_COMMANDS = [
    ["SET", "app:greeting", "hello"],
    ["SET", "app:session:token", "abc123", "EX", "3600"],
    ["HSET", "user:1", "name", "Anna", "email", "anna@example.com"],
    ["RPUSH", "queue:jobs", "resize", "thumbnail", "publish"],
    ["SADD", "tags", "redis", "python", "desktop"],
    ["ZADD", "leaderboard", "120", "anna", "95", "ben", "87", "cara"],
    ["SELECT", "1"],
    ["SET", "other:db:marker", "1"],
]


def run(cmd: list[str], *, check: bool = True, **kwargs) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True, **kwargs)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(name: str, port: int, password: str) -> None:
    if container_exists(name):
        print(f"Container '{name}' already exists. Reusing it.")
        run(["docker", "start", name], check=False)
    else:
        run(
            [
                "docker",
                "run",
                "-d",
                "--name",
                name,
                "-p",
                f"{port}:6379",
                DOCKER_IMAGE,
                "redis-server",
                "--requirepass",
                password,
            ]
        )
    wait_for_start(name, password)


def wait_for_start(name: str, password: str, retries: int = 15, delay: float = 1.0) -> None:
    for _ in range(retries):
        result = subprocess.run(
            ["docker", "exec", name, "redis-cli", "-a", password, "--no-auth-warning", "PING"],
            text=True,
            capture_output=True,
        )
        if result.returncode == 0 and "PONG" in result.stdout:
            return
        time.sleep(delay)
    print("Warning: Redis did not answer PING; continuing anyway.")


def seed_data(name: str, password: str) -> None:
    script = "\n".join(" ".join(parts) for parts in SEED_COMMANDS) + "\n"
    run(
        ["docker", "exec", "-i", name, "redis-cli", "-a", password, "--no-auth-warning"],
        input=script,
    )


def update_config(port: int, password: str) -> None:
    config = load_config()
    if config.connection_by_id(PROFILE_ID) is not None:
        print(f"Saved connection '{PROFILE_ID}' already present in config; leaving as-is.")
        return
    profile = SavedConnection(
        id=PROFILE_ID,
        name="Docker Sample",
        host="localhost",
        port=port,
        password=password,
        db=0,
    )
    save_config(config.with_connection(profile))
    print(f"Added 'Docker Sample' connection to {CONFIG_FILE}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Redis on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Redis requirepass value")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args.container, args.port, args.password)
        seed_data(args.container, args.password)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    update_config(args.port, args.password)
    print(
        "Sample Redis is ready. Connect using the 'Docker Sample' saved connection or "
        f"redis://:{args.password}@localhost:{args.port}/0"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
