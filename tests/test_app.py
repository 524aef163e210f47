"""Tests for the stdio command bridge."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from redisdesk import app as app_module
from redisdesk.app import RedisDeskApp
from redisdesk.config import AppConfig

from .fakes import FakeServer


@pytest.fixture
def desk(tmp_path: Path, handle_factory) -> RedisDeskApp:  # type: ignore[no-untyped-def]
    return RedisDeskApp(AppConfig(scan_count=2), config_path=tmp_path / "config.toml", handle_factory=handle_factory)


def test_invoke_runs_registered_commands(desk: RedisDeskApp, server: FakeServer) -> None:
    connected = desk.invoke("connect_redis", {"config": {"id": "c", "name": "Cache"}})
    created = desk.invoke("set_key", {"connection_id": "c", "key": "k", "key_type": "string", "value": "v"})
    fetched = desk.invoke("get_key", {"connection_id": "c", "key": "k"})

    assert connected == {"success": True, "message": "Connected to Cache"}
    assert created["success"] is True
    assert fetched["data"] == "v"


def test_invoke_applies_configured_scan_count(desk: RedisDeskApp, server: FakeServer) -> None:
    for index in range(5):
        server.seed(0, f"k{index}", "string", "x")
    desk.invoke("connect_redis", {"config": {"id": "c", "name": "Cache"}})

    response = desk.invoke("get_keys", {"connection_id": "c"})

    assert response["data"]["total"] == 5


def test_invoke_unknown_command(desk: RedisDeskApp) -> None:
    response = desk.invoke("flushall")

    assert response["success"] is False
    assert "Unknown command" in response["message"]


def test_invoke_rejects_bad_arguments(desk: RedisDeskApp) -> None:
    response = desk.invoke("get_key", {"connection_id": "c", "wrong": 1})

    assert response["success"] is False
    assert "Invalid arguments for 'get_key'" in response["message"]


def test_invoke_dispatches_profile_commands(desk: RedisDeskApp, tmp_path: Path) -> None:
    saved = desk.invoke("save_connection", {"connection": {"id": "p", "name": "Profile"}})
    listed = desk.invoke("list_saved_connections")

    assert saved["success"] is True
    assert listed["data"][0]["id"] == "p"
    assert (tmp_path / "config.toml").exists()


def test_handle_line_rejects_malformed_requests(desk: RedisDeskApp) -> None:
    assert desk.handle_line("not json")["success"] is False
    assert desk.handle_line("[1, 2]")["success"] is False
    assert desk.handle_line('{"command": "get_key", "args": []}')["success"] is False


def test_serve_answers_each_line_and_closes(desk: RedisDeskApp, server: FakeServer) -> None:
    requests = "\n".join(
        [
            json.dumps({"command": "connect_redis", "args": {"config": {"id": "c", "name": "Cache"}}}),
            "",
            json.dumps({"command": "get_key_type", "args": {"connection_id": "c", "key": "missing"}}),
        ]
    )
    output = io.StringIO()

    desk.serve(io.StringIO(requests), output)

    lines = [json.loads(line) for line in output.getvalue().splitlines()]
    assert [line["success"] for line in lines] == [True, True]
    assert lines[1]["data"] == "none"
    assert len(desk.registry) == 0
    assert server.handles[0].released is True


def test_main_lists_commands(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = app_module.main(["--list", "--config", str(tmp_path / "config.toml")])

    printed = capsys.readouterr().out.split()
    assert exit_code == 0
    assert "connect_redis" in printed
    assert "list_saved_connections" in printed


def test_serve_survives_wrongly_typed_arguments(desk: RedisDeskApp, server: FakeServer) -> None:
    requests = "\n".join(
        [
            json.dumps({"command": "connect_redis", "args": {"config": {"id": "c", "name": "Cache"}}}),
            json.dumps({"command": "get_db_key_count", "args": {"connection_id": "c", "db_index": "abc"}}),
            json.dumps({"command": "get_key", "args": {"connection_id": "c", "key": ["not", "a", "string"]}}),
            json.dumps({"command": "get_db_key_count", "args": {"connection_id": "c", "db_index": "3"}}),
        ]
    )
    server.seed(3, "k", "string", "v")
    output = io.StringIO()

    desk.serve(io.StringIO(requests), output)

    lines = [json.loads(line) for line in output.getvalue().splitlines()]
    assert [line["success"] for line in lines] == [True, False, False, True]
    assert "db_index" in lines[1]["message"]
    assert "key" in lines[2]["message"]
    assert lines[3]["data"] == 1


def test_serve_answers_when_a_handler_crashes(desk: RedisDeskApp, monkeypatch: pytest.MonkeyPatch) -> None:
    def _explode(name: str, args: object = None) -> dict[str, object]:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(desk, "invoke", _explode)
    output = io.StringIO()

    desk.serve(io.StringIO('{"command": "get_db_count", "args": {}}\n{"command": "x"}\n'), output)

    lines = [json.loads(line) for line in output.getvalue().splitlines()]
    assert len(lines) == 2
    assert lines[0] == {"success": False, "message": "Internal error: kaboom"}
