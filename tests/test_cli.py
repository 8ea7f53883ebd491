"""CLI commands, run through click's CliRunner against a mocked API."""

import json

import httpx
import pytest
from click.testing import CliRunner

from notifyhub.auth.jwt import verify_token
from notifyhub.cli import main as cli_main


@pytest.fixture()
def api(monkeypatch):
    """Route the CLI's HTTP client to a handler; records every request."""
    calls = []
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.url.path, json.loads(request.content)))
        status, body = responses.get(request.url.path, (202, {}))
        return httpx.Response(status, json=body)

    def client():
        return httpx.AsyncClient(
            base_url="http://gateway.test", transport=httpx.MockTransport(handler)
        )

    monkeypatch.setattr(cli_main, "_client", client)
    return calls, responses


def test_token_command():
    result = CliRunner().invoke(cli_main.cli, ["token", "u1", "--name", "Alice", "--role", "ADMIN"])
    assert result.exit_code == 0
    payload = verify_token(result.output.strip())
    assert (payload["sub"], payload["name"], payload["role"]) == ("u1", "Alice", "ADMIN")


def test_send_parses_json_data(api):
    calls, responses = api
    responses["/api/v1/events/send"] = (202, {"propagated": True})

    result = CliRunner().invoke(
        cli_main.cli, ["send", "u1", "new-comment", '{"postId": 1}', "--exclude-socket", "abc"]
    )

    assert result.exit_code == 0, result.output
    assert "Sent new-comment to u1" in result.output
    assert calls == [
        (
            "/api/v1/events/send",
            {"event": "new-comment", "data": {"postId": 1}, "userId": "u1", "socketId": "abc"},
        )
    ]


def test_send_not_propagated_exits_nonzero(api):
    _, responses = api
    responses["/api/v1/events/send"] = (202, {"propagated": False})

    result = CliRunner().invoke(cli_main.cli, ["send", "", "x"])

    assert result.exit_code == 1


def test_broadcast_plain_string(api):
    calls, responses = api
    responses["/api/v1/events/emit-authenticated"] = (202, {"receivers": 3})

    result = CliRunner().invoke(
        cli_main.cli, ["broadcast", "maintenance", "down at 22:00", "--authenticated"]
    )

    assert result.exit_code == 0, result.output
    assert "Broadcast maintenance to 3 gateway(s)" in result.output
    assert calls == [
        ("/api/v1/events/emit-authenticated", {"event": "maintenance", "data": "down at 22:00"})
    ]


def test_api_error_is_reported(api):
    _, responses = api
    responses["/api/v1/events/emit-all"] = (503, {"detail": "Message bus unavailable"})

    result = CliRunner().invoke(cli_main.cli, ["broadcast", "x"])

    assert result.exit_code == 1
    assert "503: Message bus unavailable" in result.output
