"""notifyhub CLI — run the gateway and push events through it.

Usage:
    notifyhub serve --port 3001                  # Run the gateway (uvicorn)
    notifyhub token <user-id> --name Alice       # Mint a dev access token
    notifyhub send <user-id> new-comment '{"postId": 1}'
    notifyhub broadcast maintenance "down at 22:00" --authenticated
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Any, Optional

import click
import httpx

from notifyhub.auth.identity import Role
from notifyhub.auth.jwt import create_access_token
from notifyhub.config import settings

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3001"


def _api_url() -> str:
    return os.environ.get("NOTIFYHUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the gateway's producer API."""
    headers = {}
    token = os.environ.get("NOTIFYHUB_API_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _parse_data(raw: Optional[str]) -> Any:
    """Event data is JSON when it parses, a plain string otherwise."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


async def _post(path: str, body: dict) -> dict:
    async with _client() as client:
        r = await client.post(f"/api/v1{path}", json=body)
    if r.status_code >= 400:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        raise click.ClickException(f"{r.status_code}: {detail}")
    return r.json()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="notifyhub")
def cli():
    """notifyhub — real-time notification gateway."""


@cli.command()
@click.option("--host", default=settings.host, show_default=True)
@click.option("--port", default=settings.port, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Restart on code changes (dev only).")
def serve(host: str, port: int, reload: bool):
    """Run the gateway."""
    import uvicorn

    uvicorn.run("notifyhub.main:app", host=host, port=port, reload=reload)


@cli.command()
@click.argument("user_id")
@click.option("--name", required=True, help="Display name carried in the token.")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.USER.value,
    show_default=True,
)
@click.option("--expires", type=int, default=None, help="Lifetime in minutes.")
def token(user_id: str, name: str, role: str, expires: Optional[int]):
    """Print an access token signed with the configured secret."""
    click.echo(create_access_token(user_id, name, Role(role), expires_minutes=expires))


@cli.command()
@click.argument("user_id")
@click.argument("event")
@click.argument("data", required=False)
@click.option("--exclude-socket", default=None, help="Connection id to skip.")
def send(user_id: str, event: str, data: Optional[str], exclude_socket: Optional[str]):
    """Send EVENT to every connection of USER_ID."""
    body = {"event": event, "data": _parse_data(data), "userId": user_id}
    if exclude_socket:
        body["socketId"] = exclude_socket
    result = asyncio.run(_post("/events/send", body))
    if not result["propagated"]:
        click.echo("Not propagated (empty user id)", err=True)
        sys.exit(1)
    click.echo(f"Sent {event} to {user_id}")


@cli.command()
@click.argument("event")
@click.argument("data", required=False)
@click.option(
    "--authenticated", is_flag=True, help="Only reach authenticated connections."
)
def broadcast(event: str, data: Optional[str], authenticated: bool):
    """Broadcast EVENT to every gateway's connections."""
    path = "/events/emit-authenticated" if authenticated else "/events/emit-all"
    result = asyncio.run(_post(path, {"event": event, "data": _parse_data(data)}))
    click.echo(f"Broadcast {event} to {result['receivers']} gateway(s)")


def main():
    cli()


if __name__ == "__main__":
    main()
