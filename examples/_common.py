"""
Shared helpers for notifyhub examples.

Tokens are minted locally with the gateway's own secret
(NOTIFYHUB_JWT_SECRET must match the running gateway), so examples need
no separate auth service.
"""

import os
import sys

import httpx

from notifyhub.auth.identity import Role
from notifyhub.auth.jwt import create_access_token

BASE = os.environ.get("NOTIFYHUB_API_URL", "http://localhost:3001").rstrip("/")
WS_URL = BASE.replace("http", "ws", 1) + "/ws"
API = f"{BASE}/api/v1"


def check_gateway() -> None:
    """Verify the gateway is reachable and its backplane is up."""
    try:
        resp = httpx.get(f"{API}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Gateway not reachable at {BASE}")
        print("Start it with:  notifyhub serve --port 3001")
        sys.exit(1)

    if resp.status_code != 200:
        print(f"ERROR: Health check returned {resp.status_code}")
        sys.exit(1)

    health = resp.json()
    print("Gateway health:")
    print(f"  Redis:       {'✓' if health['redis'] == 'ok' else '✗'}")
    print(f"  Connections: {health['connections']}")

    if health["redis"] != "ok":
        print("\nERROR: Redis is not connected. Start it with: docker run -d -p 6379:6379 redis:7")
        sys.exit(1)


def user_token(user_id: str, name: str | None = None) -> str:
    return create_access_token(user_id, name or user_id.title(), Role.USER)


def create_producer() -> httpx.Client:
    """Check the gateway and return an httpx Client with admin auth."""
    check_gateway()
    token = create_access_token("examples", "Examples", Role.ADMIN)
    print("  Auth:        ✓ (admin JWT)")
    return httpx.Client(
        base_url=API,
        timeout=10,
        headers={"Authorization": f"Bearer {token}"},
    )
