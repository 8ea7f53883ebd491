#!/usr/bin/env python3
"""
notifyhub Quickstart — every delivery mode in one script.

Opens three connections (two tabs for alice, one anonymous), then pushes
a direct send, a send that skips the first tab, and both broadcasts.
Run with: python examples/quickstart.py

Requires: pip install -e ".[examples]"
Gateway must be running: http://localhost:3001
"""

import asyncio
import json

import websockets

from _common import WS_URL, create_producer, user_token


async def _open(token: str | None = None):
    subprotocols = ["notify.v1"]
    if token:
        subprotocols.append(f"auth.token.{token}")
    ws = await websockets.connect(WS_URL, subprotocols=subprotocols)
    hello = json.loads(await ws.recv())
    return ws, hello["data"]["id"]


async def _drain(name: str, ws) -> None:
    """Print whatever arrived within a short window."""
    while True:
        try:
            raw = await asyncio.wait_for(ws.recv(), timeout=0.5)
        except asyncio.TimeoutError:
            return
        frame = json.loads(raw)
        print(f"   {name:<8} ← {frame['event']} {json.dumps(frame['data'])}")


async def main():
    producer = create_producer()

    print("\n1. Opening connections...")
    alice_token = user_token("alice")
    tab1, tab1_id = await _open(alice_token)
    tab2, _ = await _open(alice_token)
    anon, _ = await _open()
    sockets = {"tab1": tab1, "tab2": tab2, "anon": anon}
    print(f"   alice tab1 ({tab1_id[:8]}...), alice tab2, anonymous")

    try:
        print("\n2. Send to alice (both tabs)...")
        resp = producer.post("/events/send", json={"event": "hello", "data": 1, "userId": "alice"})
        assert resp.status_code == 202, f"Failed: {resp.text}"
        for name, ws in sockets.items():
            await _drain(name, ws)

        print("\n3. Send to alice, skipping tab1...")
        producer.post(
            "/events/send",
            json={"event": "hello", "data": 2, "userId": "alice", "socketId": tab1_id},
        )
        for name, ws in sockets.items():
            await _drain(name, ws)

        print("\n4. Broadcast to authenticated connections...")
        producer.post("/events/emit-authenticated", json={"event": "members", "data": None})
        for name, ws in sockets.items():
            await _drain(name, ws)

        print("\n5. Broadcast to everyone...")
        resp = producer.post("/events/emit-all", json={"event": "maintenance", "data": "22:00"})
        print(f"   reached {resp.json()['receivers']} gateway(s)")
        for name, ws in sockets.items():
            await _drain(name, ws)
    finally:
        for ws in sockets.values():
            await ws.close()
        producer.close()

    print("\nDone.")


if __name__ == "__main__":
    asyncio.run(main())
