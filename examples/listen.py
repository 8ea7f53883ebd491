#!/usr/bin/env python3
"""
Listen — connect to the gateway as a user and print every frame.

Run with: python examples/listen.py alice
          python examples/listen.py            # anonymous

Requires: pip install -e ".[examples]"
"""

import asyncio
import json
import sys

import websockets

from _common import WS_URL, user_token

NOTIFY_SUBPROTOCOL = "notify.v1"


async def listen(user_id: str | None) -> None:
    subprotocols = [NOTIFY_SUBPROTOCOL]
    if user_id:
        subprotocols.append(f"auth.token.{user_token(user_id)}")

    async with websockets.connect(WS_URL, subprotocols=subprotocols) as ws:
        print(f"Connected to {WS_URL} as {user_id or 'anonymous'}")
        async for raw in ws:
            frame = json.loads(raw)
            if frame["event"] == "connected":
                print(f"  connection id: {frame['data']['id']}")
                continue
            print(f"  {frame['event']}: {json.dumps(frame['data'])}")


def main():
    user_id = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(listen(user_id))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
