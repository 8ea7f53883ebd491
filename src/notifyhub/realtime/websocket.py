"""WebSocket endpoint — real-time notification delivery to clients.

Each client connects to /ws, optionally with an access token (auth
subprotocol, ?token= query param, or authorization header). The handler:
1. Authenticates before the handshake completes (bad token → rejected)
2. Registers the connection, then accepts
3. Runs the outbox writer and the client listener concurrently
4. Deregisters on disconnect

Server → client frames are {"event": ..., "data": ...}.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from starlette.websockets import WebSocketState

from notifyhub.errors import HandshakeRejected
from notifyhub.events.types import CONNECTED, PONG
from notifyhub.realtime.adapter import ConnectionAdapter
from notifyhub.realtime.connection import Connection, Handshake

logger = structlog.get_logger()
router = APIRouter()

# Close code used when the server can't send an HTTP denial response
REJECTED_CLOSE_CODE = 4001


async def _reject(websocket: WebSocket, message: str) -> None:
    """Refuse the handshake, with a readable body where the server allows it."""
    if "websocket.http.response" in (websocket.scope.get("extensions") or {}):
        await websocket.send_denial_response(
            JSONResponse(
                status_code=401,
                content={"error": "connect_error", "message": message},
            )
        )
    else:
        await websocket.close(code=REJECTED_CLOSE_CODE, reason=message)


async def _client_listener(websocket: WebSocket, connection: Connection) -> None:
    """Handle incoming frames. Only ping is understood for now."""
    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(msg, dict) and msg.get("type") == "ping":
                connection.emit(PONG, None)
    except (WebSocketDisconnect, asyncio.CancelledError):
        pass


@router.websocket("/ws")
async def notification_websocket(websocket: WebSocket):
    """WebSocket endpoint for real-time notifications.

    Two concurrent tasks run per connection:
    1. Outbox writer — sends frames emitted by the propagation service
    2. Client listener — reads client frames (ping)

    When either side finishes, both are cancelled and the connection is
    deregistered.
    """
    adapter: ConnectionAdapter = websocket.app.state.adapter
    handshake = Handshake.from_websocket(websocket)

    # ── Authentication ──────────────────────────────────────
    try:
        identity = await adapter.authenticate(handshake)
    except HandshakeRejected as e:
        await _reject(websocket, e.message)
        return

    connection = Connection(websocket, auth=identity)
    structlog.contextvars.bind_contextvars(connection_id=connection.id)

    # Queued before registration so it stays frame 0 even when an event
    # lands while accept() is in flight.
    connection.emit(
        CONNECTED,
        {"id": connection.id, "userId": identity.id if identity else None},
    )

    # Registered before accept: once the client sees the handshake
    # complete, it is already addressable.
    adapter.bind_client_connect(connection)

    try:
        await websocket.accept(subprotocol=handshake.selected_subprotocol)

        writer_task = asyncio.create_task(connection.deliver())
        client_task = asyncio.create_task(_client_listener(websocket, connection))

        done, pending = await asyncio.wait(
            [writer_task, client_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        adapter.handle_disconnect(connection)
        structlog.contextvars.unbind_contextvars("connection_id")
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
