"""Connection handles and the per-process connection server.

A Connection wraps one accepted WebSocket. Emitting is synchronous: frames
go onto an outbox queue and a writer task sends them in order. That keeps
bus dispatch non-blocking — a slow client only delays its own outbox.

The ConnectionServer is the set of every open connection on this process,
authenticated or not. It is what "emit to all" reaches.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from notifyhub.auth.identity import AuthUser

logger = structlog.get_logger()

# Clients that cannot set headers (browsers) pass credentials as
# subprotocols: "auth.token.<jwt>" becomes auth["token"] = "<jwt>".
AUTH_SUBPROTOCOL_PREFIX = "auth."
NOTIFY_SUBPROTOCOL = "notify.v1"


@dataclass(frozen=True)
class Handshake:
    """Metadata of a connection attempt, as seen before accept()."""

    auth: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    subprotocols: tuple[str, ...] = ()

    @classmethod
    def from_websocket(cls, websocket: WebSocket) -> "Handshake":
        subprotocols = tuple(websocket.scope.get("subprotocols") or ())
        auth = {}
        for protocol in subprotocols:
            if not protocol.startswith(AUTH_SUBPROTOCOL_PREFIX):
                continue
            key, _, value = protocol[len(AUTH_SUBPROTOCOL_PREFIX):].partition(".")
            if key and value:
                auth[key] = value
        return cls(
            auth=auth,
            query=dict(websocket.query_params),
            headers={k.lower(): v for k, v in websocket.headers.items()},
            subprotocols=subprotocols,
        )

    @property
    def selected_subprotocol(self) -> Optional[str]:
        """Subprotocol to echo on accept.

        notify.v1 when offered. Otherwise the first offered one, because a
        browser fails the handshake if it offered subprotocols and none is
        selected (a client sending only "auth.token.<jwt>" gets that back).
        """
        if NOTIFY_SUBPROTOCOL in self.subprotocols:
            return NOTIFY_SUBPROTOCOL
        return self.subprotocols[0] if self.subprotocols else None


class Connection:
    """One live bidirectional connection owned by this process."""

    def __init__(
        self,
        websocket: Optional[WebSocket] = None,
        auth: Optional[AuthUser] = None,
    ):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.auth = auth
        self.released = False
        self._outbox: asyncio.Queue = asyncio.Queue()

    @property
    def authenticated(self) -> bool:
        return self.auth is not None

    def emit(self, event: str, data: Any = None) -> None:
        """Queue an event for this client. No-op once released."""
        if self.released:
            return
        self._outbox.put_nowait({"event": event, "data": data})

    def release(self) -> None:
        """Stop accepting frames and drop anything still queued."""
        self.released = True
        while not self._outbox.empty():
            self._outbox.get_nowait()

    async def deliver(self) -> None:
        """Writer loop — drain the outbox onto the socket until released."""
        try:
            while True:
                frame = await self._outbox.get()
                await self.websocket.send_json(frame)
        except (WebSocketDisconnect, asyncio.CancelledError):
            pass
        except RuntimeError as e:
            # Starlette raises RuntimeError when sending on a closing socket
            logger.debug("realtime.send_after_close", connection_id=self.id, error=str(e))

    def __repr__(self) -> str:
        user = self.auth.id if self.auth else None
        return f"<Connection {self.id} user={user}>"


class ConnectionServer:
    """Every open connection on this process, keyed by connection id."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def add(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def discard(self, connection: Connection) -> None:
        self._connections.pop(connection.id, None)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def emit(self, event: str, data: Any = None) -> None:
        """Emit to every local connection, authenticated or not."""
        for connection in list(self._connections.values()):
            connection.emit(event, data)

    def __len__(self) -> int:
        return len(self._connections)
