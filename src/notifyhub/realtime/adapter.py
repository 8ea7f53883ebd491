"""Connection adapter — authentication and registry bookkeeping.

Sits between the WebSocket endpoint and the realtime core. Per attempt:

    Connecting ─┬─ no token ──────► Unauthenticated ─┐
                ├─ valid token ───► Authenticated ───┼─► Connected ─► Disconnected
                └─ invalid token ─► Rejected (never registered)

The adapter is the only writer to the ConnectionRegistry.
"""

from typing import Awaitable, Callable, Optional

import structlog

from notifyhub.auth.identity import AuthUser
from notifyhub.auth.jwt import TokenError, validate_access_token
from notifyhub.errors import HandshakeRejected
from notifyhub.realtime.connection import Connection, ConnectionServer, Handshake
from notifyhub.realtime.propagator import PropagationService
from notifyhub.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()

INVALID_AUTH_TOKEN = "Invalid auth token"

TokenValidator = Callable[[str], Awaitable[AuthUser]]


def extract_token(handshake: Handshake) -> Optional[str]:
    """First credential found in: auth field, ?token= query, authorization header.

    The header value is passed through as-is (no scheme stripping).
    """
    return (
        handshake.auth.get("token")
        or handshake.query.get("token")
        or handshake.headers.get("authorization")
        or None
    )


class ConnectionAdapter:
    """Authenticates connections and keeps the registry in sync with them."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        propagator: PropagationService,
        validate_token: TokenValidator = validate_access_token,
    ):
        self.registry = registry
        self.propagator = propagator
        self.validate_token = validate_token
        self.server: Optional[ConnectionServer] = None

    def create_server(self) -> ConnectionServer:
        """Build the process's connection server and hand it to the propagator.

        Call before accepting connections.
        """
        server = ConnectionServer()
        self.propagator.attach_server(server)
        self.server = server
        return server

    async def authenticate(self, handshake: Handshake) -> Optional[AuthUser]:
        """Resolve the identity for a connection attempt.

        Returns None for anonymous connections, raises HandshakeRejected
        when a credential was supplied but doesn't validate.
        """
        token = extract_token(handshake)
        if not token:
            return None

        try:
            return await self.validate_token(token)
        except TokenError as e:
            logger.info("realtime.handshake_rejected", reason=str(e))
            raise HandshakeRejected(INVALID_AUTH_TOKEN) from e

    def bind_client_connect(self, connection: Connection) -> None:
        """Track a connection that passed authentication."""
        if self.server is None:
            raise RuntimeError("create_server() must run before accepting connections")

        self.server.add(connection)
        if connection.auth:
            self.registry.add(connection.auth.id, connection)
        logger.info(
            "realtime.connection_registered",
            connection_id=connection.id,
            user_id=connection.auth.id if connection.auth else None,
        )

    def handle_disconnect(self, connection: Connection) -> None:
        """Forget a connection. Safe to call more than once."""
        if connection.released:
            return

        if self.server is not None:
            self.server.discard(connection)
        if connection.auth:
            self.registry.remove(connection.auth.id, connection)
        connection.release()
        logger.info(
            "realtime.connection_closed",
            connection_id=connection.id,
            user_id=connection.auth.id if connection.auth else None,
        )
