"""Propagation service — cluster-wide event delivery over the bus.

Producers never touch sockets. They call propagate_event / emit_to_all /
emit_to_authenticated, which PUBLISH an envelope. Every gateway process
(the publisher included) is subscribed to all three channels and delivers
the envelope to the matching connections it holds locally:

    SOCKET_EVENT_SEND               → registry.get(userId), minus socketId
    SOCKET_EVENT_EMIT_ALL           → every open connection (ConnectionServer)
    SOCKET_EVENT_EMIT_AUTHENTICATED → registry.get_all()

A connection living on another process is simply not in our registry;
that process got the same envelope and handles it.

Lifecycle is two-phase: construct, attach_server() once, then start().
"""

import asyncio
from typing import Any, AsyncIterator, Optional, Protocol

import structlog
from fastapi import Request
from pydantic import ValidationError

from notifyhub.config import settings
from notifyhub.realtime.connection import ConnectionServer
from notifyhub.realtime.envelopes import (
    CHANNELS,
    EmitAllEnvelope,
    EmitAuthenticatedEnvelope,
    Envelope,
    SendEnvelope,
    decode_envelope,
)
from notifyhub.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class Bus(Protocol):
    async def publish(self, channel: str, value: Any) -> int: ...

    async def subscribe(self, channel: str) -> AsyncIterator[Any]: ...

    async def ping(self) -> bool: ...


class PropagationService:
    """Publishes envelopes and dispatches received ones to local connections."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        bus: Bus,
        resubscribe_initial_delay: Optional[float] = None,
        resubscribe_max_delay: Optional[float] = None,
    ):
        self.registry = registry
        self.bus = bus
        self.resubscribe_initial_delay = (
            resubscribe_initial_delay
            if resubscribe_initial_delay is not None
            else settings.bus_reconnect_initial_delay
        )
        self.resubscribe_max_delay = (
            resubscribe_max_delay
            if resubscribe_max_delay is not None
            else settings.bus_reconnect_max_delay
        )
        self._server: Optional[ConnectionServer] = None
        self._tasks: list[asyncio.Task] = []

    # ── Lifecycle ────────────────────────────────────────────

    @property
    def server(self) -> Optional[ConnectionServer]:
        return self._server

    def attach_server(self, server: ConnectionServer) -> "PropagationService":
        """Inject the process's connection server. Allowed exactly once.

        Must happen before connections are accepted, otherwise EMIT_ALL
        can't reach them.
        """
        if self._server is not None:
            raise RuntimeError("Connection server already attached")
        self._server = server
        return self

    @property
    def running(self) -> bool:
        """True while every channel consumer is alive."""
        return bool(self._tasks) and not any(t.done() for t in self._tasks)

    async def start(self) -> None:
        """Subscribe to every channel and start one consumer per channel."""
        if self._tasks:
            return
        for channel in CHANNELS:
            stream = await self.bus.subscribe(channel)
            self._tasks.append(
                asyncio.create_task(
                    self._consume(channel, stream), name=f"propagator:{channel}"
                )
            )
        logger.info("propagator.started", channels=list(CHANNELS))

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("propagator.stopped")

    async def _consume(self, channel: str, stream: AsyncIterator[Any]) -> None:
        """Consume one channel for as long as the service runs.

        If the stream fails (or ends) the error is logged and the channel is
        re-subscribed with exponential backoff. Anything published in between
        is lost.
        """
        delay = self.resubscribe_initial_delay
        while True:
            try:
                async for payload in stream:
                    delay = self.resubscribe_initial_delay
                    self._handle(channel, payload)
                logger.warning("propagator.stream_ended", channel=channel)
            except Exception:
                logger.exception("propagator.consumer_failed", channel=channel)

            stream = None
            while stream is None:
                logger.info("propagator.resubscribing", channel=channel, retry_in=delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.resubscribe_max_delay)
                try:
                    stream = await self.bus.subscribe(channel)
                except Exception:
                    logger.exception("propagator.resubscribe_failed", channel=channel)

    def _handle(self, channel: str, payload: Any) -> None:
        try:
            envelope = decode_envelope(channel, payload)
        except ValidationError as e:
            logger.warning(
                "propagator.malformed_envelope",
                channel=channel,
                errors=e.error_count(),
            )
            return
        try:
            self.dispatch(envelope)
        except Exception:
            logger.exception("propagator.dispatch_failed", channel=channel)

    # ── Local delivery ───────────────────────────────────────

    def dispatch(self, envelope: Envelope) -> None:
        if isinstance(envelope, SendEnvelope):
            self._consume_send(envelope)
        elif isinstance(envelope, EmitAllEnvelope):
            self._consume_emit_all(envelope)
        elif isinstance(envelope, EmitAuthenticatedEnvelope):
            self._consume_emit_authenticated(envelope)
        else:
            raise TypeError(f"Unknown envelope: {envelope!r}")

    def _consume_send(self, envelope: SendEnvelope) -> None:
        for connection in self.registry.get(envelope.user_id):
            if connection.id == envelope.socket_id:
                continue
            connection.emit(envelope.event, envelope.data)

    def _consume_emit_all(self, envelope: EmitAllEnvelope) -> None:
        if self._server is None:
            logger.warning("propagator.no_server", event=envelope.event)
            return
        self._server.emit(envelope.event, envelope.data)

    def _consume_emit_authenticated(self, envelope: EmitAuthenticatedEnvelope) -> None:
        for connection in self.registry.get_all():
            connection.emit(envelope.event, envelope.data)

    # ── Producer entry points ────────────────────────────────

    async def propagate_event(
        self,
        event: str,
        data: Any,
        user_id: Optional[str],
        socket_id: Optional[str] = None,
    ) -> bool:
        """Send an event to every connection of a user, cluster-wide.

        Returns False (and publishes nothing) when user_id is empty.
        socket_id excludes the sender's own connection.
        """
        if not user_id:
            return False

        envelope = SendEnvelope(
            event=event, data=data, user_id=user_id, socket_id=socket_id
        )
        await self.bus.publish(envelope.channel, envelope.to_wire())
        return True

    async def emit_to_all(self, event: str, data: Any) -> int:
        """Emit to every open connection on every gateway."""
        envelope = EmitAllEnvelope(event=event, data=data)
        return await self.bus.publish(envelope.channel, envelope.to_wire())

    async def emit_to_authenticated(self, event: str, data: Any) -> int:
        """Emit to every authenticated connection on every gateway."""
        envelope = EmitAuthenticatedEnvelope(event=event, data=data)
        return await self.bus.publish(envelope.channel, envelope.to_wire())


def get_propagator(request: Request) -> PropagationService:
    """FastAPI dependency — the app's propagation service."""
    return request.app.state.propagator
