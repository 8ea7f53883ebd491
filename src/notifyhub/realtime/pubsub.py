"""Redis pub/sub — the backplane between gateway processes.

Redis pub/sub is fire-and-forget. If no gateway is listening, the message
is lost. That's fine for real-time notifications: history lives in the
notification service, clients re-fetch it on reconnect.

Two roles, two connections:
- publisher: PUBLISH only, shared by every producer in the process
- subscriber: one PubSub per channel, read by the PropagationService

A connection in SUBSCRIBE mode can't issue other commands, which is why
the roles never share a client.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Optional

import redis.asyncio as aioredis
import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from notifyhub.config import settings
from notifyhub.errors import BusUnavailable

logger = structlog.get_logger()

_TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisBus:
    """Publish/subscribe client over two independent Redis connections."""

    def __init__(
        self,
        url: Optional[str] = None,
        publisher: Optional[aioredis.Redis] = None,
        subscriber: Optional[aioredis.Redis] = None,
        reconnect_initial_delay: Optional[float] = None,
        reconnect_max_delay: Optional[float] = None,
    ):
        url = url or settings.redis_url
        self.publisher = publisher or aioredis.from_url(
            url, encoding="utf-8", decode_responses=True
        )
        self.subscriber = subscriber or aioredis.from_url(
            url, encoding="utf-8", decode_responses=True
        )
        self.reconnect_initial_delay = (
            reconnect_initial_delay
            if reconnect_initial_delay is not None
            else settings.bus_reconnect_initial_delay
        )
        self.reconnect_max_delay = (
            reconnect_max_delay
            if reconnect_max_delay is not None
            else settings.bus_reconnect_max_delay
        )

    async def connect(self) -> None:
        """Verify both roles can reach Redis."""
        try:
            await self.publisher.ping()
            await self.subscriber.ping()
        except _TRANSPORT_ERRORS as e:
            raise BusUnavailable(f"Redis unreachable: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self.publisher.ping())
        except _TRANSPORT_ERRORS:
            return False

    async def publish(self, channel: str, value: Any) -> int:
        """Serialize and publish. Returns how many subscribers received it.

        No retry — delivery is best-effort and the caller decides.
        """
        payload = json.dumps(value)
        try:
            return await self.publisher.publish(channel, payload)
        except _TRANSPORT_ERRORS as e:
            raise BusUnavailable(f"Publish to {channel} failed: {e}") from e

    async def subscribe(self, channel: str) -> AsyncIterator[Any]:
        """Subscribe now, return an endless stream of decoded payloads.

        SUBSCRIBE is issued before this returns, so nothing published after
        the call is missed. Payloads that aren't valid JSON are logged and
        skipped. If the subscriber connection drops, the stream backs off and
        resumes (redis-py re-subscribes on reconnect); messages published
        while disconnected are lost.
        """
        pubsub = self.subscriber.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(channel)
        except _TRANSPORT_ERRORS as e:
            await pubsub.aclose()
            raise BusUnavailable(f"Subscribe to {channel} failed: {e}") from e
        return self._listen(channel, pubsub)

    async def _listen(self, channel: str, pubsub) -> AsyncIterator[Any]:
        delay = self.reconnect_initial_delay
        try:
            while True:
                try:
                    async for message in pubsub.listen():
                        delay = self.reconnect_initial_delay
                        if message["type"] != "message" or message["channel"] != channel:
                            continue
                        try:
                            payload = json.loads(message["data"])
                        except (TypeError, ValueError) as e:
                            logger.warning(
                                "bus.malformed_message", channel=channel, error=str(e)
                            )
                            continue
                        yield payload
                    # listen() only returns once the pubsub has no subscriptions
                    return
                except _TRANSPORT_ERRORS as e:
                    logger.warning(
                        "bus.subscriber_disconnected",
                        channel=channel,
                        error=str(e),
                        retry_in=delay,
                    )
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self.reconnect_max_delay)
        finally:
            await pubsub.aclose()

    async def close(self) -> None:
        await self.publisher.aclose()
        await self.subscriber.aclose()


# Process-wide bus (initialized in lifespan)
_bus: Optional[RedisBus] = None


async def init_bus() -> RedisBus:
    """Create the process bus and verify Redis is reachable."""
    global _bus
    bus = RedisBus()
    await bus.connect()
    _bus = bus
    return _bus


async def close_bus() -> None:
    global _bus
    if _bus:
        await _bus.close()
        _bus = None


def get_bus() -> RedisBus:
    """Get the process bus (must be initialized first)."""
    if _bus is None:
        raise RuntimeError("Bus not initialized. Call init_bus() first.")
    return _bus
