"""Notification relay — domain notifications → socket events.

The notification service stores a notification, then hands it to the
gateway. The relay turns it into a socket event named "{TYPE}:{post id}"
so a client can route it to the right post view.

By default the event goes to the notification's target user only (SEND).
With broadcast=True it goes out on EMIT_ALL instead, so every open view of
that post (signed in or not) can pick it up by event name.

    COMMENT_* payloads carry the post as "postId"
    POST_*    payloads are the post (like) record, keyed by "id"
"""

from typing import Any

import structlog

from notifyhub.errors import InvalidNotification
from notifyhub.events.types import NotificationType
from notifyhub.realtime.propagator import PropagationService

logger = structlog.get_logger()


def socket_event_name(notification_type: NotificationType, data: dict[str, Any]) -> str:
    """Build the client-facing event name for a notification."""
    key = "postId" if notification_type.is_comment else "id"
    post_id = data.get(key)
    if post_id is None or post_id == "":
        raise InvalidNotification(
            f"{notification_type.value} payload is missing '{key}'"
        )
    return f"{notification_type.value}:{post_id}"


class NotificationRelay:
    """Forwards stored notifications to live connections."""

    def __init__(self, propagator: PropagationService):
        self.propagator = propagator

    async def relay(
        self,
        notification_type: NotificationType,
        target: str,
        data: dict[str, Any],
        broadcast: bool = False,
    ) -> tuple[bool, str]:
        """Relay one notification. Returns (propagated, event name)."""
        event = socket_event_name(notification_type, data)
        if broadcast:
            await self.propagator.emit_to_all(event, data)
            propagated = True
        else:
            propagated = await self.propagator.propagate_event(
                event=event, data=data, user_id=target
            )
        logger.info(
            "notifications.relayed",
            type=notification_type.value,
            topic=notification_type.topic,
            target=target,
            event=event,
            broadcast=broadcast,
            propagated=propagated,
        )
        return propagated, event
