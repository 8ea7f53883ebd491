"""Notification type constants.

Centralizing the domain topics here prevents typos and makes it easy to
see every notification the gateway can relay. Topic names are the ones
the core API publishes on; the enum values are what clients see in the
socket event name ("POST_LIKE:42").
"""

from enum import Enum


class NotificationType(str, Enum):
    COMMENT_CREATE = "COMMENT_CREATE"
    COMMENT_LIKE = "COMMENT_LIKE"
    COMMENT_UNLIKE = "COMMENT_UNLIKE"
    POST_LIKE = "POST_LIKE"
    POST_UNLIKE = "POST_UNLIKE"

    @property
    def topic(self) -> str:
        return TOPICS[self]

    @property
    def is_comment(self) -> bool:
        return self.name.startswith("COMMENT_")


TOPICS = {
    NotificationType.COMMENT_CREATE: "comment.create",
    NotificationType.COMMENT_LIKE: "comment.like",
    NotificationType.COMMENT_UNLIKE: "comment.unlike",
    NotificationType.POST_LIKE: "post.like",
    NotificationType.POST_UNLIKE: "post.unlike",
}

# Socket event fired back at the client when it pings
PONG = "pong"

# First frame on every accepted connection; carries the connection id a
# client passes as socketId to exclude itself from its own sends
CONNECTED = "connected"
