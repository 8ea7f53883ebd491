"""notifyhub — real-time notification gateway.

Fans out platform notifications to live WebSocket connections across
horizontally-scaled gateway instances, using Redis pub/sub as the backplane.
"""

__version__ = "0.1.0"
