"""Exception hierarchy for the gateway."""


class NotifyHubError(Exception):
    """Base class for gateway errors."""


class BusUnavailable(NotifyHubError):
    """Raised when the pub/sub backplane cannot be reached."""


class HandshakeRejected(NotifyHubError):
    """Raised when a connection attempt carries a credential that fails validation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidNotification(NotifyHubError):
    """Raised when a domain notification cannot be mapped to a socket event."""
