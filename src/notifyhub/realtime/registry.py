"""Per-process registry of authenticated connections.

Maps user id → the live connections that user holds on THIS process.
The union of every gateway's registry is the global picture; nothing
here is shared across processes.

All mutation happens on the event loop thread (adapter callbacks),
so no locking is needed.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from notifyhub.realtime.connection import Connection


class ConnectionRegistry:
    """user_id → connections, with empty entries pruned immediately."""

    def __init__(self) -> None:
        self._connections: dict[str, list["Connection"]] = {}

    def add(self, user_id: str, connection: "Connection") -> None:
        """Add a connection to the user's pool.

        Duplicate adds accumulate — callers must register a handle once.
        """
        self._connections.setdefault(user_id, []).append(connection)

    def remove(self, user_id: str, connection: "Connection") -> None:
        """Remove a connection from the user's pool (no-op if absent)."""
        existing = self._connections.get(user_id)
        if existing is None:
            return

        remaining = [c for c in existing if c.id != connection.id]
        if remaining:
            self._connections[user_id] = remaining
        else:
            del self._connections[user_id]

    def get(self, user_id: str) -> tuple["Connection", ...]:
        """Snapshot of a user's connections (empty if none)."""
        return tuple(self._connections.get(user_id, ()))

    def get_all(self) -> tuple["Connection", ...]:
        """Snapshot of every authenticated connection on this process."""
        return tuple(c for pool in self._connections.values() for c in pool)

    def user_ids(self) -> tuple[str, ...]:
        return tuple(self._connections)

    def connection_count(self) -> int:
        return sum(len(pool) for pool in self._connections.values())

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
