"""
Connection registry.

Maps connection ids to their state. Not locked: the broadcast hub's
dispatcher is the only code that mutates or iterates it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .connection import Connection


@dataclass
class ConnectionState:
    connection: Connection
    # Set once the client identifies itself; empty until then
    username: str = ""


class ConnectionRegistry:
    def __init__(self):
        self._entries: dict[int, ConnectionState] = {}

    def register(self, connection: Connection) -> ConnectionState:
        state = ConnectionState(connection=connection)
        self._entries[connection.id] = state
        return state

    def unregister(self, connection: Connection) -> bool:
        """Remove a connection. Returns False if it was not registered."""
        return self._entries.pop(connection.id, None) is not None

    def get(self, connection: Connection) -> ConnectionState | None:
        return self._entries.get(connection.id)

    def __contains__(self, connection: Connection) -> bool:
        return connection.id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConnectionState]:
        """
        Lazily yield live entries.

        Entries removed while iterating are skipped; entries added while
        iterating are not visited.
        """
        for connection_id in list(self._entries):
            state = self._entries.get(connection_id)
            if state is not None:
                yield state
