"""
Transport adapter around a flask-sock websocket.

Normalizes the transport's failures into two exceptions the hub and the
listener can reason about:
- ConnectionClosedError: reading failed, the peer is gone
- DeliveryError: writing failed
"""

from __future__ import annotations

import itertools
import logging
import threading

from simple_websocket import ConnectionClosed

from .messages import OutboundEvent

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)
_connection_ids_lock = threading.Lock()


def _next_connection_id() -> int:
    with _connection_ids_lock:
        return next(_connection_ids)


class ConnectionClosedError(Exception):
    """The peer closed the connection or the transport broke while reading."""


class DeliveryError(Exception):
    """A message could not be written to the connection."""


class Connection:
    """
    One live websocket client.

    id is unique for the process lifetime and never reused, so it can key
    the registry safely after the socket itself is gone.
    """

    def __init__(self, transport, remote_addr: str = ""):
        self.id = _next_connection_id()
        self.transport = transport
        self.remote_addr = remote_addr
        self.closed = False

    def __repr__(self) -> str:
        return f"<Connection {self.id} {self.remote_addr or '?'}>"

    def send(self, event: OutboundEvent) -> None:
        if self.closed:
            raise DeliveryError(f"{self!r} is closed")
        try:
            self.transport.send(event.to_json())
        except (ConnectionClosed, OSError) as exc:
            raise DeliveryError(f"Send to {self!r} failed: {exc}") from exc

    def receive(self) -> str | bytes:
        """Block until a frame arrives."""
        try:
            data = self.transport.receive()
        except (ConnectionClosed, OSError) as exc:
            raise ConnectionClosedError(str(exc)) from exc
        if data is None:
            raise ConnectionClosedError("Transport returned no data")
        return data

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.transport.close()
        except (ConnectionClosed, OSError):
            logger.debug("Close of %r failed; already gone", self)
