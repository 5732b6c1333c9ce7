"""
Broadcast hub.

All realtime state changes go through one FIFO inbox consumed by one
dispatcher thread:

    listener threads --(register/event/unregister)--> inbox --> dispatcher
                                                                 |-- registry
                                                                 '-- broadcast sends

Because the dispatcher alone touches the registry and alone writes to
registered connections, there is no concurrent map mutation during
iteration and no interleaved writes on a socket.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

from .connection import Connection, ConnectionClosedError, DeliveryError
from .messages import InboundEvent, MessageDecodeError, OutboundEvent, build_logout_message
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

ACTION_DELETE_USER = "deleteUser"

_REGISTER = "register"
_UNREGISTER = "unregister"
_EVENT = "event"
_STOP = "stop"


class BroadcastHub:
    """Owns the connection registry and the dispatch inbox."""

    def __init__(self, registry: ConnectionRegistry | None = None, maxsize: int = 0):
        self.registry = registry if registry is not None else ConnectionRegistry()
        self._inbox: queue.Queue = queue.Queue(maxsize)
        self._thread: threading.Thread | None = None
        self._handlers: dict[str, Callable[[InboundEvent], None]] = {
            ACTION_DELETE_USER: self._handle_delete_user,
        }

    # ------------------------------------------------------------------
    # Commands (safe from any thread)
    # ------------------------------------------------------------------

    def register(self, connection: Connection) -> None:
        self._inbox.put((_REGISTER, connection))

    def unregister(self, connection: Connection) -> None:
        self._inbox.put((_UNREGISTER, connection))

    def submit(self, event: InboundEvent) -> None:
        self._inbox.put((_EVENT, event))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name="broadcast-hub", daemon=True)
        self._thread.start()
        logger.info("Broadcast hub started")

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Drain everything queued so far, then close remaining connections.

        Works whether or not the dispatcher thread was started.
        """
        if self.running:
            self._inbox.put((_STOP, None))
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Broadcast hub did not stop within %ss", timeout)
                return
            self._thread = None
        else:
            self.process_pending()
            self._close_all()
        logger.info("Broadcast hub stopped")

    def wait_idle(self) -> None:
        """Block until every queued command has been handled."""
        self._inbox.join()

    def process_pending(self) -> int:
        """
        Handle queued commands on the calling thread until the inbox is empty.

        For use when the dispatcher thread is not running. Returns the number
        of commands handled.
        """
        handled = 0
        while True:
            try:
                kind, payload = self._inbox.get_nowait()
            except queue.Empty:
                return handled
            try:
                if kind != _STOP:
                    self._handle(kind, payload)
                handled += 1
            finally:
                self._inbox.task_done()

    def _run(self) -> None:
        while True:
            kind, payload = self._inbox.get()
            try:
                if kind == _STOP:
                    break
                try:
                    self._handle(kind, payload)
                except Exception:
                    # The dispatcher must outlive any single bad command
                    logger.exception("Broadcast hub failed to handle %s command", kind)
            finally:
                self._inbox.task_done()
        self._close_all()

    def _handle(self, kind: str, payload) -> None:
        if kind == _REGISTER:
            self.registry.register(payload)
            logger.debug("Registered %r (%d connected)", payload, len(self.registry))
        elif kind == _UNREGISTER:
            if self.registry.unregister(payload):
                logger.debug("Unregistered %r (%d connected)", payload, len(self.registry))
        elif kind == _EVENT:
            self.dispatch(payload)
        else:
            raise ValueError(f"Unknown hub command: {kind}")

    def _close_all(self) -> None:
        for state in self.registry:
            state.connection.close()
            self.registry.unregister(state.connection)

    # ------------------------------------------------------------------
    # Business logic (dispatcher thread only)
    # ------------------------------------------------------------------

    def dispatch(self, event: InboundEvent) -> None:
        handler = self._handlers.get(event.action)
        if handler is None:
            logger.debug("Dropping websocket event with unhandled action %r", event.action)
            return
        handler(event)

    def _handle_delete_user(self, event: InboundEvent) -> None:
        self.broadcast(build_logout_message(event.user_id))

    def broadcast(self, event: OutboundEvent) -> int:
        """
        Send event to every registered connection.

        A connection that fails is closed and unregistered in this same pass;
        delivery to the rest continues. Returns the number of successful sends.
        """
        delivered = 0
        for state in self.registry:
            connection = state.connection
            try:
                connection.send(event)
            except DeliveryError as exc:
                logger.warning("Websocket error on %s: %s", event.action, exc)
                connection.close()
                self.registry.unregister(connection)
                continue
            delivered += 1
        return delivered


def listen(connection: Connection, hub: BroadcastHub) -> None:
    """
    Per-connection read loop: receive, decode, forward to the hub.

    Ends on transport closure or the first malformed frame, and always
    unregisters the connection on the way out.
    """
    try:
        while True:
            try:
                event = InboundEvent.from_json(connection.receive())
            except ConnectionClosedError:
                logger.info("Client %s disconnected", connection.remote_addr or connection.id)
                break
            except MessageDecodeError as exc:
                logger.debug("Closing %r after malformed event: %s", connection, exc)
                break
            hub.submit(event)
    finally:
        hub.unregister(connection)
