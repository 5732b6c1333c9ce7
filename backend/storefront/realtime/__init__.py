# Overview: Realtime notification package; websocket connections, registry and broadcast hub.

from flask import current_app

from .connection import Connection, ConnectionClosedError, DeliveryError
from .hub import BroadcastHub, listen
from .messages import InboundEvent, OutboundEvent, MessageDecodeError, GREETING
from .registry import ConnectionRegistry, ConnectionState

HUB_EXTENSION_KEY = "broadcast_hub"


def get_hub() -> BroadcastHub:
    """The hub owned by the current application."""
    return current_app.extensions[HUB_EXTENSION_KEY]


__all__ = [
    'Connection', 'ConnectionClosedError', 'DeliveryError',
    'BroadcastHub', 'listen',
    'InboundEvent', 'OutboundEvent', 'MessageDecodeError', 'GREETING',
    'ConnectionRegistry', 'ConnectionState',
    'get_hub', 'HUB_EXTENSION_KEY',
]
