"""
WebSocket message formats.

Inbound (client -> server):
    {"action": str, "message": str, "username": str,
     "message_type": str, "user_id": int}

Outbound (server -> client):
    {"action": str, "message": str, "user_id": int}

Missing inbound fields take their empty value; present fields must have
the right type.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any


class MessageDecodeError(ValueError):
    """Inbound frame is not a well-formed event object."""


_INBOUND_FIELDS = {
    "action": str,
    "message": str,
    "username": str,
    "message_type": str,
    "user_id": int,
}


@dataclass(frozen=True)
class InboundEvent:
    action: str = ""
    message: str = ""
    username: str = ""
    message_type: str = ""
    user_id: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> "InboundEvent":
        if not isinstance(data, dict):
            raise MessageDecodeError("Event must be a JSON object")

        values = {}
        for name, expected in _INBOUND_FIELDS.items():
            value = data.get(name)
            if value is None:
                continue
            # bool is an int subclass; reject it for user_id
            if not isinstance(value, expected) or isinstance(value, bool):
                raise MessageDecodeError(f"{name} must be of type {expected.__name__}")
            values[name] = value
        return cls(**values)

    @classmethod
    def from_json(cls, text: str | bytes) -> "InboundEvent":
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MessageDecodeError(f"Invalid JSON: {exc}") from exc
        return cls.from_dict(data)


@dataclass(frozen=True)
class OutboundEvent:
    action: str
    message: str
    user_id: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


# Sent once, right after the handshake
GREETING = OutboundEvent(action="", message="Connected to server", user_id=0)

LOGOUT_MESSAGE = "Your account has been deleted"


def build_logout_message(user_id: int) -> OutboundEvent:
    return OutboundEvent(action="logout", message=LOGOUT_MESSAGE, user_id=user_id)
