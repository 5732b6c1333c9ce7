# Overview: Websocket endpoint; greets the client and hands the socket to the broadcast hub.

from flask import Blueprint, current_app, request

from ..extensions import sock
from ..realtime import GREETING, Connection, DeliveryError, get_hub, listen

realtime_bp = Blueprint("realtime", __name__)


def ws_endpoint(ws):
    """
    Realtime channel.

    The greeting goes out before the connection is registered, so no
    broadcast can interleave with it. This handler thread then serves as
    the connection's listener until the client goes away.
    """
    hub = get_hub()
    connection = Connection(ws, remote_addr=request.remote_addr or "")
    current_app.logger.info("Client connected from %s", connection.remote_addr)

    try:
        connection.send(GREETING)
    except DeliveryError:
        current_app.logger.exception("Failed to greet websocket client")
        connection.close()
        return

    hub.register(connection)
    listen(connection, hub)


sock.route("/ws", bp=realtime_bp)(ws_endpoint)
