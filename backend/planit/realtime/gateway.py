from __future__ import annotations

import logging
from typing import Any

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)


class BroadcastGateway:
    """Addressing on top of Flask-SocketIO: every connection, or one room's channel.

    Usable with or without a request context, so the grace timer can emit too.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/") -> None:
        self.socketio = socketio
        self.namespace = namespace

    def to_everyone(self, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, namespace=self.namespace)

    def to_room(self, room_id: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=room_id, namespace=self.namespace)

    def to_connection(self, sid: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def attach(self, sid: str, room_id: str) -> None:
        self.socketio.server.enter_room(sid, room_id, namespace=self.namespace)

    def detach(self, sid: str, room_id: str) -> None:
        self.socketio.server.leave_room(sid, room_id, namespace=self.namespace)

    def close(self, room_id: str) -> None:
        self.socketio.close_room(room_id, namespace=self.namespace)
        logger.debug("Closed channel %s", room_id)
