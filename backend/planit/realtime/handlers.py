from __future__ import annotations

import logging
from typing import Any, Callable

from flask import current_app, request
from flask_socketio import SocketIO

from ..poker.errors import RoomError
from ..poker.service import RoomCoordinator
from ..utils.ip import get_client_ip
from . import events

logger = logging.getLogger(__name__)


def _username_from_auth(auth: Any) -> str:
    if not isinstance(auth, dict):
        return ""
    username = auth.get("username")
    if not isinstance(username, str):
        return ""
    return username.strip()


def _room_id(payload: dict) -> str:
    return str(payload.get("roomId", "") or "").strip()


def register_socketio_handlers(socketio: SocketIO, coordinator: RoomCoordinator) -> None:
    def _acked(event: str, action: Callable[[str, dict], dict | None], data: Any) -> dict:
        payload = data if isinstance(data, dict) else {}
        identity = coordinator.identity_for(request.sid)
        if identity is None:
            return {"error": "Not connected"}

        try:
            result = action(identity, payload)
        except RoomError as exc:
            logger.info("%s from %s rejected: %s", event, identity, exc)
            return {"error": str(exc)}
        except Exception:
            logger.exception("Error handling %s from %s", event, identity)
            return {"error": "Internal server error"}

        ack = {"success": True}
        if result:
            ack.update(result)
        return ack

    @socketio.on("connect")
    def on_connect(auth=None):
        username = _username_from_auth(auth)
        if not username:
            raise ConnectionRefusedError("Username required")

        client_ip = get_client_ip(request, trust_headers=current_app.config.get("TRUST_PROXY_HEADERS", False))
        logger.info("Client connected: %s (%s) from %s", username, request.sid, client_ip)
        coordinator.connect(username, request.sid)

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.info("Client disconnected: %s (%s)", coordinator.identity_for(request.sid), request.sid)
        coordinator.disconnect(request.sid)

    @socketio.on(events.ROOM_CREATE)
    def room_create(data=None):
        def _create(identity: str, payload: dict) -> dict:
            room = coordinator.create_room(identity, payload.get("name"), payload.get("votingScale"))
            return {"room": room}

        return _acked(events.ROOM_CREATE, _create, data)

    @socketio.on(events.ROOM_JOIN)
    def room_join(data=None):
        def _join(identity: str, payload: dict) -> dict:
            return {"room": coordinator.join_room(identity, _room_id(payload))}

        return _acked(events.ROOM_JOIN, _join, data)

    @socketio.on(events.ROOM_LEAVE)
    def room_leave(data=None):
        def _leave(identity: str, payload: dict) -> None:
            coordinator.leave_room(identity, _room_id(payload))

        return _acked(events.ROOM_LEAVE, _leave, data)

    @socketio.on(events.VOTE_SUBMIT)
    def vote_submit(data=None):
        def _submit(identity: str, payload: dict) -> None:
            coordinator.submit_vote(identity, _room_id(payload), payload.get("value"))

        return _acked(events.VOTE_SUBMIT, _submit, data)

    @socketio.on(events.VOTE_REVEAL)
    def vote_reveal(data=None):
        def _reveal(identity: str, payload: dict) -> None:
            coordinator.reveal_votes(identity, _room_id(payload))

        return _acked(events.VOTE_REVEAL, _reveal, data)

    @socketio.on(events.VOTE_RESET)
    def vote_reset(data=None):
        def _reset(identity: str, payload: dict) -> None:
            coordinator.reset_votes(identity, _room_id(payload))

        return _acked(events.VOTE_RESET, _reset, data)
