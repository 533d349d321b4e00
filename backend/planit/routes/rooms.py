from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..poker.service import RoomCoordinator

bp = Blueprint("rooms", __name__)


def _coordinator() -> RoomCoordinator:
    return current_app.extensions["planit"]


# Read-only views; rooms are only created and changed over Socket.IO.
@bp.get("/rooms")
def list_rooms():
    return jsonify({"rooms": _coordinator().rooms_payload()})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    room = _coordinator().room_payload(room_id)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(room)


@bp.get("/users")
def list_users():
    return jsonify({"users": _coordinator().users_payload()})
