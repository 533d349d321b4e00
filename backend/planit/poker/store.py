from __future__ import annotations

from .models import Room


class RoomStore:
    """In-memory rooms by id. Holds data only; callers decide what is allowed."""

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def create(self, room: Room) -> None:
        if room.id in self._rooms:
            raise ValueError(f"room {room.id!r} already exists")
        self._rooms[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> bool:
        if room_id in self._rooms:
            del self._rooms[room_id]
            return True
        return False

    def all(self) -> list[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
