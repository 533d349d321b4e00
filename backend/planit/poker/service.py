from __future__ import annotations

import logging
import secrets
import string
from threading import RLock
from typing import Any, Callable

from ..config import Config
from ..realtime import events
from ..realtime.gateway import BroadcastGateway
from ..utils.clock import now_ms
from .errors import NotAuthorized, RoomNotFound, ValidationError
from .grace import GraceScheduler
from .models import Room
from .presence import PresenceRegistry
from .store import RoomStore

logger = logging.getLogger(__name__)

ROOM_ID_ALPHABET = string.ascii_lowercase + string.digits


def _validate_room_name(raw: Any, max_length: int) -> str:
    if not isinstance(raw, str):
        raise ValidationError("Room name is required")
    name = raw.strip()
    if not name:
        raise ValidationError("Room name is required")
    if len(name) > max_length:
        raise ValidationError(f"Room name must be at most {max_length} characters")
    # Avoid obvious HTML/script injection.
    if "<" in name or ">" in name:
        raise ValidationError("Room name contains invalid characters")
    for ch in name:
        if ord(ch) < 32:
            raise ValidationError("Room name contains invalid characters")
    return name


def _normalize_scale(raw: Any, default: list[str]) -> list[str]:
    if raw is None:
        return list(default)
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("Voting scale must be a list")

    scale: list[str] = []
    for v in raw:
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            raise ValidationError("Voting scale values must be strings or numbers")
        s = str(v).strip()
        if s and s not in scale:
            scale.append(s)

    if not scale:
        raise ValidationError("Voting scale must not be empty")
    return scale


def room_public_state(room: Room) -> dict:
    # Ballot values stay hidden until reveal; only who voted is public.
    if room.revealed:
        votes = [[identity, value] for identity, value in room.votes.items()]
    else:
        votes = [[identity, None] for identity in room.votes]

    return {
        "id": room.id,
        "name": room.name,
        "owner": room.owner,
        "participants": list(room.participants),
        "votingScale": list(room.voting_scale),
        "votes": votes,
        "revealed": room.revealed,
        "createdAtMs": room.created_at_ms,
    }


class RoomCoordinator:
    """Applies room operations and decides who hears about them.

    Every operation runs start to finish, broadcasts included, under one lock.
    The grace timers take the same lock before evicting anyone.
    """

    def __init__(
        self,
        gateway: BroadcastGateway,
        start_background_task: Callable[[Callable[[], None]], object],
        sleep: Callable[[float], object],
        grace_sec: float | None = None,
        room_id_length: int | None = None,
        max_room_name_length: int | None = None,
        default_voting_scale: list[str] | None = None,
        enforce_voting_scale: bool | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = RoomStore()
        self.presence = PresenceRegistry()
        self._lock = RLock()
        self.grace = GraceScheduler(
            self.evict,
            start_background_task=start_background_task,
            sleep=sleep,
            grace_sec=Config.GRACE_PERIOD_SEC if grace_sec is None else grace_sec,
            lock=self._lock,
        )
        self.room_id_length = room_id_length or Config.ROOM_ID_LENGTH
        self.max_room_name_length = max_room_name_length or Config.MAX_ROOM_NAME_LENGTH
        self.default_voting_scale = list(default_voting_scale or Config.DEFAULT_VOTING_SCALE)
        self.enforce_voting_scale = (
            Config.ENFORCE_VOTING_SCALE if enforce_voting_scale is None else enforce_voting_scale
        )

    # -- connections ---------------------------------------------------------

    def connect(self, identity: str, sid: str) -> None:
        with self._lock:
            if self.grace.cancel(identity):
                logger.info("%s reconnected within grace window", identity)
            self.presence.connect(identity, sid)

            for room in self.store.all():
                if identity in room.participants:
                    self.gateway.attach(sid, room.id)

            self.gateway.to_everyone(events.USERS_UPDATE, self.presence.snapshot())
            self.gateway.to_connection(sid, events.ROOMS_UPDATE, self.rooms_payload())

    def disconnect(self, sid: str) -> None:
        with self._lock:
            identity = self.presence.disconnect(sid)
            if identity is None:
                return
            self.grace.schedule_removal(identity)
            logger.info("%s has no live connection left; removal pending", identity)

    def evict(self, identity: str) -> None:
        with self._lock:
            self.presence.remove(identity)
            for room in self.store.all():
                if identity in room.participants:
                    self._remove_participant(room, identity)

            logger.info("Evicted %s after grace window", identity)
            self._broadcast_rooms()
            self.gateway.to_everyone(events.USERS_UPDATE, self.presence.snapshot())

    def identity_for(self, sid: str) -> str | None:
        with self._lock:
            return self.presence.identity_for(sid)

    # -- room operations ---------------------------------------------------

    def create_room(self, identity: str, name: Any, voting_scale: Any = None) -> dict:
        with self._lock:
            room_name = _validate_room_name(name, self.max_room_name_length)
            scale = _normalize_scale(voting_scale, self.default_voting_scale)

            room_id = self._new_room_id()
            while room_id in self.store:
                room_id = self._new_room_id()

            room = Room(
                id=room_id,
                name=room_name,
                owner=identity,
                voting_scale=scale,
                participants=[identity],
                created_at_ms=now_ms(),
            )
            self.store.create(room)
            self._attach_identity(identity, room.id)
            logger.info("Room %s (%s) created by %s", room.id, room.name, identity)

            self._broadcast_rooms()
            return room_public_state(room)

    def join_room(self, identity: str, room_id: str) -> dict:
        with self._lock:
            room = self._get_room(room_id)
            if identity not in room.participants:
                room.participants.append(identity)
                logger.info("%s joined room %s", identity, room.id)
            self._attach_identity(identity, room.id)

            state = room_public_state(room)
            self.gateway.to_room(room.id, events.ROOM_UPDATED, state)
            self._broadcast_rooms()
            return state

    def leave_room(self, identity: str, room_id: str) -> None:
        with self._lock:
            room = self._get_room(room_id)
            for sid in self.presence.connections(identity):
                self.gateway.detach(sid, room.id)
            if identity in room.participants:
                self._remove_participant(room, identity)
                logger.info("%s left room %s", identity, room.id)
            self._broadcast_rooms()

    def submit_vote(self, identity: str, room_id: str, value: Any) -> None:
        with self._lock:
            room = self._get_room(room_id)
            if value is None or isinstance(value, (dict, list)) or not str(value).strip():
                raise ValidationError("Vote value is required")
            if identity not in room.participants:
                raise NotAuthorized("Join the room before voting")

            vote = str(value).strip()
            if self.enforce_voting_scale and vote not in room.voting_scale:
                raise ValidationError("Vote value is not on the room's voting scale")

            room.votes[identity] = vote
            logger.debug("%s voted in room %s", identity, room.id)

            self.gateway.to_room(room.id, events.ROOM_VOTE, {"username": identity, "hasVoted": True})

    def reveal_votes(self, identity: str, room_id: str) -> None:
        with self._lock:
            room = self._get_room(room_id)
            if identity != room.owner:
                raise NotAuthorized("Only room owner can reveal votes")
            if not room.votes:
                raise ValidationError("No votes to reveal")

            room.revealed = True
            logger.info("Votes revealed in room %s", room.id)

            self.gateway.to_room(
                room.id,
                events.ROOM_VOTES,
                {"votes": [[i, v] for i, v in room.votes.items()], "revealed": True},
            )

    def reset_votes(self, identity: str, room_id: str) -> None:
        with self._lock:
            room = self._get_room(room_id)
            if identity != room.owner:
                raise NotAuthorized("Only room owner can reset votes")

            room.votes.clear()
            room.revealed = False
            logger.info("Votes reset in room %s", room.id)

            self.gateway.to_room(room.id, events.ROOM_VOTES, {"votes": [], "revealed": False})

    # -- read-only views -------------------------------------------------------

    def rooms_payload(self) -> list[dict]:
        with self._lock:
            return [room_public_state(r) for r in self.store.all()]

    def room_payload(self, room_id: str) -> dict | None:
        with self._lock:
            room = self.store.get(room_id)
            return room_public_state(room) if room else None

    def users_payload(self) -> list[str]:
        with self._lock:
            return self.presence.snapshot()

    # -- internals ---------------------------------------------------------------

    def _new_room_id(self) -> str:
        return "".join(secrets.choice(ROOM_ID_ALPHABET) for _ in range(self.room_id_length))

    def _get_room(self, room_id: Any) -> Room:
        room = self.store.get(str(room_id or "").strip())
        if room is None:
            raise RoomNotFound()
        return room

    def _attach_identity(self, identity: str, room_id: str) -> None:
        for sid in self.presence.connections(identity):
            self.gateway.attach(sid, room_id)

    def _remove_participant(self, room: Room, identity: str) -> None:
        room.participants = [p for p in room.participants if p != identity]
        room.votes.pop(identity, None)
        if not room.votes:
            room.revealed = False

        if not room.participants:
            self.store.delete(room.id)
            self.gateway.close(room.id)
            logger.info("Deleted empty room %s", room.id)
            return

        self.gateway.to_room(room.id, events.ROOM_UPDATED, room_public_state(room))

    def _broadcast_rooms(self) -> None:
        self.gateway.to_everyone(events.ROOMS_UPDATE, [room_public_state(r) for r in self.store.all()])
