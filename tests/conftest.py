from __future__ import annotations

import pytest

from planit.poker.service import RoomCoordinator
from planit.server import create_app


class RecordingGateway:
    """Stands in for BroadcastGateway; keeps every emit and channel membership."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, object]] = []
        self.channels: dict[str, set[str]] = {}
        self.closed: list[str] = []

    def to_everyone(self, event, payload):
        self.sent.append(("*", event, payload))

    def to_room(self, room_id, event, payload):
        self.sent.append((room_id, event, payload))

    def to_connection(self, sid, event, payload):
        self.sent.append((sid, event, payload))

    def attach(self, sid, room_id):
        self.channels.setdefault(room_id, set()).add(sid)

    def detach(self, sid, room_id):
        self.channels.get(room_id, set()).discard(sid)

    def close(self, room_id):
        self.channels.pop(room_id, None)
        self.closed.append(room_id)

    def events(self, name: str) -> list[tuple[str, str, object]]:
        return [s for s in self.sent if s[1] == name]

    def clear(self) -> None:
        self.sent.clear()


class ManualTasks:
    """Background tasks that only run when the test says so."""

    def __init__(self) -> None:
        self.tasks = []

    def start(self, fn):
        self.tasks.append(fn)

    def sleep(self, seconds):
        return None

    def run_all(self) -> None:
        tasks, self.tasks = self.tasks, []
        for fn in tasks:
            fn()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def tasks() -> ManualTasks:
    return ManualTasks()


@pytest.fixture
def coordinator(gateway, tasks) -> RoomCoordinator:
    return RoomCoordinator(
        gateway,
        start_background_task=tasks.start,
        sleep=tasks.sleep,
        grace_sec=5,
        room_id_length=9,
        max_room_name_length=64,
        default_voting_scale=["0", "1", "2", "3", "5", "8", "13", "21", "?"],
        enforce_voting_scale=False,
    )


@pytest.fixture
def app_socketio():
    app, socketio = create_app(
        {
            "TESTING": True,
            "SOCKETIO_ASYNC_MODE": "threading",
            "GRACE_PERIOD_SEC": 0.3,
            "TRUST_PROXY_HEADERS": False,
        }
    )
    return app, socketio


@pytest.fixture
def connect(app_socketio):
    app, socketio = app_socketio
    clients = []

    def _connect(username, **kwargs):
        auth = {"username": username} if username is not None else None
        client = socketio.test_client(app, auth=auth, **kwargs)
        clients.append(client)
        return client

    yield _connect

    for client in clients:
        if client.is_connected():
            client.disconnect()
