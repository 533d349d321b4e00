import time


def _payloads(client, event):
    return [r["args"][0] for r in client.get_received() if r["name"] == event]


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def _room(app, room_id):
    res = app.test_client().get(f"/api/rooms/{room_id}")
    return res.get_json() if res.status_code == 200 else None


def test_connection_requires_username(connect):
    assert not connect(None).is_connected()
    assert not connect("   ").is_connected()
    assert connect("A").is_connected()


def test_connect_receives_rooms_and_presence(connect):
    a = connect("A")
    assert _payloads(a, "rooms:update") == [[]]

    b = connect("B")
    assert _payloads(a, "users:update") == [["A", "B"]]
    assert _payloads(b, "rooms:update") == [[]]


def test_create_and_join_flow(connect):
    a = connect("A")
    b = connect("B")
    a.get_received()
    b.get_received()

    ack = a.emit("room:create", {"name": "Sprint1", "votingScale": [1, 2, 3, 5, 8]}, callback=True)
    assert ack["success"] is True
    room = ack["room"]
    assert room["owner"] == "A"
    assert room["participants"] == ["A"]
    assert room["revealed"] is False
    assert _payloads(b, "rooms:update")[-1][0]["id"] == room["id"]

    ack = b.emit("room:join", {"roomId": room["id"]}, callback=True)
    assert ack["success"] is True
    assert ack["room"]["participants"] == ["A", "B"]

    a_received = a.get_received()
    updated = [r["args"][0] for r in a_received if r["name"] == "room:updated"]
    rooms = [r["args"][0] for r in a_received if r["name"] == "rooms:update"]
    assert updated[-1]["participants"] == ["A", "B"]
    assert len(rooms[-1]) == 1
    assert rooms[-1][0]["participants"] == ["A", "B"]


def test_create_rejects_bad_payload(connect):
    a = connect("A")
    a.get_received()

    ack = a.emit("room:create", {"name": "", "votingScale": [1]}, callback=True)

    assert "error" in ack
    assert _payloads(a, "rooms:update") == []


def test_vote_reveal_scenario(connect):
    a = connect("A")
    b = connect("B")
    observer = connect("C")
    room = a.emit("room:create", {"name": "Sprint1", "votingScale": [1, 2, 3, 5, 8]}, callback=True)["room"]
    b.emit("room:join", {"roomId": room["id"]}, callback=True)
    for client in (a, b, observer):
        client.get_received()

    assert a.emit("vote:submit", {"roomId": room["id"], "value": 3}, callback=True) == {"success": True}
    assert b.emit("vote:submit", {"roomId": room["id"], "value": 5}, callback=True) == {"success": True}

    votes = _payloads(b, "room:vote")
    assert votes == [{"username": "A", "hasVoted": True}, {"username": "B", "hasVoted": True}]
    # Not in the room, so no room broadcasts.
    assert observer.get_received() == []

    assert a.emit("vote:reveal", {"roomId": room["id"]}, callback=True) == {"success": True}
    revealed = _payloads(b, "room:votes")
    assert revealed == [{"votes": [["A", "3"], ["B", "5"]], "revealed": True}]


def test_non_owner_reset_is_rejected(connect, app_socketio):
    app, _ = app_socketio
    a = connect("A")
    b = connect("B")
    room = a.emit("room:create", {"name": "Sprint1", "votingScale": [1, 2, 3]}, callback=True)["room"]
    b.emit("room:join", {"roomId": room["id"]}, callback=True)
    b.emit("vote:submit", {"roomId": room["id"], "value": 2}, callback=True)
    a.get_received()

    ack = b.emit("vote:reset", {"roomId": room["id"]}, callback=True)

    assert ack == {"error": "Only room owner can reset votes"}
    assert _payloads(a, "room:votes") == []
    assert _room(app, room["id"])["votes"] == [["B", None]]


def test_missing_room(connect):
    a = connect("A")

    assert a.emit("room:join", {"roomId": "nope"}, callback=True) == {"error": "Room not found"}
    assert a.emit("vote:reveal", {}, callback=True) == {"error": "Room not found"}


def test_leave_deletes_empty_room(connect, app_socketio):
    app, _ = app_socketio
    a = connect("A")
    room = a.emit("room:create", {"name": "Sprint1"}, callback=True)["room"]
    a.get_received()

    assert a.emit("room:leave", {"roomId": room["id"]}, callback=True) == {"success": True}

    assert _payloads(a, "rooms:update") == [[]]
    assert _room(app, room["id"]) is None


def test_reconnect_within_grace_keeps_seat(connect, app_socketio):
    app, _ = app_socketio
    a = connect("A")
    b = connect("B")
    room = a.emit("room:create", {"name": "Sprint1"}, callback=True)["room"]
    b.emit("room:join", {"roomId": room["id"]}, callback=True)
    b.emit("vote:submit", {"roomId": room["id"], "value": 5}, callback=True)

    b.disconnect()
    b2 = connect("B")
    time.sleep(0.6)

    state = _room(app, room["id"])
    assert state["participants"] == ["A", "B"]
    assert state["votes"] == [["B", None]]

    # The new socket is back on the room channel.
    b2.get_received()
    a.emit("vote:submit", {"roomId": room["id"], "value": 3}, callback=True)
    assert _payloads(b2, "room:vote") == [{"username": "A", "hasVoted": True}]


def test_grace_expiry_evicts(connect, app_socketio):
    app, _ = app_socketio
    a = connect("A")
    b = connect("B")
    room = a.emit("room:create", {"name": "Sprint1"}, callback=True)["room"]
    b.emit("room:join", {"roomId": room["id"]}, callback=True)
    b.emit("vote:submit", {"roomId": room["id"], "value": 5}, callback=True)

    b.disconnect()

    assert _wait_for(lambda: _room(app, room["id"])["participants"] == ["A"])
    assert _room(app, room["id"])["votes"] == []
    assert _wait_for(lambda: app.test_client().get("/api/users").get_json()["users"] == ["A"])


def test_grace_expiry_deletes_room_owner_left(connect, app_socketio):
    app, _ = app_socketio
    a = connect("A")
    b = connect("B")
    room = a.emit("room:create", {"name": "Sprint1"}, callback=True)["room"]
    b.emit("room:join", {"roomId": room["id"]}, callback=True)
    a.emit("room:leave", {"roomId": room["id"]}, callback=True)

    b.disconnect()

    assert _wait_for(lambda: _room(app, room["id"]) is None)


def test_internal_fault_is_acked_not_fatal(connect, app_socketio, monkeypatch):
    app, _ = app_socketio
    coordinator = app.extensions["planit"]
    a = connect("A")

    def _boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(coordinator, "create_room", _boom)

    assert a.emit("room:create", {"name": "Sprint1"}, callback=True) == {"error": "Internal server error"}
    assert a.is_connected()
