"""HTTP routes: request/response shapes and error status mapping."""


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "turingchat", "sessions": 0, "waiting": 0, "users": 0}


def test_bot_chat_round_trip(client):
    resp = client.post("/session/join", json={"user_id": "alice", "session_id": "room1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["status"] == "joined"
    assert body["message"] == "Joined session room1"
    assert len(body["participants"]) == 2

    resp = client.post("/message/send", json={"user_id": "alice", "message": "hi"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Message sent successfully"}

    assert client.get("/messages/pending/alice").json() == {"count": 1}

    messages = client.get("/receive/alice").json()["messages"]
    assert len(messages) == 1
    assert messages[0]["message"] == "reply 1"
    assert messages[0]["sender_id"].startswith("bot_")
    assert "is_automated" not in messages[0]
    assert messages[0]["timestamp"]

    assert client.get("/receive/alice").json() == {"messages": []}


def test_human_pairing_and_answer(client):
    waiting = client.post("/session/join", json={"user_id": "bob", "session_id": "human-room"}).json()
    assert waiting["status"] == "waiting"

    resp = client.post("/message/send", json={"user_id": "bob", "message": "hello?"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "failed_precondition"

    joined = client.post("/session/join", json={"user_id": "carol", "session_id": "human-room"}).json()
    assert joined["status"] == "joined"
    assert joined["participants"] == ["bob", "carol"]

    info = client.get("/session/carol").json()
    assert info == {"session_id": "human-room", "participants": ["bob", "carol"], "message_count": 0, "kind": "human"}

    client.post("/message/send", json={"user_id": "bob", "message": "hey carol"})
    received = client.get("/receive/carol").json()["messages"]
    assert [m["message"] for m in received] == ["hey carol"]

    resp = client.post("/session/answer", json={"user_id": "carol", "guess": "ai"})
    assert resp.status_code == 200
    assert resp.json() == {"correct": False, "actual": "human"}

    assert client.get("/session/carol").status_code == 404
    assert client.get("/session/bob").json()["participants"] == ["bob"]


def test_already_in(client):
    client.post("/session/join", json={"user_id": "bob", "session_id": "human-room"})
    body = client.post("/session/join", json={"user_id": "bob", "session_id": "human-room"}).json()
    assert body["status"] == "already_in"
    assert body["message"] == "Already in session"


def test_full_session_is_conflict(client):
    client.post("/session/join", json={"user_id": "alice", "session_id": "room1"})
    resp = client.post("/session/join", json={"user_id": "bob", "session_id": "room1"})
    assert resp.status_code == 409
    assert resp.json() == {"success": False, "code": "resource_exhausted", "message": "Session room1 is full"}


def test_not_found_errors(client):
    assert client.post("/session/leave", json={"user_id": "ghost"}).status_code == 404
    assert client.get("/session/ghost").status_code == 404
    assert client.post("/message/send", json={"user_id": "ghost", "message": "hi"}).status_code == 404
    assert client.post("/session/answer", json={"user_id": "ghost", "guess": "human"}).status_code == 404


def test_no_session_reads_are_not_errors(client):
    assert client.get("/receive/ghost").json() == {"messages": []}
    assert client.get("/messages/pending/ghost").json() == {"count": 0}


def test_invalid_input(client):
    client.post("/session/join", json={"user_id": "alice", "session_id": "room1"})

    resp = client.post("/message/send", json={"user_id": "alice", "message": ""})
    assert resp.status_code == 422
    assert resp.json()["code"] == "invalid_argument"

    resp = client.post("/session/answer", json={"user_id": "alice", "guess": "robot"})
    assert resp.status_code == 422

    resp = client.post("/session/join", json={"user_id": "bot_1", "session_id": "room9"})
    assert resp.status_code == 422


def test_leave(client):
    client.post("/session/join", json={"user_id": "alice", "session_id": "room1"})
    resp = client.post("/session/leave", json={"user_id": "alice"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Left session successfully"}
    assert client.get("/health").json()["sessions"] == 0


def test_missing_session_record_is_internal(client, registry):
    client.post("/session/join", json={"user_id": "alice", "session_id": "room1"})
    del registry._sessions["room1"]

    resp = client.post("/message/send", json={"user_id": "alice", "message": "hi"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "internal"

    assert client.get("/session/alice").status_code == 404
