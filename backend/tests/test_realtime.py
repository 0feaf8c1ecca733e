from __future__ import annotations

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from greythr.domains.chat import service as chat_service
from greythr.models import Message
from greythr.realtime import router as realtime_router


def connect(client, account):
    return client.websocket_connect(f"/ws?token={account.token}")


def send(ws, event, data=None):
    ws.send_json({"event": event, "data": data})


def expect(ws, event):
    frame = ws.receive_json()
    assert frame["event"] == event, frame
    return frame["data"]


def join(ws, chat_id):
    send(ws, "join_chat", {"chatId": chat_id})
    return expect(ws, "chat_joined")


@pytest.fixture
def chat_id(client, employee, colleague):
    response = client.post("/api/chat", json={"participantIds": [colleague.user_id]}, headers=employee.headers)
    return response.json()["id"]


def test_message_reaches_other_participant(client, db, employee, colleague, chat_id):
    with connect(client, employee) as a, connect(client, colleague) as b:
        assert expect(a, "connected")["userId"] == employee.user_id
        expect(b, "connected")
        join(a, chat_id)
        join(b, chat_id)

        send(a, "send_message", {"chatId": chat_id, "content": "hi"})

        received = expect(b, "new_message")
        assert received["message"]["content"] == "hi"
        assert received["message"]["sender"] == employee.user_id
        assert received["chat"]["lastMessage"]["content"] == "hi"
        echoed = expect(a, "new_message")
        assert echoed["message"]["id"] == received["message"]["id"]

    assert db.query(Message).filter(Message.chat_id == chat_id).count() == 1


def test_missing_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws"):
            pass

    assert excinfo.value.code == 1008


def test_bad_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/ws?token=garbage"):
            pass

    assert excinfo.value.code == 1008


def test_bearer_header_accepted(client, employee):
    with client.websocket_connect("/ws", headers=employee.headers) as ws:
        assert expect(ws, "connected")["userId"] == employee.user_id


def test_outsider_cannot_join(client, hr, chat_id):
    with connect(client, hr) as ws:
        expect(ws, "connected")
        send(ws, "join_chat", {"chatId": chat_id})

        error = expect(ws, "error")

    assert error == {"event": "join_chat", "message": "Access denied to this chat"}


def test_outsider_cannot_send(client, db, hr, chat_id):
    with connect(client, hr) as ws:
        expect(ws, "connected")
        send(ws, "send_message", {"chatId": chat_id, "content": "let me in"})

        assert expect(ws, "error")["message"] == "Access denied to this chat"

    assert db.query(Message).count() == 0


def test_typing_is_relayed_to_others_only(client, employee, colleague, chat_id):
    with connect(client, employee) as a, connect(client, colleague) as b:
        expect(a, "connected")
        expect(b, "connected")
        join(a, chat_id)
        join(b, chat_id)

        send(a, "typing_start", {"chatId": chat_id})
        typing = expect(b, "user_typing")
        send(a, "typing_stop", {"chatId": chat_id})
        stopped = expect(b, "user_stop_typing")

        # the sender gets nothing back, so its next frame is the reply to this ping
        send(a, "join_chat", {"chatId": chat_id})
        expect(a, "chat_joined")

    assert typing == {"userId": employee.user_id, "userName": employee.name, "chatId": chat_id}
    assert stopped == {"userId": employee.user_id, "chatId": chat_id}


def test_mark_read_over_socket(client, db, employee, colleague, chat_id):
    client.post(f"/api/chat/{chat_id}/messages", json={"content": "ping"}, headers=employee.headers)

    with connect(client, employee) as a, connect(client, colleague) as b:
        expect(a, "connected")
        expect(b, "connected")
        join(a, chat_id)
        join(b, chat_id)

        send(b, "mark_messages_read", {"chatId": chat_id})

        assert expect(a, "messages_read") == {"userId": colleague.user_id, "chatId": chat_id}

    assert db.query(Message).one().is_read is True


def test_left_room_stops_delivery(client, employee, colleague, chat_id):
    with connect(client, employee) as a, connect(client, colleague) as b:
        expect(a, "connected")
        expect(b, "connected")
        join(a, chat_id)
        join(b, chat_id)
        send(b, "leave_chat", {"chatId": chat_id})
        expect(b, "chat_left")

        send(a, "send_message", {"chatId": chat_id, "content": "anyone?"})
        expect(a, "new_message")

        send(b, "update_status", {"status": "away"})
        assert expect(a, "user_status_update") == {"userId": colleague.user_id, "status": "away"}


def test_malformed_and_unknown_frames(client, employee):
    with connect(client, employee) as ws:
        expect(ws, "connected")

        ws.send_text("{not json")
        assert expect(ws, "error")["message"] == "Malformed frame"

        send(ws, "dance")
        assert expect(ws, "error") == {"event": "dance", "message": "Unknown event dance"}

        send(ws, "join_chat", {})
        assert expect(ws, "error")["message"] == "chatId is required"


def test_rest_message_is_relayed_to_room(client, employee, colleague, chat_id):
    with connect(client, colleague) as b:
        expect(b, "connected")
        join(b, chat_id)

        client.post(f"/api/chat/{chat_id}/messages", json={"content": "from rest"}, headers=employee.headers)

        assert expect(b, "new_message")["message"]["content"] == "from rest"


def test_leave_application_pushes_notification(client, hr, employee):
    with connect(client, hr) as ws:
        expect(ws, "connected")

        client.post(
            "/api/leave",
            json={"type": "sick", "startDate": "2025-05-05", "endDate": "2025-05-06", "reason": "flu"},
            headers=employee.headers,
        )

        note = expect(ws, "new_notification")

    assert note["title"] == "New Leave Application"
    assert note["userId"] == hr.user_id
    assert note["isRead"] is False


def test_announcement_is_broadcast(client, hr, employee):
    with connect(client, employee) as ws:
        expect(ws, "connected")

        client.post(
            "/api/announcement",
            json={"title": "Town hall", "content": "Friday at 4pm"},
            headers=hr.headers,
        )

        assert expect(ws, "new_notification")["title"] == "New Announcement: Town hall"
        assert expect(ws, "new_announcement")["title"] == "Town hall"


def test_disconnect_broadcasts_offline(client, employee, colleague):
    with connect(client, employee) as a:
        expect(a, "connected")
        with connect(client, colleague) as b:
            expect(b, "connected")

        assert expect(a, "user_status_update") == {"userId": colleague.user_id, "status": "offline"}


def test_concurrent_senders_share_one_order(client, employee, colleague, chat_id):
    rounds = 5
    with connect(client, employee) as a, connect(client, colleague) as b:
        expect(a, "connected")
        expect(b, "connected")
        join(a, chat_id)
        join(b, chat_id)

        for n in range(rounds):
            send(a, "send_message", {"chatId": chat_id, "content": f"a{n}"})
            send(b, "send_message", {"chatId": chat_id, "content": f"b{n}"})

        seen_a = [expect(a, "new_message")["message"] for _ in range(2 * rounds)]
        seen_b = [expect(b, "new_message")["message"] for _ in range(2 * rounds)]

    ids = [m["id"] for m in seen_a]
    assert len(set(ids)) == 2 * rounds
    assert ids == sorted(ids)
    assert [m["id"] for m in seen_b] == ids
    assert [m["content"] for m in seen_a if m["sender"] == employee.user_id] == [f"a{n}" for n in range(rounds)]
    assert [m["content"] for m in seen_a if m["sender"] == colleague.user_id] == [f"b{n}" for n in range(rounds)]


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def test_database_work_runs_off_the_event_loop(client, monkeypatch, employee, colleague, chat_id):
    calls = []

    def recording(fn):
        def wrapper(*args, **kwargs):
            calls.append((fn.__name__, _on_event_loop()))
            return fn(*args, **kwargs)

        return wrapper

    monkeypatch.setattr(chat_service, "send_message", recording(chat_service.send_message))
    monkeypatch.setattr(chat_service, "mark_read", recording(chat_service.mark_read))
    monkeypatch.setattr(realtime_router, "authenticate_token", recording(realtime_router.authenticate_token))

    with connect(client, colleague) as b:
        expect(b, "connected")
        join(b, chat_id)
        send(b, "send_message", {"chatId": chat_id, "content": "socket"})
        expect(b, "new_message")
        client.post(f"/api/chat/{chat_id}/messages", json={"content": "rest"}, headers=employee.headers)
        expect(b, "new_message")
        send(b, "mark_messages_read", {"chatId": chat_id})
        join(b, chat_id)
        client.put(f"/api/chat/{chat_id}/messages/read", headers=employee.headers)
        expect(b, "messages_read")

    assert sorted(calls) == [
        ("authenticate_token", False),
        ("mark_read", False),
        ("mark_read", False),
        ("send_message", False),
        ("send_message", False),
    ]
