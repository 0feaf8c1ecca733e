from __future__ import annotations


def open_chat(client, account, *others, **body):
    body["participantIds"] = [o.user_id for o in others]
    return client.post("/api/chat", json=body, headers=account.headers)


def test_direct_chat_is_reused(client, employee, colleague):
    first = open_chat(client, employee, colleague)
    second = open_chat(client, colleague, employee)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]
    assert {p["id"] for p in first.json()["participants"]} == {employee.user_id, colleague.user_id}


def test_group_chat_needs_name(client, hr, employee, colleague):
    unnamed = open_chat(client, hr, employee, colleague, isGroup=True)
    assert unnamed.status_code == 400

    named = open_chat(client, hr, employee, colleague, isGroup=True, groupName="Launch")
    assert named.status_code == 201
    assert named.json()["groupAdminId"] == hr.user_id


def test_chat_with_unknown_user(client, employee):
    response = client.post("/api/chat", json={"participantIds": [999]}, headers=employee.headers)

    assert response.status_code == 404


def test_send_and_page_messages(client, employee, colleague):
    chat_id = open_chat(client, employee, colleague).json()["id"]
    for text in ("one", "two", "three"):
        sent = client.post(f"/api/chat/{chat_id}/messages", json={"content": text}, headers=employee.headers)
        assert sent.status_code == 201

    body = client.get(f"/api/chat/{chat_id}/messages", headers=colleague.headers).json()
    assert [m["content"] for m in body["data"]] == ["one", "two", "three"]
    assert body["data"][0]["sender"] == employee.user_id
    assert body["data"][0]["senderName"] == employee.name

    latest = client.get(f"/api/chat/{chat_id}/messages", params={"limit": 2}, headers=colleague.headers).json()
    assert [m["content"] for m in latest["data"]] == ["two", "three"]

    chats = client.get("/api/chat", headers=colleague.headers).json()
    assert chats["data"][0]["lastMessage"]["content"] == "three"
    assert chats["data"][0]["lastMessage"]["sender"] == employee.user_id


def test_file_message_preview(client, employee, colleague):
    chat_id = open_chat(client, employee, colleague).json()["id"]

    client.post(
        f"/api/chat/{chat_id}/messages",
        json={"messageType": "file", "fileUrl": "https://files.example.com/a.pdf"},
        headers=employee.headers,
    )

    chat = client.get(f"/api/chat/{chat_id}", headers=employee.headers).json()
    assert chat["lastMessage"]["content"] == "File"


def test_empty_message_rejected(client, employee, colleague):
    chat_id = open_chat(client, employee, colleague).json()["id"]

    response = client.post(f"/api/chat/{chat_id}/messages", json={"content": ""}, headers=employee.headers)

    assert response.status_code == 400


def test_outsider_is_denied(client, hr, employee, colleague):
    chat_id = open_chat(client, employee, colleague).json()["id"]

    assert client.get(f"/api/chat/{chat_id}", headers=hr.headers).status_code == 403
    denied = client.post(f"/api/chat/{chat_id}/messages", json={"content": "hi"}, headers=hr.headers)
    assert denied.status_code == 403
    assert denied.json()["message"] == "Access denied to this chat"


def test_mark_read_only_flips_other_senders(client, employee, colleague):
    chat_id = open_chat(client, employee, colleague).json()["id"]
    client.post(f"/api/chat/{chat_id}/messages", json={"content": "ping"}, headers=employee.headers)
    client.post(f"/api/chat/{chat_id}/messages", json={"content": "pong"}, headers=colleague.headers)

    response = client.put(f"/api/chat/{chat_id}/messages/read", headers=colleague.headers)

    assert response.json() == {"success": True, "updated": 1}
    messages = client.get(f"/api/chat/{chat_id}/messages", headers=colleague.headers).json()["data"]
    assert [(m["content"], m["isRead"]) for m in messages] == [("ping", True), ("pong", False)]
