def test_send_and_read_notification(client, homeowner, provider):
    _, sender = homeowner
    recipient, recipient_headers = provider
    sent = client.post(
        "/api/v1/notifications/",
        json={"user_id": recipient["id"], "message": "Are you free on Monday?", "type": "booking"},
        headers=sender,
    )
    assert sent.status_code == 201
    assert sent.json()["read"] is False

    inbox = client.get("/api/v1/notifications/", headers=recipient_headers).json()
    assert [n["id"] for n in inbox] == [sent.json()["id"]]
    assert client.get("/api/v1/notifications/", headers=sender).json() == []

    read = client.put(f"/api/v1/notifications/{sent.json()['id']}/read", headers=recipient_headers)
    assert read.status_code == 200
    assert read.json()["read"] is True


def test_only_recipient_can_mark_read(client, homeowner, provider):
    _, sender = homeowner
    recipient, _ = provider
    sent = client.post(
        "/api/v1/notifications/",
        json={"user_id": recipient["id"], "message": "Hello", "type": "general"},
        headers=sender,
    ).json()
    response = client.put(f"/api/v1/notifications/{sent['id']}/read", headers=sender)
    assert response.status_code == 404


def test_notify_unknown_account(client, homeowner):
    _, headers = homeowner
    response = client.post(
        "/api/v1/notifications/", json={"user_id": 999, "message": "Hello", "type": "general"}, headers=headers
    )
    assert response.status_code == 404


def test_notifications_require_authentication(client, db):
    assert client.get("/api/v1/notifications/").status_code == 401
