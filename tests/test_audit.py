def test_admin_reads_audit_log(client, admin, booking, listing):
    _, headers = admin
    response = client.get("/api/v1/audit/logs", headers=headers)
    assert response.status_code == 200
    entries = {(e["object_type"], e["action"]) for e in response.json()}
    assert ("service", "create") in entries
    assert ("booking", "create") in entries

    bookings = client.get("/api/v1/audit/logs", params={"object_type": "booking"}, headers=headers).json()
    assert len(bookings) == 1
    assert bookings[0]["object_id"] == booking["id"]
    assert bookings[0]["details"]["service_id"] == listing["id"]


def test_audit_log_pagination(client, admin, booking):
    _, headers = admin
    everything = client.get("/api/v1/audit/logs", headers=headers).json()
    page = client.get("/api/v1/audit/logs", params={"limit": 1, "offset": 1}, headers=headers).json()
    assert page == everything[1:2]


def test_audit_log_is_admin_only(client, homeowner):
    _, headers = homeowner
    response = client.get("/api/v1/audit/logs", headers=headers)
    assert response.status_code == 403
