import pytest

from homefix_api.app.core.config import settings


def test_booking_copies_price_and_provider(booking, listing, homeowner):
    customer, _ = homeowner
    assert booking["service_id"] == listing["id"]
    assert booking["provider_id"] == listing["provider_id"]
    assert booking["customer_id"] == customer["id"]
    assert booking["price"] == 50.0
    assert booking["status"] == "pending"
    assert booking["payment_status"] == "pending"
    assert booking["rating"] is None


def test_price_is_not_rederived_after_listing_change(client, provider, homeowner, listing, booking):
    _, provider_headers = provider
    _, customer_headers = homeowner
    client.put(f"/api/v1/services/{listing['id']}", json={"base_price": 99}, headers=provider_headers)
    response = client.get(f"/api/v1/bookings/{booking['id']}", headers=customer_headers)
    assert response.json()["price"] == 50.0


def test_booking_unknown_listing(client, homeowner):
    _, headers = homeowner
    response = client.post(
        "/api/v1/bookings/",
        json={"service_id": 999, "date": "2026-11-02T09:00:00Z", "address": "x", "description": "y"},
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Service not found"


def test_booking_requires_authentication(client, listing):
    response = client.post(
        "/api/v1/bookings/",
        json={"service_id": listing["id"], "date": "2026-11-02T09:00:00Z", "address": "x", "description": "y"},
    )
    assert response.status_code == 401


def test_list_bookings_by_participant(client, register, provider, homeowner, booking):
    _, provider_headers = provider
    _, customer_headers = homeowner
    _, outsider_headers = register()
    assert [b["id"] for b in client.get("/api/v1/bookings/", headers=customer_headers).json()] == [booking["id"]]
    assert [b["id"] for b in client.get("/api/v1/bookings/", headers=provider_headers).json()] == [booking["id"]]
    assert client.get("/api/v1/bookings/", headers=outsider_headers).json() == []


def test_admin_sees_all_bookings(client, admin, booking):
    _, headers = admin
    assert [b["id"] for b in client.get("/api/v1/bookings/", headers=headers).json()] == [booking["id"]]
    assert client.get(f"/api/v1/bookings/{booking['id']}", headers=headers).status_code == 200


def test_list_bookings_filters(client, homeowner, listing, create_booking, move_to):
    _, headers = homeowner
    early = create_booking(headers, listing["id"], date="2026-11-01T09:00:00+00:00")
    late = create_booking(headers, listing["id"], date="2026-12-01T09:00:00+00:00")
    move_to(early["id"], headers, "cancelled")

    def ids(**params):
        return [b["id"] for b in client.get("/api/v1/bookings/", params=params, headers=headers).json()]

    assert ids() == [late["id"], early["id"]]
    assert ids(status="cancelled") == [early["id"]]
    assert ids(start_date="2026-11-15T00:00:00+00:00") == [late["id"]]
    assert ids(end_date="2026-11-15T00:00:00+00:00") == [early["id"]]


def test_dates_compare_across_utc_offsets(client, homeowner, listing, create_booking):
    _, headers = homeowner
    # 04:00Z, 05:00Z and a naive 04:30 that counts as UTC.
    early = create_booking(headers, listing["id"], date="2026-11-02T09:00:00+05:00")
    late = create_booking(headers, listing["id"], date="2026-11-02T05:00:00+00:00")
    naive = create_booking(headers, listing["id"], date="2026-11-02T04:30:00")

    def ids(**params):
        return [b["id"] for b in client.get("/api/v1/bookings/", params=params, headers=headers).json()]

    assert ids() == [late["id"], naive["id"], early["id"]]
    assert ids(start_date="2026-11-02T06:00:00+00:00") == []
    assert ids(start_date="2026-11-02T09:15:00+05:00") == [late["id"], naive["id"]]
    assert ids(end_date="2026-11-02T04:00:00") == [early["id"]]
    assert early["date"].startswith("2026-11-02T04:00:00")


def test_get_booking_forbidden_and_missing(client, register, booking):
    _, outsider = register()
    assert client.get(f"/api/v1/bookings/{booking['id']}", headers=outsider).status_code == 403
    assert client.get("/api/v1/bookings/999", headers=outsider).status_code == 404


def test_status_walks_the_lifecycle(provider, booking, move_to):
    _, headers = provider
    result = move_to(booking["id"], headers, "confirmed", "in_progress", "completed")
    assert result["status"] == "completed"


def test_invalid_transition(client, provider, booking):
    _, headers = provider
    response = client.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "completed"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_transition"


def test_terminal_status_cannot_change(client, homeowner, booking, move_to):
    _, headers = homeowner
    move_to(booking["id"], headers, "cancelled")
    response = client.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "pending"}, headers=headers)
    assert response.status_code == 400


def test_outsider_cannot_change_status(client, register, booking):
    _, outsider = register()
    # Checked before the transition, so even an invalid change reports 403.
    for target in ("confirmed", "completed"):
        response = client.patch(
            f"/api/v1/bookings/{booking['id']}/status", json={"status": target}, headers=outsider
        )
        assert response.status_code == 403


def test_unknown_status_value(client, provider, booking):
    _, headers = provider
    response = client.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "done"}, headers=headers)
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


def test_lenient_transitions(client, provider, booking, monkeypatch):
    monkeypatch.setattr(settings, "strict_status_transitions", False)
    _, headers = provider
    response = client.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "completed"}, headers=headers)
    assert response.status_code == 200
    back = client.patch(f"/api/v1/bookings/{booking['id']}/status", json={"status": "pending"}, headers=headers)
    assert back.json()["status"] == "pending"


def test_review_requires_completed_booking(client, homeowner, booking):
    _, headers = homeowner
    response = client.post(f"/api/v1/bookings/{booking['id']}/review", json={"rating": 5}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"message": "Can only review completed bookings", "code": "invalid_state"}


def test_only_customer_can_review(client, provider, booking, move_to):
    _, headers = provider
    move_to(booking["id"], headers, "confirmed", "in_progress", "completed")
    response = client.post(f"/api/v1/bookings/{booking['id']}/review", json={"rating": 5}, headers=headers)
    assert response.status_code == 403


def test_review_missing_booking(client, homeowner):
    _, headers = homeowner
    response = client.post("/api/v1/bookings/999/review", json={"rating": 5}, headers=headers)
    assert response.status_code == 404


@pytest.mark.parametrize("rating", [0, 6])
def test_review_rating_out_of_range(client, homeowner, booking, rating):
    _, headers = homeowner
    response = client.post(f"/api/v1/bookings/{booking['id']}/review", json={"rating": rating}, headers=headers)
    assert response.status_code == 400


def test_end_to_end_booking(client, gateway, provider, homeowner, listing, booking, move_to):
    _, provider_headers = provider
    _, customer_headers = homeowner

    intent = client.post(
        "/api/v1/bookings/payment-intent", json={"booking_id": booking["id"]}, headers=customer_headers
    )
    assert intent.status_code == 200
    assert intent.json()["amount"] == 5000
    assert intent.json()["currency"] == "usd"

    move_to(booking["id"], provider_headers, "confirmed")
    gateway.succeed(intent.json()["payment_intent_id"])
    paid = client.post(
        "/api/v1/payments/confirm",
        json={"payment_intent_id": intent.json()["payment_intent_id"], "booking_id": booking["id"]},
        headers=customer_headers,
    )
    assert paid.status_code == 200
    move_to(booking["id"], provider_headers, "in_progress", "completed")

    reviewed = client.post(
        f"/api/v1/bookings/{booking['id']}/review",
        json={"rating": 5, "review": "  Quick and tidy  "},
        headers=customer_headers,
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["rating"] == 5
    assert reviewed.json()["review"] == "Quick and tidy"
    assert reviewed.json()["payment_status"] == "paid"

    service = client.get(f"/api/v1/services/{listing['id']}").json()
    assert service["rating"] == 5.0
    assert service["reviews"] == [booking["id"]]

    again = client.post(f"/api/v1/bookings/{booking['id']}/review", json={"rating": 1}, headers=customer_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Booking has already been reviewed"
    assert client.get(f"/api/v1/services/{listing['id']}").json()["rating"] == 5.0


def test_listing_rating_is_mean_of_reviews(client, provider, register, listing, create_booking, move_to):
    _, provider_headers = provider
    booking_ids = []
    for rating in (5, 4, 3):
        _, customer_headers = register()
        booking = create_booking(customer_headers, listing["id"])
        move_to(booking["id"], provider_headers, "confirmed", "in_progress", "completed")
        response = client.post(
            f"/api/v1/bookings/{booking['id']}/review", json={"rating": rating}, headers=customer_headers
        )
        assert response.status_code == 200
        booking_ids.append(booking["id"])

    service = client.get(f"/api/v1/services/{listing['id']}").json()
    assert service["rating"] == 4.0
    assert service["reviews"] == booking_ids


def test_review_after_listing_deleted(client, provider, homeowner, listing, booking, move_to):
    _, provider_headers = provider
    _, customer_headers = homeowner
    move_to(booking["id"], provider_headers, "confirmed", "in_progress", "completed")
    client.delete(f"/api/v1/services/{listing['id']}", headers=provider_headers)
    response = client.post(f"/api/v1/bookings/{booking['id']}/review", json={"rating": 4}, headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["rating"] == 4


def test_payment_intent_amount_rounds_half_up(client, gateway, provider, homeowner, create_listing, create_booking):
    _, provider_headers = provider
    _, customer_headers = homeowner
    service = create_listing(provider_headers, base_price=19.995)
    booking = create_booking(customer_headers, service["id"])
    response = client.post(
        "/api/v1/bookings/payment-intent", json={"booking_id": booking["id"]}, headers=customer_headers
    )
    assert response.json()["amount"] == 2000
    intent = gateway.intents[response.json()["payment_intent_id"]]
    assert intent["metadata"] == {"booking_id": str(booking["id"])}


def test_payment_intent_only_for_customer(client, provider, booking):
    _, headers = provider
    response = client.post("/api/v1/bookings/payment-intent", json={"booking_id": booking["id"]}, headers=headers)
    assert response.status_code == 403


def test_payment_intent_missing_booking(client, homeowner):
    _, headers = homeowner
    response = client.post("/api/v1/bookings/payment-intent", json={"booking_id": 999}, headers=headers)
    assert response.status_code == 404


def test_booking_carries_names(client, register, create_listing, create_booking):
    provider, provider_headers = register("service_provider", first_name="Bob", last_name="Builder")
    customer, customer_headers = register(first_name="Hana", last_name="Owner")
    service = create_listing(provider_headers, name="Gutter cleaning", category="cleaning")
    created = create_booking(customer_headers, service["id"])

    assert created["service"] == {"id": service["id"], "name": "Gutter cleaning"}
    assert created["customer"] == {"id": customer["id"], "first_name": "Hana", "last_name": "Owner"}
    assert created["provider"] == {"id": provider["id"], "first_name": "Bob", "last_name": "Builder"}

    listed = client.get("/api/v1/bookings/", headers=provider_headers).json()
    assert listed[0]["customer"]["first_name"] == "Hana"

    client.delete(f"/api/v1/services/{service['id']}", headers=provider_headers)
    kept = client.get(f"/api/v1/bookings/{created['id']}", headers=customer_headers).json()
    assert kept["service"] is None
    assert kept["service_id"] == service["id"]
