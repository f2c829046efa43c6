from urllib.parse import parse_qs

import httpx
import pytest

from homefix_api.app.core.exceptions import UpstreamError
from homefix_api.app.services.payment_gateway import StripeGateway, get_payment_gateway
from homefix_api.app.main import app


def make_gateway(handler, secret_key="sk_test_123"):
    return StripeGateway(secret_key=secret_key, base_url="https://stripe.test", transport=httpx.MockTransport(handler))


def test_create_payment_intent_request():
    seen = {}

    def handler(request):
        seen["request"] = request
        return httpx.Response(200, json={"id": "pi_1", "client_secret": "pi_1_secret", "status": "requires_payment_method"})

    intent = make_gateway(handler).create_payment_intent(5000, "usd", metadata={"booking_id": "7"})

    request = seen["request"]
    assert intent["id"] == "pi_1"
    assert request.method == "POST"
    assert request.url.path == "/v1/payment_intents"
    assert request.headers["Authorization"] == "Bearer sk_test_123"
    assert request.headers["Idempotency-Key"]
    form = parse_qs(request.content.decode())
    assert form["amount"] == ["5000"]
    assert form["currency"] == ["usd"]
    assert form["metadata[booking_id]"] == ["7"]
    assert form["automatic_payment_methods[enabled]"] == ["true"]


def test_retrieve_payment_intent_request():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/v1/payment_intents/pi_9"
        return httpx.Response(200, json={"id": "pi_9", "status": "succeeded", "amount": 5000, "currency": "usd"})

    assert make_gateway(handler).retrieve_payment_intent("pi_9")["status"] == "succeeded"


@pytest.mark.parametrize(
    "status, body, expected",
    [
        (402, {"error": {"code": "card_declined", "decline_code": "insufficient_funds", "message": "Declined"}}, "insufficient_funds"),
        (400, {"error": {"code": "amount_too_small", "message": "Amount too small"}}, "amount_too_small"),
        (500, {"unexpected": True}, "http_500"),
    ],
)
def test_error_responses_carry_gateway_reason(status, body, expected):
    gateway = make_gateway(lambda request: httpx.Response(status, json=body))
    with pytest.raises(UpstreamError) as excinfo:
        gateway.create_payment_intent(5000, "usd")
    assert excinfo.value.code == expected
    assert excinfo.value.status_code == 502


def test_non_json_error_body():
    gateway = make_gateway(lambda request: httpx.Response(503, text="Service Unavailable"))
    with pytest.raises(UpstreamError) as excinfo:
        gateway.retrieve_payment_intent("pi_1")
    assert excinfo.value.code == "http_503"


def test_unreachable_gateway():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as excinfo:
        make_gateway(handler).retrieve_payment_intent("pi_1")
    assert excinfo.value.code == "gateway_unreachable"


def test_missing_secret_key_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    with pytest.raises(UpstreamError) as excinfo:
        make_gateway(handler, secret_key="").create_payment_intent(5000, "usd")
    assert excinfo.value.code == "gateway_not_configured"
    assert calls == []


def test_declined_card_surfaces_through_the_api(client, homeowner, booking):
    _, headers = homeowner
    declined = make_gateway(
        lambda request: httpx.Response(
            402, json={"error": {"code": "card_declined", "message": "Your card was declined."}}
        )
    )
    app.dependency_overrides[get_payment_gateway] = lambda: declined
    response = client.post("/api/v1/bookings/payment-intent", json={"booking_id": booking["id"]}, headers=headers)
    assert response.status_code == 502
    assert response.json() == {"message": "Your card was declined.", "code": "card_declined"}
