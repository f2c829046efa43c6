"""Shared fixtures: a temporary database, a fake gateway and account helpers."""

import asyncio
import itertools
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from homefix_api.app.core.config import settings
from homefix_api.app.core.db import init_db
from homefix_api.app.core.exceptions import UpstreamError
from homefix_api.app.core.security import issue_token_for
from homefix_api.app.main import app
from homefix_api.app.schemas.user import AccountCreate, Role
from homefix_api.app.services.payment_gateway import PaymentGateway, get_payment_gateway
from homefix_api.app.services.user_service import UserService


class FakeGateway(PaymentGateway):
    """In‑memory gateway.  Intents start unpaid; ``succeed`` marks one paid."""

    def __init__(self) -> None:
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.retrievals = 0

    def create_payment_intent(self, amount, currency, metadata=None):
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_abc",
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata or {}),
            "status": "requires_payment_method",
        }
        return dict(self.intents[intent_id])

    def retrieve_payment_intent(self, intent_id):
        self.retrievals += 1
        if intent_id not in self.intents:
            raise UpstreamError(f"No such payment_intent: '{intent_id}'", code="resource_missing")
        return dict(self.intents[intent_id])

    def succeed(self, intent_id: str) -> None:
        self.intents[intent_id]["status"] = "succeeded"


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "homefix-test.db"))
    init_db()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(db, gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


_emails = itertools.count(1)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register an account through the API and return ``(user, headers)``."""

    def _register(role: str = "homeowner", email: Optional[str] = None, **fields):
        payload = {
            "email": email or f"user{next(_emails)}@example.com",
            "password": "secret123",
            "first_name": "Test",
            "last_name": "User",
            "role": role,
        }
        payload.update(fields)
        response = client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], auth_headers(body["token"])

    return _register


@pytest.fixture
def homeowner(register):
    return register("homeowner")


@pytest.fixture
def provider(register):
    return register("service_provider")


@pytest.fixture
def admin(db):
    data = AccountCreate(
        email=f"admin{next(_emails)}@example.com",
        password="secret123",
        first_name="Ada",
        last_name="Admin",
        role=Role.admin,
    )
    user = asyncio.run(UserService.create_user(data, allow_admin=True))
    return user, auth_headers(issue_token_for(user.id, user.role.value))


def listing_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "name": "Leak repair",
        "description": "Fix leaking pipes and taps",
        "category": "plumbing",
        "base_price": 50.0,
        "is_emergency": False,
        "availability": {"days": ["monday", "tuesday"], "hours": {"start": "08:00", "end": "18:00"}},
        "images": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_listing(client):
    def _create(headers, **overrides):
        response = client.post("/api/v1/services/", json=listing_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def listing(provider, create_listing):
    _, headers = provider
    return create_listing(headers)


@pytest.fixture
def create_booking(client):
    def _create(headers, service_id, **overrides):
        payload = {
            "service_id": service_id,
            "date": "2026-11-02T09:00:00+00:00",
            "address": "12 Elm Street",
            "description": "Kitchen sink is leaking",
        }
        payload.update(overrides)
        response = client.post("/api/v1/bookings/", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def booking(homeowner, listing, create_booking):
    _, headers = homeowner
    return create_booking(headers, listing["id"])


@pytest.fixture
def move_to(client):
    """Walk a booking along ``statuses`` as the given participant."""

    def _move(booking_id, headers, *statuses):
        response = None
        for status in statuses:
            response = client.patch(
                f"/api/v1/bookings/{booking_id}/status", json={"status": status}, headers=headers
            )
            assert response.status_code == 200, response.text
        return response.json()

    return _move
