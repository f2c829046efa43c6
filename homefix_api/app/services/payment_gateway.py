"""
Card‑processing gateway client.

``PaymentGateway`` is the contract the booking and payment services
depend on: create a payment intent for an amount in minor units and
retrieve an intent to check whether it succeeded.  ``StripeGateway``
implements it against the Stripe REST API with ``httpx``.

Gateway failures are raised as ``UpstreamError`` whose ``code`` is the
gateway's own reason (``card_declined``, ``amount_too_small``...), so
the client sees why the charge failed instead of a generic 500.
"""

import base64
import logging
import os
from typing import Any, Dict, Optional

import httpx

from homefix_api.app.core.config import settings
from homefix_api.app.core.exceptions import UpstreamError


logger = logging.getLogger(__name__)


class PaymentGateway:
    """Interface of the external payment processor."""

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Create an intent and return at least ``id`` and ``client_secret``."""
        raise NotImplementedError

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        """Return the intent with ``id``, ``status``, ``amount``, ``currency`` and ``metadata``."""
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """Stripe implementation using form‑encoded requests and a bearer key."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.stripe.com",
        timeout: float = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        if not self.secret_key:
            raise UpstreamError("Payment gateway is not configured", code="gateway_not_configured")
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Payment gateway unreachable: %s", e)
            raise UpstreamError("Payment gateway is unreachable", code="gateway_unreachable") from e

        if response.is_error:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            reason = error.get("decline_code") or error.get("code") or f"http_{response.status_code}"
            message = error.get("message") or "Payment gateway rejected the request"
            logger.warning("Payment gateway error %s on %s %s: %s", reason, method, path, message)
            raise UpstreamError(message, code=reason)
        return response.json()

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        form = {
            "amount": str(amount),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            form[f"metadata[{key}]"] = str(value)
        # The gateway deduplicates requests that carry the same key.
        headers = {"Idempotency-Key": base64.urlsafe_b64encode(os.urandom(24)).decode()}
        return self._request("POST", "/v1/payment_intents", data=form, headers=headers)

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v1/payment_intents/{intent_id}")


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway.

    Tests replace it through ``app.dependency_overrides``.
    """
    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        base_url=settings.stripe_api_base,
        timeout=settings.payment_gateway_timeout,
    )
