"""
Business logic for payments.

Payment records are created when the customer confirms a charge that
the gateway reports as ``succeeded``.  Confirmation is idempotent per
gateway intent: the record insert and the booking's ``payment_status``
update share one transaction, and a repeated confirmation returns the
record that already exists.
"""

import logging
import sqlite3
from typing import List, Optional

from homefix_api.app.core.config import settings
from homefix_api.app.core.db import get_connection, get_cursor
from homefix_api.app.core.exceptions import InvalidState, ValidationError
from homefix_api.app.core.security import Principal
from homefix_api.app.schemas.booking import BookingStatus, PaymentIntentRead, PaymentStatus
from homefix_api.app.schemas.payment import (
    PaymentConfirm,
    PaymentIntentCreate,
    PaymentRead,
    PaymentRecordStatus,
)
from homefix_api.app.services import booking_lifecycle
from homefix_api.app.services.audit_service import AuditService
from homefix_api.app.services.booking_service import require_booking
from homefix_api.app.services.payment_gateway import PaymentGateway


logger = logging.getLogger(__name__)

PAYMENT_COLUMNS = "id, user_id, booking_id, amount, currency, status, payment_intent_id, created_at"


def _row_to_payment(row: sqlite3.Row) -> PaymentRead:
    return PaymentRead(
        id=row["id"],
        user_id=row["user_id"],
        booking_id=row["booking_id"],
        amount=row["amount"],
        currency=row["currency"],
        status=row["status"],
        payment_intent_id=row["payment_intent_id"],
        created_at=row["created_at"],
    )


def _fetch_by_intent(cursor: sqlite3.Cursor, intent_id: str) -> Optional[sqlite3.Row]:
    return cursor.execute(
        f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE payment_intent_id = ?", (intent_id,)
    ).fetchone()


class PaymentService:
    """Service for card payments and payment records."""

    @classmethod
    async def create_payment_intent(cls, data: PaymentIntentCreate, gateway: PaymentGateway) -> PaymentIntentRead:
        """Create a free‑standing intent; ``data.amount`` is already in minor units."""
        currency = data.currency.lower()
        intent = gateway.create_payment_intent(amount=data.amount, currency=currency)
        logger.info("Created payment intent %s (%s %s)", intent.get("id"), data.amount, currency)
        return PaymentIntentRead(
            client_secret=intent["client_secret"],
            payment_intent_id=intent["id"],
            amount=data.amount,
            currency=currency,
        )

    @classmethod
    async def confirm_payment(
        cls,
        data: PaymentConfirm,
        principal: Principal,
        gateway: PaymentGateway,
    ) -> PaymentRead:
        """Record a succeeded charge and mark the booking paid.

        The caller must be the booking's customer.  The gateway is asked
        for the intent's status; anything other than ``succeeded`` is
        rejected with ``InvalidState``, as is a cancelled booking.  The
        intent must carry the booking id in its metadata and charge the
        booking price in the configured currency, otherwise
        ``ValidationError``.  A free‑standing intent therefore cannot pay
        for a booking.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            booking = require_booking(cursor, data.booking_id)
            booking_lifecycle.ensure_customer(principal, booking["customer_id"])
            existing = _fetch_by_intent(cursor, data.payment_intent_id)
        finally:
            conn.close()
        if existing:
            if existing["booking_id"] != data.booking_id:
                raise ValidationError("Payment intent belongs to another booking")
            logger.info("Payment intent %s already confirmed as payment %s", data.payment_intent_id, existing["id"])
            return _row_to_payment(existing)
        if booking["status"] == BookingStatus.cancelled.value:
            raise InvalidState("Cannot pay for a cancelled booking")

        intent = gateway.retrieve_payment_intent(data.payment_intent_id)
        if intent.get("status") != "succeeded":
            raise InvalidState("Payment not successful")
        intent_booking = (intent.get("metadata") or {}).get("booking_id")
        if intent_booking is None or str(intent_booking) != str(data.booking_id):
            raise ValidationError("Payment intent belongs to another booking")
        expected_amount = booking_lifecycle.to_minor_units(booking["price"])
        if int(intent.get("amount", -1)) != expected_amount:
            raise ValidationError("Payment amount does not match the booking price")
        currency = str(intent.get("currency", "")).lower()
        if currency != settings.payment_currency.lower():
            raise ValidationError("Payment currency does not match")
        amount = expected_amount / 100

        try:
            with get_cursor() as cursor:
                cursor.execute(
                    """
                    INSERT INTO payments (user_id, booking_id, amount, currency, status, payment_intent_id)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        principal.account_id,
                        data.booking_id,
                        amount,
                        currency,
                        PaymentRecordStatus.completed.value,
                        data.payment_intent_id,
                    ),
                )
                cursor.execute(
                    "UPDATE bookings SET payment_status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (PaymentStatus.paid.value, data.booking_id),
                )
                row = _fetch_by_intent(cursor, data.payment_intent_id)
        except sqlite3.IntegrityError:
            # A concurrent confirmation of the same intent committed first.
            conn = get_connection()
            try:
                row = _fetch_by_intent(conn.cursor(), data.payment_intent_id)
            finally:
                conn.close()
            if row is None:
                raise
            return _row_to_payment(row)

        logger.info(
            "Booking %s paid: %.2f %s via intent %s",
            data.booking_id, amount, currency, data.payment_intent_id,
        )
        await AuditService.log(
            user_id=principal.account_id,
            action="confirm",
            object_type="payment",
            object_id=row["id"],
            details={"booking_id": data.booking_id, "amount": amount, "currency": currency},
        )
        return _row_to_payment(row)

    @classmethod
    async def payment_history(cls, principal: Principal) -> List[PaymentRead]:
        """The caller's payment records, newest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (principal.account_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_payment(row) for row in rows]
